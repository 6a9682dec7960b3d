"""
Clock adapters: system time and a fixed, advanceable clock.

Usage:
    from pharmstock.adapters import get_clock

    today = get_clock().today()

Settings:
    PHARMSTOCK = {
        "CLOCK": "pharmstock.adapters.clock.SystemClock",
    }

Tests pin time with set_clock(FixedClock(...)) and undo it with reset_clock().
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timedelta

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone
from django.utils.module_loading import import_string

from pharmstock.conf import pharmstock_settings
from pharmstock.protocols.clock import Clock

logger = logging.getLogger(__name__)


class SystemClock:
    """Wall-clock time, honouring Django's USE_TZ and TIME_ZONE."""

    def now(self) -> datetime:
        return timezone.now()

    def today(self) -> date:
        return timezone.localdate()


class FixedClock:
    """
    Clock frozen at a given moment.

    Naive datetimes are made aware in the current timezone. A plain date
    is read as midnight of that day.
    """

    def __init__(self, moment: datetime | date):
        self._now = self._coerce(moment)

    @staticmethod
    def _coerce(moment: datetime | date) -> datetime:
        if not isinstance(moment, datetime):
            moment = datetime(moment.year, moment.month, moment.day)
        if timezone.is_naive(moment):
            moment = timezone.make_aware(moment)
        return moment

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return timezone.localdate(self._now)

    def set(self, moment: datetime | date) -> None:
        """Move the clock to an absolute moment."""
        self._now = self._coerce(moment)

    def advance(self, **delta) -> None:
        """Move the clock forward (timedelta keyword arguments)."""
        self._now = self._now + timedelta(**delta)

    def __repr__(self) -> str:
        return f"FixedClock({self._now.isoformat()})"


# Cached clock instance
_lock = threading.Lock()
_clock: Clock | None = None


def get_clock() -> Clock:
    """
    Return the configured clock.

    Returns:
        Clock instance

    Raises:
        ImproperlyConfigured: If the CLOCK path cannot be imported
    """
    global _clock

    if _clock is None:
        with _lock:
            if _clock is None:  # double-checked
                clock_path = pharmstock_settings.CLOCK
                try:
                    clock_class = import_string(clock_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import clock '{clock_path}': {e}"
                    ) from e
                _clock = clock_class()
                logger.debug("Loaded clock: %s", clock_path)

    return _clock


def set_clock(clock: Clock) -> None:
    """Replace the active clock (tests, replays)."""
    global _clock
    with _lock:
        _clock = clock


def reset_clock() -> None:
    """Drop the cached clock so the next call reloads it from settings."""
    global _clock
    with _lock:
        _clock = None
