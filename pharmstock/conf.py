"""
Pharmstock configuration.

Usage in settings.py:
    PHARMSTOCK = {
        "CLOCK": "pharmstock.adapters.clock.SystemClock",
        "MAX_RETRIES": 3,
        "RETRY_BACKOFF_MS": 25,
        "EXPIRING_SOON_DAYS": 30,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class PharmstockSettings:
    """Pharmstock configuration settings."""

    # Clock backend (dotted path)
    CLOCK: str = "pharmstock.adapters.clock.SystemClock"

    # Extra attempts after a concurrent modification on the same product
    MAX_RETRIES: int = 3

    # Linear backoff between attempts (ms × attempt number)
    RETRY_BACKOFF_MS: int = 25

    # Fail fast on a locked product row instead of waiting for it.
    # When False, the wait is bounded by the database lock timeout.
    LOCK_NOWAIT: bool = False

    # Default look-ahead window for expiring-soon checks
    EXPIRING_SOON_DAYS: int = 30

    # Zero padding for the sequence part of generated batch numbers
    BATCH_SEQUENCE_DIGITS: int = 3


def get_pharmstock_settings() -> PharmstockSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "PHARMSTOCK", {})
    return PharmstockSettings(**{
        k: v for k, v in user_settings.items()
        if k in PharmstockSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_pharmstock_settings(), name)


pharmstock_settings = _LazySettings()
