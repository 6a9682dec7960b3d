"""
Clock Protocol: interface for "what time is it now?".

Every expiry classification and movement timestamp in Pharmstock reads
the configured clock, so tests and replays can pin time to a fixed point.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """
    Protocol for time sources.

    Implementations should provide:
    - now(): timezone-aware current datetime (movement timestamps)
    - today(): current local date (expiry classification)
    """

    def now(self) -> datetime:
        """
        Current moment.

        Returns:
            Timezone-aware datetime
        """
        ...

    def today(self) -> date:
        """
        Current local date.

        Returns:
            date used to decide whether a batch is fresh or expired
        """
        ...
