"""
Pharmstock Adapters.

Implementations of protocols for external systems.
"""

from pharmstock.adapters.clock import (
    FixedClock,
    SystemClock,
    get_clock,
    reset_clock,
    set_clock,
)

__all__ = [
    "FixedClock",
    "SystemClock",
    "get_clock",
    "reset_clock",
    "set_clock",
]
