"""
Pharmstock Protocols.

Defines interfaces for external collaborators.
"""

from pharmstock.protocols.clock import Clock

__all__ = [
    "Clock",
]
