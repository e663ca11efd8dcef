"""
HopeSwap execution environment: address space, block clock, events and
snapshot/revert journaling for contract objects.
"""

from .state import Chain, Contract, Snapshot

__all__ = ["Chain", "Contract", "Snapshot"]
