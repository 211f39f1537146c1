"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - The store's only obligation: run one ConditionalWrite atomically, report affected rows

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes in tests need no inheritance
    - Async in Protocol: implementations do IO; the pure builders/detectors stay sync
"""

from typing import Protocol

from optilock.core.conditional_update import ConditionalWrite


class ConditionalWriteStore(Protocol):
    """Atomic single-statement conditional write — implemented by shell."""
    async def execute(self, write: ConditionalWrite) -> int: ...
