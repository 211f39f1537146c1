"""Lock Policy — per-instance optimistic-locking toggle.

Invariants:
    - One LockPolicy per entity instance, never shared between instances
    - Seeded once from the type-level default; enable()/disable() win from then on
    - Toggling has no persisted trace and only affects the instance's next write
"""

from dataclasses import dataclass


@dataclass
class LockPolicy:
    """Per-instance enforcement flag."""
    enabled: bool = True

    @classmethod
    def seeded(cls, default: bool) -> "LockPolicy":
        return cls(enabled=bool(default))

    def is_enabled(self) -> bool:
        return self.enabled

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False
