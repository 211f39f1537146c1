"""Versioned Entity ORM — mixins that make a mapped model lockable.

Invariants:
    - Identity is the model's single-column primary key, immutable after creation
    - The version column is an Integer, nullable in storage (NULL counts as 0)
    - Each instance owns its own LockPolicy, bound by VersionedRepository on
      create/get/attach; unbound instances refuse to report or toggle locking
    - A freshly constructed instance is unbound: call VersionedRepository.attach()
      (or create()) before enable_locking()/disable_locking(); persist() binds on its own
    - Nothing here writes the version: only the repository advances it after a
      confirmed 1-row update

Design Decisions:
    - VersionedMixin carries behaviour only; LockVersionMixin adds the default
      `lock_version` column. Models with a custom column name use VersionedMixin
      and declare their own Integer column (ADR: column name is resolved by
      VersionColumnResolver, not by the mixin)
    - _lock_policy is a plain (unannotated) attribute so declarative mapping ignores it
"""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from optilock.core.errors import LockPolicyUnboundError
from optilock.core.lock_policy import LockPolicy


class VersionedMixin:
    """Per-instance locking toggles for mapped models."""

    _lock_policy = None

    def bind_lock_policy(self, policy: LockPolicy) -> None:
        self._lock_policy = policy

    def has_lock_policy(self) -> bool:
        return self._lock_policy is not None

    @property
    def lock_policy(self) -> LockPolicy:
        if self._lock_policy is None:
            raise LockPolicyUnboundError(type(self).__name__)
        return self._lock_policy

    def enable_locking(self) -> None:
        self.lock_policy.enable()

    def disable_locking(self) -> None:
        self.lock_policy.disable()

    def is_locking_enabled(self) -> bool:
        return self.lock_policy.is_enabled()


class LockVersionMixin(VersionedMixin):
    """VersionedMixin plus the conventional `lock_version` column."""

    lock_version: Mapped[int | None] = mapped_column(
        Integer, nullable=True, default=0,
    )
