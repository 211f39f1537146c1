"""Locking Configuration — immutable per-type settings resolved once per entity.

Invariants:
    - version_column_name(T) defaults to "lock_version"
    - locking_enabled_by_default(T) defaults to True
    - LockingConfig is frozen: the type-level default is a config value, not shared mutable state
    - new_policy(T) always returns a fresh LockPolicy (instances never share one)

Design Decisions:
    - Per-type defaults walk the MRO like VersionColumnResolver so subclasses inherit
    - from_settings() duck-types Settings: core/ does not import the config module
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from optilock.core.lock_policy import LockPolicy
from optilock.core.version_column import DEFAULT_VERSION_COLUMN, VersionColumnResolver


@dataclass(frozen=True)
class LockingConfig:
    """Type-level locking configuration injected into repositories."""
    resolver: VersionColumnResolver = field(default_factory=VersionColumnResolver)
    enabled_by_default: bool = True
    enabled_defaults: Mapping[type, bool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self, "enabled_defaults",
            MappingProxyType({t: bool(v) for t, v in dict(self.enabled_defaults).items()}),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        version_columns: Mapping[type, str] | None = None,
        enabled_defaults: Mapping[type, bool] | None = None,
    ) -> "LockingConfig":
        """Build from Settings plus per-type overrides supplied by the caller."""
        resolver = VersionColumnResolver(
            default=getattr(settings, "default_version_column", DEFAULT_VERSION_COLUMN),
            overrides=version_columns or {},
        )
        return cls(
            resolver=resolver,
            enabled_by_default=getattr(settings, "locking_enabled_by_default", True),
            enabled_defaults=enabled_defaults or {},
        )

    def version_column_name(self, entity_type: type) -> str:
        return self.resolver.resolve(entity_type)

    def locking_enabled_by_default(self, entity_type: type) -> bool:
        for klass in getattr(entity_type, "__mro__", (entity_type,)):
            if klass in self.enabled_defaults:
                return self.enabled_defaults[klass]
        return self.enabled_by_default

    def new_policy(self, entity_type: type) -> LockPolicy:
        return LockPolicy.seeded(self.locking_enabled_by_default(entity_type))
