"""Version Column Resolver — pure mapping from entity type to its version column name.

Invariants:
    - resolve() is pure: no IO, no mutation, same answer for the same type
    - Unset types fall back to DEFAULT_VERSION_COLUMN ("lock_version")
    - An override for one type never changes resolution for unrelated types
    - Subclasses inherit the nearest override found along their MRO

Design Decisions:
    - Strategy object injected at configuration time instead of a per-class
      overridable method (ADR: no virtual dispatch for configuration)
    - with_override() returns a new resolver: configuration is built once, then frozen
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

DEFAULT_VERSION_COLUMN = "lock_version"


def _validated(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Version column name must be a non-empty string, got {name!r}")
    return name.strip()


@dataclass(frozen=True)
class VersionColumnResolver:
    """Maps entity type -> version column name."""
    default: str = DEFAULT_VERSION_COLUMN
    overrides: Mapping[type, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "default", _validated(self.default))
        object.__setattr__(self, "overrides", MappingProxyType({
            entity_type: _validated(name)
            for entity_type, name in dict(self.overrides).items()
        }))

    def resolve(self, entity_type: type) -> str:
        """Column name for entity_type (nearest override in the MRO, else default)."""
        for klass in getattr(entity_type, "__mro__", (entity_type,)):
            name = self.overrides.get(klass)
            if name is not None:
                return name
        return self.default

    def with_override(self, entity_type: type, column_name: str) -> "VersionColumnResolver":
        """New resolver with one more override; self is left untouched."""
        return VersionColumnResolver(
            default=self.default,
            overrides={**self.overrides, entity_type: column_name},
        )
