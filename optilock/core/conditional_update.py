"""Conditional Update Builder — predicate/assignment pair for one single-row write.

Invariants:
    - Locking disabled: WHERE id = I, SET C; the version column is neither matched nor assigned
    - Locking enabled: WHERE id = I AND K = V, SET C, K = V + 1
    - A never-written row (V is None) is matched with K IS NULL and assigned K = 1
    - C never contains the version column (callers cannot smuggle a version bump)
    - Pure: builds a value, executes nothing

Design Decisions:
    - ConditionalWrite carries the raw observed version next to the normalized one:
      the predicate needs the raw value (NULL vs 0), error reports need the normalized one
    - Deletes share the same value type so the executor and detector treat both alike
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from optilock.core.domain_types import Version, WriteKind, normalize_version


@dataclass(frozen=True)
class ConditionalWrite:
    """Everything the store needs to run one (optionally) version-checked write."""
    table: Any
    id_column: str
    id_value: Any
    kind: WriteKind = WriteKind.UPDATE
    assignments: Mapping[str, Any] = field(default_factory=dict)
    version_column: str | None = None
    observed_version: int | None = None
    next_version: Version | None = None

    def __post_init__(self):
        object.__setattr__(self, "assignments", MappingProxyType(dict(self.assignments)))

    @property
    def conditional(self) -> bool:
        """True when the write is guarded by the version predicate."""
        return self.version_column is not None

    @property
    def expected_version(self) -> Version | None:
        if not self.conditional:
            return None
        return normalize_version(self.observed_version)


def build_update(
    *,
    table: Any,
    id_column: str,
    id_value: Any,
    changes: Mapping[str, Any],
    version_column: str,
    observed_version: int | None,
    locking: bool,
) -> ConditionalWrite:
    """Build the UPDATE for one entity.

    Raises ValueError when ``changes`` touches the version column, or when an
    unconditional write has nothing to assign.
    """
    if version_column in changes:
        raise ValueError(
            f"Version column '{version_column}' is managed by the lock protocol "
            "and cannot be assigned directly",
        )
    if not locking:
        if not changes:
            raise ValueError("Unconditional update needs at least one assignment")
        return ConditionalWrite(
            table=table, id_column=id_column, id_value=id_value,
            assignments=changes,
        )

    next_version = Version(normalize_version(observed_version) + 1)
    return ConditionalWrite(
        table=table,
        id_column=id_column,
        id_value=id_value,
        assignments={**changes, version_column: next_version},
        version_column=version_column,
        observed_version=observed_version,
        next_version=next_version,
    )


def build_delete(
    *,
    table: Any,
    id_column: str,
    id_value: Any,
    version_column: str,
    observed_version: int | None,
    locking: bool,
) -> ConditionalWrite:
    """Build the DELETE for one entity (version-checked when locking)."""
    if not locking:
        return ConditionalWrite(
            table=table, id_column=id_column, id_value=id_value,
            kind=WriteKind.DELETE,
        )
    return ConditionalWrite(
        table=table,
        id_column=id_column,
        id_value=id_value,
        kind=WriteKind.DELETE,
        version_column=version_column,
        observed_version=observed_version,
    )
