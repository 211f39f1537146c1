"""Versioned Repository — persist() and friends for one lockable entity type.

Invariants:
    - Version column name resolved once per repository (one entity type, one name)
    - Lock policy bound once per instance on create/get/attach, from LockingConfig
    - Locking enabled:  UPDATE ... WHERE id = I AND K = V  SET C, K = V + 1
    - Locking disabled: UPDATE ... WHERE id = I  SET C  (K untouched, last write wins)
    - In-memory version advances to V + 1 only after the store reports exactly 1 row
    - 0 rows under locking -> StaleVersionConflict; >1 rows -> InternalConsistencyError;
      store errors propagate unmodified. No retries, no merges.
    - Loaded entities are detached snapshots: two readers never share state, and the
      ORM unit of work never issues an UPDATE behind the protocol's back

Design Decisions:
    - Payload changes read from SQLAlchemy attribute history, so callers just assign
      attributes and call persist()
    - set_committed_value() after success: written values stop counting as changes
    - No client-side lock: the conditional UPDATE is the whole synchronization story
"""

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import make_transient
from sqlalchemy.orm.attributes import set_committed_value

from optilock.core.conditional_update import ConditionalWrite, build_delete, build_update
from optilock.core.conflict_detection import check_affected_rows
from optilock.core.domain_types import (
    Version, WriteAttempt, WriteOutcome, normalize_version,
)
from optilock.core.errors import (
    ImmutableIdentityError,
    InternalConsistencyError,
    ResourceNotFoundError,
    StaleVersionConflict,
    UnsavedEntityError,
)
from optilock.core.locking_config import LockingConfig
from optilock.core.repository_protocols import ConditionalWriteStore
from optilock.infrastructure.update_executor import SqlAlchemyUpdateExecutor
from optilock.models.versioned import VersionedMixin

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=VersionedMixin)


@dataclass(frozen=True)
class PersistResult:
    """Successful (or skipped) write. Failures are raised, never returned."""
    outcome: WriteOutcome
    affected_rows: int
    version: int | None
    locking: bool
    skipped: bool = False


class VersionedRepository(Generic[E]):
    """Optimistic-locking persistence for a single mapped entity type."""

    def __init__(
        self,
        db: AsyncSession,
        entity_type: type[E],
        config: LockingConfig | None = None,
        store: ConditionalWriteStore | None = None,
    ):
        self._db = db
        self._entity_type = entity_type
        self._config = config or LockingConfig()
        self._store = store or SqlAlchemyUpdateExecutor(db)

        mapper = inspect(entity_type)
        self._table = mapper.local_table
        if len(mapper.primary_key) != 1:
            raise ValueError(
                f"{entity_type.__name__} needs a single-column primary key "
                f"for optimistic locking, found {len(mapper.primary_key)}",
            )
        # column key -> attribute key, for columns of the entity's own table
        self._attr_for_column = {
            column.key: prop.key
            for prop in mapper.column_attrs
            for column in prop.columns
            if column.table is self._table
        }
        self._id_column = mapper.primary_key[0].key
        self._id_attr = self._attr_for_column[self._id_column]

        version_name = self._config.version_column_name(entity_type)
        version_column = next(
            (c for c in self._table.c if c.name == version_name), None,
        )
        if version_column is None:
            raise ValueError(
                f"{entity_type.__name__} has no version column '{version_name}' "
                f"on table '{self._table.name}'",
            )
        self._version_column = version_column.key
        self._version_attr = self._attr_for_column[version_column.key]

    @property
    def version_column(self) -> str:
        return self._version_column

    def version_of(self, entity: E) -> Version:
        """In-memory version of ``entity`` (NULL reads as 0)."""
        return normalize_version(getattr(entity, self._version_attr))

    def expect_version(self, entity: E, version: int) -> E:
        """Check the next write against ``version`` (a token the client read earlier)."""
        self._check_type(entity)
        setattr(entity, self._version_attr, normalize_version(version))
        return entity

    # ─── Reads & Binding ─────────────────────────────────────────

    def attach(self, entity: E) -> E:
        """Bind a lock policy (once) and detach ``entity`` from this session.

        Only persistent objects are expunged. A pending object (added, not yet
        flushed) stays in the session so its INSERT still happens.
        """
        self._check_type(entity)
        if not entity.has_lock_policy():
            entity.bind_lock_policy(self._config.new_policy(type(entity)))
        if inspect(entity).persistent and entity in self._db:
            self._db.expunge(entity)
        return entity

    async def create(self, entity: E) -> E:
        """Insert a new entity at version 0 and return it as a bound snapshot."""
        self._check_type(entity)
        if getattr(entity, self._version_attr) is None:
            setattr(entity, self._version_attr, 0)
        if not entity.has_lock_policy():
            entity.bind_lock_policy(self._config.new_policy(type(entity)))
        self._db.add(entity)
        await self._db.flush()
        logger.debug(
            f"Created {self._entity_type.__name__}",
            extra={
                "entity_type": self._entity_type.__name__,
                "entity_id": str(getattr(entity, self._id_attr)),
            },
        )
        return self.attach(entity)

    async def get(self, entity_id: Any) -> E:
        """Load a fresh, detached snapshot; ResourceNotFoundError when absent."""
        entity = await self._db.get(
            self._entity_type, entity_id, populate_existing=True,
        )
        if entity is None:
            raise ResourceNotFoundError(self._entity_type.__name__, entity_id)
        return self.attach(entity)

    async def refresh(self, entity: E) -> E:
        """Overwrite payload and version with the row's current values."""
        self._check_type(entity)
        entity_id = self._identity_of(entity)
        result = await self._db.execute(
            select(self._table).where(self._table.c[self._id_column] == entity_id),
        )
        row = result.mappings().one_or_none()
        if row is None:
            raise ResourceNotFoundError(self._entity_type.__name__, entity_id)
        for column in self._table.c:
            set_committed_value(entity, self._attr_for_column[column.key], row[column])
        return self.attach(entity)

    # ─── Writes ──────────────────────────────────────────────────

    async def persist(self, entity: E) -> PersistResult:
        """Write pending attribute changes under the entity's lock policy."""
        self.attach(entity)
        return await self._update(entity, self._pending_changes(entity))

    async def touch(self, entity: E) -> PersistResult:
        """Bump the version without writing payload changes."""
        self.attach(entity)
        return await self._update(entity, {})

    async def delete(self, entity: E) -> PersistResult:
        """Delete the row, version-checked when locking is enabled."""
        self.attach(entity)
        entity_id = self._identity_of(entity)
        locking = entity.is_locking_enabled()
        write = build_delete(
            table=self._table,
            id_column=self._id_column,
            id_value=entity_id,
            version_column=self._version_column,
            observed_version=getattr(entity, self._version_attr),
            locking=locking,
        )
        attempt = self._new_attempt(write, entity_id, locking)
        affected = await self._run(attempt, write)
        make_transient(entity)
        logger.info(
            f"Deleted {attempt.entity_type}",
            extra=self._log_extra(attempt, WriteOutcome.COMMITTED),
        )
        return PersistResult(
            outcome=WriteOutcome.COMMITTED, affected_rows=affected,
            version=None, locking=locking,
        )

    # ─── Internals ───────────────────────────────────────────────

    async def _update(self, entity: E, changes: dict[str, Any]) -> PersistResult:
        entity_id = self._identity_of(entity)
        locking = entity.is_locking_enabled()
        observed = getattr(entity, self._version_attr)

        if not locking and not changes:
            logger.debug(
                f"Nothing to write for {self._entity_type.__name__}",
                extra={"entity_id": str(entity_id)},
            )
            return PersistResult(
                outcome=WriteOutcome.COMMITTED, affected_rows=0,
                version=observed, locking=False, skipped=True,
            )

        write = build_update(
            table=self._table,
            id_column=self._id_column,
            id_value=entity_id,
            changes={
                self._column_for_attr(attr): value for attr, value in changes.items()
            },
            version_column=self._version_column,
            observed_version=observed,
            locking=locking,
        )
        attempt = self._new_attempt(write, entity_id, locking)
        affected = await self._run(attempt, write)

        for attr, value in changes.items():
            set_committed_value(entity, attr, value)
        if locking:
            set_committed_value(entity, self._version_attr, write.next_version)
        elif affected == 0:
            logger.warning(
                f"Unlocked update of {attempt.entity_type} matched no row",
                extra=self._log_extra(attempt, WriteOutcome.COMMITTED),
            )

        logger.debug(
            f"Committed {attempt.entity_type} at version "
            f"{getattr(entity, self._version_attr)}",
            extra=self._log_extra(attempt, WriteOutcome.COMMITTED),
        )
        return PersistResult(
            outcome=WriteOutcome.COMMITTED,
            affected_rows=affected,
            version=getattr(entity, self._version_attr),
            locking=locking,
        )

    async def _run(self, attempt: WriteAttempt, write: ConditionalWrite) -> int:
        """Execute once, then classify. Raises conflict/consistency/store errors."""
        attempt.begin()
        try:
            affected = await self._store.execute(write)
        except Exception:
            attempt.finish(WriteOutcome.FAULTED)
            logger.error(
                f"Store error during {write.kind.value} of {attempt.entity_type}",
                extra=self._log_extra(attempt, WriteOutcome.FAULTED),
            )
            raise

        try:
            check_affected_rows(attempt, affected)
        except StaleVersionConflict as e:
            logger.warning(
                e.message, extra={**self._log_extra(attempt, WriteOutcome.CONFLICTED),
                                  "error_code": e.code},
            )
            raise
        except InternalConsistencyError as e:
            logger.error(
                e.message, extra={**self._log_extra(attempt, WriteOutcome.FAULTED),
                                  "error_code": e.code},
            )
            raise
        return affected

    def _new_attempt(
        self, write: ConditionalWrite, entity_id: Any, locking: bool,
    ) -> WriteAttempt:
        return WriteAttempt(
            entity_type=self._entity_type.__name__,
            entity_id=entity_id,
            kind=write.kind,
            locking=locking,
            expected_version=write.expected_version,
        )

    def _pending_changes(self, entity: E) -> dict[str, Any]:
        """Modified column attributes (attr key -> new value), version excluded."""
        state = inspect(entity)
        changes = {}
        for attr in self._attr_for_column.values():
            if not state.attrs[attr].history.has_changes():
                continue
            if attr == self._id_attr:
                raise ImmutableIdentityError(
                    self._entity_type.__name__, self._identity_of(entity),
                )
            if attr == self._version_attr:
                continue
            changes[attr] = getattr(entity, attr)
        return changes

    def _identity_of(self, entity: E) -> Any:
        identity = inspect(entity).identity
        if identity is None:
            raise UnsavedEntityError(self._entity_type.__name__)
        return identity[0]

    def _column_for_attr(self, attr: str) -> str:
        for column, mapped_attr in self._attr_for_column.items():
            if mapped_attr == attr:
                return column
        raise KeyError(attr)

    def _check_type(self, entity: Any) -> None:
        if not isinstance(entity, self._entity_type):
            raise TypeError(
                f"{type(self).__name__} for {self._entity_type.__name__} "
                f"cannot handle {type(entity).__name__}",
            )

    @staticmethod
    def _log_extra(attempt: WriteAttempt, outcome: WriteOutcome) -> dict:
        return {
            "entity_type": attempt.entity_type,
            "entity_id": str(attempt.entity_id),
            "expected_version": attempt.expected_version,
            "affected_rows": attempt.affected_rows,
            "outcome": outcome.value,
        }
