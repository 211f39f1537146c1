"""Update Executor — runs one ConditionalWrite as a single SQL statement.

Invariants:
    - Exactly one UPDATE/DELETE statement per execute() call, never retried
    - Predicate and assignment travel in the same statement: the store's row-level
      atomicity is the only serialization point between concurrent writers
    - Returns the driver's rowcount (rows matched), uninterpreted
    - SQLAlchemyError propagates unchanged

Design Decisions:
    - Core statements against the mapped Table, not ORM flushes: the ORM unit of
      work would issue its own UPDATE and hide the affected-row count
    - Accepts either a Table or a mapped class in ConditionalWrite.table
"""

import logging

from sqlalchemy import Table, delete, inspect, update
from sqlalchemy.ext.asyncio import AsyncSession

from optilock.core.conditional_update import ConditionalWrite
from optilock.core.domain_types import WriteKind

logger = logging.getLogger(__name__)


def _table_for(target) -> Table:
    if isinstance(target, Table):
        return target
    return inspect(target).local_table


def compile_write(write: ConditionalWrite):
    """Translate a ConditionalWrite into a SQLAlchemy Core statement."""
    table = _table_for(write.table)
    criteria = [table.c[write.id_column] == write.id_value]
    if write.conditional:
        version_col = table.c[write.version_column]
        if write.observed_version is None:
            criteria.append(version_col.is_(None))
        else:
            criteria.append(version_col == write.observed_version)

    if write.kind is WriteKind.DELETE:
        return delete(table).where(*criteria)
    return (
        update(table)
        .where(*criteria)
        .values({table.c[name]: value for name, value in write.assignments.items()})
    )


class SqlAlchemyUpdateExecutor:
    """ConditionalWriteStore backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def execute(self, write: ConditionalWrite) -> int:
        stmt = compile_write(write)
        result = await self._session.execute(stmt)
        affected = result.rowcount
        logger.debug(
            f"{write.kind.value} on {_table_for(write.table).name} matched {affected} row(s)",
            extra={
                "entity_id": str(write.id_value),
                "expected_version": write.expected_version,
                "affected_rows": affected,
            },
        )
        return affected
