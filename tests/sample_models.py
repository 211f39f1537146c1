"""Sample lockable models used across the test suite.

Invariants:
    - Document uses the default `lock_version` column
    - Ticket keeps its version in `revision` (resolver override)
    - Note is configured with locking disabled by default
"""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from optilock.core.locking_config import LockingConfig
from optilock.core.version_column import VersionColumnResolver
from optilock.db.base import Base
from optilock.models.versioned import LockVersionMixin, VersionedMixin


class Document(LockVersionMixin, Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Ticket(VersionedMixin, Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    revision: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Note(LockVersionMixin, Base):
    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")


def sample_config() -> LockingConfig:
    return LockingConfig(
        resolver=VersionColumnResolver(overrides={Ticket: "revision"}),
        enabled_defaults={Note: False},
    )
