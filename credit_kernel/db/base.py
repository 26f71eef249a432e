"""
Declarative base for the store-credit tables.

Every mapped class gets a uuid4 primary key and creation/modification
timestamps through ``TrackedBase``.  Money columns are plain ``int``
annotations, mapped to BIGINT: balances are whole cents and never touch
Numeric or float.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, MetaData, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict[Any, Any]] = {
        datetime: DateTime(timezone=True),
        UUID: Uuid(as_uuid=True),
        int: BigInteger,
    }


class TrackedBase(Base):
    """
    Adds ``id``, ``created_at`` and ``updated_at``.

    Timestamps are written from Python with microsecond precision so that
    rows inserted within the same second still sort by insertion time on
    SQLite.
    """

    __abstract__ = True

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
