"""
Shared plumbing for kernel services.

A service works inside a session it does not own: it flushes so that ids
and constraint violations surface early, and leaves commit and rollback to
``session_scope()``, the migration user store or the test that opened it.
"""

from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import InstrumentedAttribute, Session

from credit_kernel.db.base import Base
from credit_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(Generic[ModelType]):
    """Holds the caller's session and clock; ``model`` is the primary table."""

    model: ClassVar[type[Base]]

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _one_by(self, column: InstrumentedAttribute[Any], value: Any, model: type[Base] | None = None):
        """The single row of ``model`` (default ``self.model``) with ``column == value``, or None."""
        stmt = select(model or self.model).where(column == value)
        return self.session.execute(stmt).scalar_one_or_none()
