"""
Module: rental_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, plus
    the id parsing and store-error translation every read path shares.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    exceptions.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      add, delete, flush or commit.
    - DTO return convention: selectors return frozen domain entities, not ORM
      rows.
    - Store failures surface as StoreUnavailableError, never as raw
      SQLAlchemy exceptions.
"""

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from rental_kernel.db.base import Base
from rental_kernel.exceptions import MalformedIdError, StoreUnavailableError
from rental_kernel.logging_config import get_logger

logger = get_logger("selectors.base")

ModelType = TypeVar("ModelType", bound=Base)


def parse_id(raw: UUID | str, kind: str = "id") -> UUID:
    """Coerce a caller-supplied id to UUID or raise MalformedIdError."""
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except (TypeError, ValueError, AttributeError):
        raise MalformedIdError(str(raw), kind) from None


@contextmanager
def store_access(operation: str) -> Iterator[None]:
    """Translate driver-level failures into StoreUnavailableError."""
    try:
        yield
    except DBAPIError as exc:
        logger.error(
            "store_unavailable",
            extra={"operation": operation, "detail": str(exc.orig)},
        )
        raise StoreUnavailableError(operation, str(exc.orig)) from exc


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs.  The caller owns the session and its transaction.
    """

    def __init__(self, session: Session):
        self.session = session
