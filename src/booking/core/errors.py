"""Error taxonomy shared by both transports.

Every failure a caller can observe is one of the ``BookingError`` subclasses
below. Each kind carries its canonical RPC status code and the HTTP status
the gateway answers with.
"""

from enum import IntEnum
from typing import ClassVar

from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError, StatementError

# PostgreSQL "query_canceled"; raised when statement_timeout fires.
_PG_QUERY_CANCELED = "57014"


class Status(IntEnum):
    """Canonical RPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    INTERNAL = 13
    UNAVAILABLE = 14


class BookingError(Exception):
    """Base class for every failure surfaced to callers."""

    status: ClassVar[Status] = Status.UNKNOWN
    http_status: ClassVar[int] = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)

    @property
    def message(self) -> str:
        return str(self)

    @classmethod
    def from_status(cls, code: int, message: str) -> "BookingError":
        """Rebuild the error kind a remote peer reported.

        INTERNAL maps to ``ConstraintViolation``. grpcio also reports its own
        serializer failures as INTERNAL, so callers must run the codec outside
        grpc (as ``BookingClient`` does) for that mapping to hold.
        """
        for kind in ERROR_KINDS:
            if kind.status == code:
                return kind(message)
        return BookingError(message)


class MalformedMessage(BookingError):
    """Wire bytes or JSON body could not be decoded."""

    status = Status.INVALID_ARGUMENT
    http_status = 400


class NotFound(BookingError):
    """No book has the requested identity."""

    status = Status.NOT_FOUND
    http_status = 404


class ConstraintViolation(BookingError):
    """Storage rejected the write."""

    status = Status.INTERNAL
    http_status = 500


class StorageUnavailable(BookingError):
    """Storage is unreachable or failed transiently."""

    status = Status.UNAVAILABLE
    http_status = 503


class DeadlineExceeded(BookingError):
    """The caller's deadline expired before or during the storage call."""

    status = Status.DEADLINE_EXCEEDED
    http_status = 504


ERROR_KINDS: tuple[type[BookingError], ...] = (
    MalformedMessage,
    NotFound,
    ConstraintViolation,
    StorageUnavailable,
    DeadlineExceeded,
)


def classify_storage_error(exc: Exception) -> BookingError:
    """Map an exception raised by the storage layer onto the taxonomy."""
    if isinstance(exc, BookingError):
        return exc
    if isinstance(exc, (IntegrityError, DataError)):
        return ConstraintViolation(str(exc.orig) if exc.orig is not None else str(exc))
    if isinstance(exc, SQLAlchemyError):
        orig = getattr(exc, "orig", None)
        if getattr(orig, "pgcode", None) == _PG_QUERY_CANCELED:
            return DeadlineExceeded(str(orig))
        if isinstance(exc, StatementError) and isinstance(orig, (ValueError, TypeError)):
            return ConstraintViolation(str(orig))
        return StorageUnavailable(str(orig) if orig is not None else str(exc))
    if isinstance(exc, (ValueError, TypeError)):
        return ConstraintViolation(str(exc))
    return StorageUnavailable(str(exc))
