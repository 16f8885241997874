"""Create/Read/Update/Delete handlers shared by the RPC listener and the HTTP gateway.

The handlers know nothing about transports. Each one runs a single storage
call with no retry, no transaction around read-modify-write, and no locking:
concurrent updates and deletes of one id race in storage and the last write
wins.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from loguru import logger

from src.booking.core.errors import BookingError, NotFound, classify_storage_error
from src.booking.core.schema.messages import (
    CreateBookRequest,
    DeleteBookRequest,
    DeleteBookResponse,
    ReadBookRequest,
    UpdateBookRequest,
)
from src.booking.entities.service.book import Book, BookStore


@dataclass(frozen=True)
class CallContext:
    """Per-call data a transport hands to the handlers.

    ``deadline`` is a ``time.monotonic()`` timestamp, or ``None`` for no deadline.
    """

    deadline: float | None = None

    @classmethod
    def from_timeout(cls, timeout: float | None) -> "CallContext":
        if timeout is None:
            return cls()
        return cls(deadline=time.monotonic() + timeout)

    def time_remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()


_NO_DEADLINE = CallContext()


class BookingService:
    """Operation handlers over a ``BookStore``."""

    def __init__(self, store: BookStore) -> None:
        self._store = store

    @contextmanager
    def _storage_call(self, operation: str, book_id: int | None = None) -> Iterator[None]:
        try:
            yield
        except BookingError as exc:
            logger.warning("Failed to {} book {}: {}", operation, book_id, exc)
            raise
        except Exception as exc:
            error = classify_storage_error(exc)
            logger.error(
                "Failed to {} book {}: {}",
                operation,
                book_id,
                exc,
                error_kind=type(error).__name__,
            )
            raise error from exc

    def create_book(
        self, request: CreateBookRequest, ctx: CallContext = _NO_DEADLINE
    ) -> Book:
        """Insert the book and return it with the storage-assigned id."""
        book = request.book if request.book is not None else Book()
        with self._storage_call("create"):
            book_id = self._store.insert(book, timeout=ctx.time_remaining())
        book.id = book_id
        logger.info("Created book {}", book_id)
        return book

    def read_book(self, request: ReadBookRequest, ctx: CallContext = _NO_DEADLINE) -> Book:
        with self._storage_call("read", request.id):
            book = self._store.get(request.id, timeout=ctx.time_remaining())
        if book is None:
            raise NotFound(f"book {request.id} not found")
        return book

    def update_book(
        self, request: UpdateBookRequest, ctx: CallContext = _NO_DEADLINE
    ) -> Book:
        """Replace every field but ``id``; fields left out are cleared, not kept."""
        book = request.book if request.book is not None else Book()
        with self._storage_call("update", request.id):
            updated = self._store.update(request.id, book, timeout=ctx.time_remaining())
        if not updated:
            raise NotFound(f"book {request.id} not found")
        book.id = request.id
        logger.info("Updated book {}", request.id)
        return book

    def delete_book(
        self, request: DeleteBookRequest, ctx: CallContext = _NO_DEADLINE
    ) -> DeleteBookResponse:
        """Delete is idempotent: zero affected rows still reports success."""
        with self._storage_call("delete", request.id):
            affected = self._store.delete(request.id, timeout=ctx.time_remaining())
        logger.info("Deleted book {} ({} rows)", request.id, affected)
        return DeleteBookResponse(success=True)
