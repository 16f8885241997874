"""Data-access layer for books."""

from typing import Protocol

from sqlalchemy import delete, text, update
from sqlmodel import Session

from src.booking.core.errors import DeadlineExceeded
from src.booking.core.services.database.db_session import DbSessionService
from src.booking.entities.service.book.entity import Book
from src.booking.entities.service.book.table import BookTable

# Largest statement_timeout PostgreSQL accepts (int32 milliseconds, about 24.8 days)
_PG_MAX_STATEMENT_TIMEOUT_MS = 2**31 - 1


class BookStore(Protocol):
    """Narrow storage contract the booking handlers depend on.

    ``timeout`` is the caller's remaining budget in seconds, or ``None`` when
    the caller set no deadline.
    """

    def insert(self, book: Book, timeout: float | None = None) -> int: ...

    def get(self, book_id: int, timeout: float | None = None) -> Book | None: ...

    def update(self, book_id: int, book: Book, timeout: float | None = None) -> bool: ...

    def delete(self, book_id: int, timeout: float | None = None) -> int: ...


def _columns(book: Book) -> dict:
    """Every stored column except the identity."""
    return {
        "title": book.title,
        "author": book.author,
        "year": book.year,
        "language": book.language,
        "genres": list(book.genres),
        "price": book.price,
        "quantity": book.quantity,
    }


def _to_book(row: BookTable) -> Book:
    return Book(
        id=row.id,
        title=row.title,
        author=row.author,
        year=row.year,
        language=row.language,
        genres=list(row.genres or []),
        price=row.price,
        quantity=row.quantity,
    )


class BookRepository:
    """SQL implementation of ``BookStore``.

    Each call runs exactly one data statement in its own transaction.
    """

    def __init__(self, db: DbSessionService) -> None:
        self._db = db

    def _apply_deadline(self, session: Session, timeout: float | None) -> None:
        if timeout is None:
            return
        if timeout <= 0:
            raise DeadlineExceeded("deadline expired before the storage call")
        if self._db.dialect_name == "postgresql":
            # SET does not take bind parameters; the value is a plain int.
            millis = min(max(1, int(timeout * 1000)), _PG_MAX_STATEMENT_TIMEOUT_MS)
            session.connection().execute(text(f"SET LOCAL statement_timeout = {millis}"))

    def insert(self, book: Book, timeout: float | None = None) -> int:
        with self._db.session_scope() as session:
            self._apply_deadline(session, timeout)
            row = BookTable(**_columns(book))
            session.add(row)
            session.flush()
            return row.id

    def get(self, book_id: int, timeout: float | None = None) -> Book | None:
        with self._db.session_scope() as session:
            self._apply_deadline(session, timeout)
            row = session.get(BookTable, book_id)
            if row is None:
                return None
            return _to_book(row)

    def update(self, book_id: int, book: Book, timeout: float | None = None) -> bool:
        statement = (
            update(BookTable)
            .where(BookTable.id == book_id)
            .values(**_columns(book))
        )
        with self._db.session_scope() as session:
            self._apply_deadline(session, timeout)
            result = session.connection().execute(statement)
            return result.rowcount > 0

    def delete(self, book_id: int, timeout: float | None = None) -> int:
        statement = delete(BookTable).where(BookTable.id == book_id)
        with self._db.session_scope() as session:
            self._apply_deadline(session, timeout)
            result = session.connection().execute(statement)
            return result.rowcount
