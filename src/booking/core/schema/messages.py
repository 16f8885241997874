"""Request/response messages and the BookingService method table."""

from dataclasses import dataclass
from typing import Annotated

from src.booking.core.schema.wire import Int64, Message, WireField, WireKind
from src.booking.entities.service.book.entity import Book

PACKAGE = "booking"
SERVICE_NAME = f"{PACKAGE}.BookingService"


class CreateBookRequest(Message):
    book: Annotated[Book | None, WireField(1, WireKind.MESSAGE)] = None


class ReadBookRequest(Message):
    id: Annotated[Int64, WireField(1, WireKind.INT64)] = 0


class UpdateBookRequest(Message):
    id: Annotated[Int64, WireField(1, WireKind.INT64)] = 0
    book: Annotated[Book | None, WireField(2, WireKind.MESSAGE)] = None


class DeleteBookRequest(Message):
    id: Annotated[Int64, WireField(1, WireKind.INT64)] = 0


class DeleteBookResponse(Message):
    success: Annotated[bool, WireField(1, WireKind.BOOL)] = False


@dataclass(frozen=True)
class MethodSpec:
    """One unary method of the service."""

    name: str
    handler_name: str
    request_type: type[Message]
    response_type: type[Message]

    @property
    def path(self) -> str:
        return f"/{SERVICE_NAME}/{self.name}"


METHODS: tuple[MethodSpec, ...] = (
    MethodSpec("CreateBook", "create_book", CreateBookRequest, Book),
    MethodSpec("ReadBook", "read_book", ReadBookRequest, Book),
    MethodSpec("UpdateBook", "update_book", UpdateBookRequest, Book),
    MethodSpec("DeleteBook", "delete_book", DeleteBookRequest, DeleteBookResponse),
)
