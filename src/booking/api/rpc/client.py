"""Typed client for the BookingService RPC listener."""

import grpc

from src.booking.core import codec
from src.booking.core.errors import BookingError
from src.booking.core.schema.messages import (
    METHODS,
    CreateBookRequest,
    DeleteBookRequest,
    DeleteBookResponse,
    ReadBookRequest,
    UpdateBookRequest,
)
from src.booking.core.schema.wire import Message
from src.booking.entities.service.book import Book


class BookingClient:
    """Calls BookingService over a grpc channel.

    Failures are raised as the same ``BookingError`` kinds the handlers use,
    rebuilt from the status code the server reported. Requests and responses
    are encoded here rather than inside grpc, so a local codec failure is
    raised as ``MalformedMessage`` instead of arriving as an INTERNAL status.
    """

    def __init__(self, channel: grpc.Channel) -> None:
        self._methods = {method.name: method for method in METHODS}
        self._calls = {method.name: channel.unary_unary(method.path) for method in METHODS}

    def _call(self, name: str, request: Message, timeout: float | None) -> Message:
        payload = codec.encode(request)
        try:
            response = self._calls[name](payload, timeout=timeout)
        except grpc.RpcError as exc:
            raise BookingError.from_status(exc.code().value[0], exc.details() or "") from exc
        return codec.decode(self._methods[name].response_type, response)

    def create_book(self, book: Book, timeout: float | None = None) -> Book:
        return self._call("CreateBook", CreateBookRequest(book=book), timeout)

    def read_book(self, book_id: int, timeout: float | None = None) -> Book:
        return self._call("ReadBook", ReadBookRequest(id=book_id), timeout)

    def update_book(self, book_id: int, book: Book, timeout: float | None = None) -> Book:
        return self._call("UpdateBook", UpdateBookRequest(id=book_id, book=book), timeout)

    def delete_book(self, book_id: int, timeout: float | None = None) -> DeleteBookResponse:
        return self._call("DeleteBook", DeleteBookRequest(id=book_id), timeout)
