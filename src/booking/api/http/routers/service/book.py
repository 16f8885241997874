"""Book routes: the HTTP/JSON face of BookingService.

Each route maps path and body onto the request message and calls the same
handler the RPC listener uses. Storage and validation live in the handlers.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Path

from src.booking.api.http.deps import get_booking_service, get_call_context
from src.booking.core.schema.messages import (
    CreateBookRequest,
    DeleteBookRequest,
    DeleteBookResponse,
    ReadBookRequest,
    UpdateBookRequest,
)
from src.booking.core.schema.wire import INT64_MAX, INT64_MIN
from src.booking.core.services.booking_service import BookingService, CallContext
from src.booking.entities.service.book import Book

router = APIRouter()

BookId = Annotated[int, Path(ge=INT64_MIN, le=INT64_MAX, description="Book identity")]


@router.post("", response_model=Book)
def create_book(
    request: CreateBookRequest | None = Body(default=None),
    service: BookingService = Depends(get_booking_service),
    ctx: CallContext = Depends(get_call_context),
) -> Book:
    """CreateBook: the whole request is the body; an empty body is an empty request."""
    if request is None:
        request = CreateBookRequest()
    return service.create_book(request, ctx)


@router.get("/{book_id}", response_model=Book)
def read_book(
    book_id: BookId,
    service: BookingService = Depends(get_booking_service),
    ctx: CallContext = Depends(get_call_context),
) -> Book:
    return service.read_book(ReadBookRequest(id=book_id), ctx)


@router.put("/{book_id}", response_model=Book)
def update_book(
    book_id: BookId,
    request: UpdateBookRequest | None = Body(default=None),
    service: BookingService = Depends(get_booking_service),
    ctx: CallContext = Depends(get_call_context),
) -> Book:
    """UpdateBook: ``book`` comes from the body, ``id`` from the path."""
    if request is None:
        request = UpdateBookRequest()
    request.id = book_id
    return service.update_book(request, ctx)


@router.delete("/{book_id}", response_model=DeleteBookResponse)
def delete_book(
    book_id: BookId,
    service: BookingService = Depends(get_booking_service),
    ctx: CallContext = Depends(get_call_context),
) -> DeleteBookResponse:
    return service.delete_book(DeleteBookRequest(id=book_id), ctx)
