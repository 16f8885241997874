"""Entity: Book."""

from typing import Annotated

from pydantic import Field

from src.booking.core.schema.wire import Int32, Int64, Message, WireField, WireKind


class Book(Message):
    """Book record as it travels on the wire and through the JSON gateway.

    ``id`` is assigned by storage and is left at zero on create requests.
    ``genres`` keeps its order and duplicates end to end.
    """

    id: Annotated[Int64, WireField(1, WireKind.INT64)] = 0
    title: Annotated[str, WireField(2, WireKind.STRING)] = ""
    author: Annotated[str, WireField(3, WireKind.STRING)] = ""
    year: Annotated[Int32, WireField(4, WireKind.INT32)] = 0
    language: Annotated[str, WireField(5, WireKind.STRING)] = ""
    genres: Annotated[list[str], WireField(6, WireKind.STRING, repeated=True)] = Field(
        default_factory=list
    )
    price: Annotated[Int32, WireField(7, WireKind.INT32)] = Field(
        default=0, description="Price in minor currency units"
    )
    quantity: Annotated[Int32, WireField(8, WireKind.INT32)] = 0
