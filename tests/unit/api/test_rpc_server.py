"""End-to-end tests for the binary RPC listener and client."""

import grpc
import pytest
from fastapi.testclient import TestClient

from src.booking.api.rpc.client import BookingClient
from src.booking.api.rpc.server import grpc_status
from src.booking.core import codec
from src.booking.core.errors import MalformedMessage, NotFound, Status
from src.booking.core.schema.messages import ReadBookRequest
from src.booking.entities.service.book import Book


def raw_call(channel: grpc.Channel, method: str, payload: bytes) -> bytes:
    call = channel.unary_unary(f"/booking.BookingService/{method}")
    return call(payload, timeout=5)


class TestRpcRoundTrip:
    """Test each method through a real listener."""

    def test_create_read_update_delete(self, rpc_client: BookingClient, dune: Book):
        created = rpc_client.create_book(dune, timeout=5)
        assert created.id > 0
        assert created.title == "Dune"

        assert rpc_client.read_book(created.id) == created

        updated = rpc_client.update_book(created.id, Book(title="Dune Messiah"))
        assert updated == Book(id=created.id, title="Dune Messiah")
        assert rpc_client.read_book(created.id) == updated

        assert rpc_client.delete_book(created.id).success is True
        assert rpc_client.delete_book(created.id).success is True
        with pytest.raises(NotFound):
            rpc_client.read_book(created.id)

    def test_read_missing(self, rpc_channel: grpc.Channel, rpc_client: BookingClient):
        with pytest.raises(NotFound):
            rpc_client.read_book(404)

        with pytest.raises(grpc.RpcError) as exc_info:
            raw_call(rpc_channel, "ReadBook", codec.encode(ReadBookRequest(id=404)))
        assert exc_info.value.code() == grpc.StatusCode.NOT_FOUND

    def test_update_missing(self, rpc_client: BookingClient, dune: Book):
        with pytest.raises(NotFound):
            rpc_client.update_book(404, dune)

    def test_genres_order_and_duplicates(self, rpc_client: BookingClient):
        genres = ["b", "a", "b"]
        created = rpc_client.create_book(Book(genres=genres))
        assert rpc_client.read_book(created.id).genres == genres


class TestRpcWireHandling:
    """Test raw bytes handling on the listener."""

    def test_malformed_request(self, rpc_channel: grpc.Channel):
        with pytest.raises(grpc.RpcError) as exc_info:
            raw_call(rpc_channel, "CreateBook", b"\x0a\x05\x12")
        assert exc_info.value.code() == grpc.StatusCode.INVALID_ARGUMENT

    def test_unknown_fields_in_request_are_tolerated(self, rpc_channel, rpc_client, dune):
        created = rpc_client.create_book(dune)
        payload = codec.encode(ReadBookRequest(id=created.id)) + b"\x7a\x03new"

        response = codec.decode(Book, raw_call(rpc_channel, "ReadBook", payload))

        assert response == created

    def test_empty_create_request(self, rpc_channel: grpc.Channel):
        response = codec.decode(Book, raw_call(rpc_channel, "CreateBook", b""))
        assert response.id > 0
        assert response.title == ""

    def test_status_mapping(self):
        assert grpc_status(Status.INVALID_ARGUMENT) == grpc.StatusCode.INVALID_ARGUMENT
        assert grpc_status(Status.UNAVAILABLE) == grpc.StatusCode.UNAVAILABLE
        assert grpc_status(Status.DEADLINE_EXCEEDED) == grpc.StatusCode.DEADLINE_EXCEEDED


class TestTransportEquivalence:
    """The same request gives the same result over either transport."""

    def test_create_and_read_match(self, client: TestClient, rpc_client: BookingClient, dune):
        over_http = client.post("/books", json={"book": dune.model_dump(mode="json")}).json()
        over_rpc = rpc_client.create_book(dune)

        http_book = Book.model_validate(over_http)
        assert http_book.model_copy(update={"id": 0}) == over_rpc.model_copy(update={"id": 0})

        assert rpc_client.read_book(http_book.id) == http_book
        assert Book.model_validate(client.get(f"/books/{over_rpc.id}").json()) == over_rpc

    def test_empty_create_matches(self, client: TestClient, rpc_channel: grpc.Channel):
        over_http = Book.model_validate(client.post("/books").json())
        over_rpc = codec.decode(Book, raw_call(rpc_channel, "CreateBook", b""))

        assert over_http.model_copy(update={"id": 0}) == over_rpc.model_copy(update={"id": 0})
        assert over_http.id != over_rpc.id

    def test_not_found_matches(self, client: TestClient, rpc_client: BookingClient):
        assert client.get("/books/31337").json()["code"] == NotFound.status
        with pytest.raises(NotFound):
            rpc_client.read_book(31337)


class FixedReplyChannel:
    """Channel double whose every call returns the same raw bytes."""

    def __init__(self, reply: bytes) -> None:
        self.reply = reply
        self.payloads: list[bytes] = []

    def unary_unary(self, path: str):
        def call(payload: bytes, timeout: float | None = None) -> bytes:
            self.payloads.append(payload)
            return self.reply

        return call


class TestBookingClientCodec:
    """Local codec failures surface as MalformedMessage, not as a server status."""

    def test_undecodable_response(self):
        channel = FixedReplyChannel(b"\x12\x05Dun")
        with pytest.raises(MalformedMessage):
            BookingClient(channel).read_book(1)

    def test_unencodable_request_is_never_sent(self):
        channel = FixedReplyChannel(b"")
        book = Book.model_construct(title="\ud800")

        with pytest.raises(MalformedMessage):
            BookingClient(channel).create_book(book)
        assert channel.payloads == []

    def test_request_bytes_come_from_the_codec(self):
        channel = FixedReplyChannel(codec.encode(Book(id=7, title="Dune")))

        book = BookingClient(channel).read_book(7)

        assert book == Book(id=7, title="Dune")
        assert channel.payloads == [codec.encode(ReadBookRequest(id=7))]
