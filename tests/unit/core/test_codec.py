"""Unit tests for the binary wire codec."""

from typing import Annotated

import pytest
from pydantic import Field

from src.booking.core import codec
from src.booking.core.errors import MalformedMessage
from src.booking.core.schema.messages import (
    CreateBookRequest,
    DeleteBookResponse,
    ReadBookRequest,
    UpdateBookRequest,
)
from src.booking.core.schema.wire import Message, WireField, WireKind
from src.booking.entities.service.book import Book


class Scores(Message):
    """Message with a packable repeated field, used only by these tests."""

    values: Annotated[list[int], WireField(1, WireKind.INT32, repeated=True)] = Field(
        default_factory=list
    )


class TestVarint:
    """Test varint primitives."""

    def test_single_byte(self):
        assert codec.encode_varint(1) == b"\x01"
        assert codec.encode_varint(127) == b"\x7f"

    def test_multi_byte(self):
        assert codec.encode_varint(150) == b"\x96\x01"
        assert codec.encode_varint(300) == b"\xac\x02"

    def test_negative_uses_ten_bytes(self):
        """Negative values are written as 64-bit two's complement."""
        assert codec.encode_varint(-1) == b"\xff" * 9 + b"\x01"

    def test_decode_returns_new_position(self):
        assert codec.decode_varint(b"\x00\xac\x02\x05", 1) == (300, 3)

    def test_decode_truncated(self):
        with pytest.raises(MalformedMessage):
            codec.decode_varint(b"\x80\x80", 0)

    def test_decode_overlong(self):
        with pytest.raises(MalformedMessage):
            codec.decode_varint(b"\xff" * 11, 0)


class TestEncode:
    """Test message encoding."""

    def test_zero_values_are_not_written(self):
        assert codec.encode(Book()) == b""
        assert codec.encode(DeleteBookResponse()) == b""

    def test_known_byte_layout(self):
        assert codec.encode(Book(id=150)) == b"\x08\x96\x01"
        assert codec.encode(Book(title="Dune")) == b"\x12\x04Dune"
        assert codec.encode(DeleteBookResponse(success=True)) == b"\x08\x01"

    def test_fields_written_in_tag_order(self):
        assert codec.encode(Book(year=1965, id=1)) == b"\x08\x01\x20\xad\x0f"

    def test_repeated_strings_written_one_per_element(self):
        data = codec.encode(Book(genres=["a", "b", "a"]))
        assert data == b"\x32\x01a\x32\x01b\x32\x01a"

    def test_repeated_scalars_are_packed(self):
        assert codec.encode(Scores(values=[1, 2, 300])) == b"\x0a\x04\x01\x02\xac\x02"

    def test_embedded_message_is_length_prefixed(self):
        request = CreateBookRequest(book=Book(title="x"))
        assert codec.encode(request) == b"\x0a\x03\x12\x01x"

    def test_present_but_empty_message_is_written(self):
        assert codec.encode(CreateBookRequest(book=Book())) == b"\x0a\x00"
        assert codec.encode(CreateBookRequest()) == b""

    def test_negative_int32_sign_extended(self):
        assert codec.encode(Book(year=-1)) == b"\x20" + b"\xff" * 9 + b"\x01"

    def test_non_ascii_string(self):
        assert codec.encode(Book(title="Łódź")) == b"\x12\x07" + "Łódź".encode()


    def test_unencodable_string(self):
        """A lone surrogate cannot be written as UTF-8."""
        book = Book.model_construct(title="\ud800")
        with pytest.raises(MalformedMessage):
            codec.encode(book)

class TestDecode:
    """Test message decoding."""

    def test_empty_input_gives_zero_message(self):
        assert codec.decode(Book, b"") == Book()

    def test_full_book(self, dune):
        dune.id = 42
        assert codec.decode(Book, codec.encode(dune)) == dune

    def test_fields_in_any_order(self):
        data = b"\x20\xad\x0f" + b"\x12\x04Dune" + b"\x08\x07"
        assert codec.decode(Book, data) == Book(id=7, title="Dune", year=1965)

    def test_last_scalar_occurrence_wins(self):
        assert codec.decode(Book, b"\x12\x01a\x12\x01b").title == "b"

    def test_negative_values(self):
        book = codec.decode(Book, codec.encode(Book(id=-5, year=-1965, price=-1)))
        assert (book.id, book.year, book.price) == (-5, -1965, -1)

    def test_int32_keeps_low_32_bits(self):
        data = b"\x20" + codec.encode_varint(2**32 + 7)
        assert codec.decode(Book, data).year == 7

    def test_genres_keep_order_and_duplicates(self):
        genres = ["sci-fi", "classic", "sci-fi", ""]
        assert codec.decode(Book, codec.encode(Book(genres=genres))).genres == genres

    def test_packed_and_unpacked_both_accepted(self):
        assert codec.decode(Scores, b"\x0a\x03\x01\x02\x03").values == [1, 2, 3]
        assert codec.decode(Scores, b"\x08\x01\x08\x02").values == [1, 2]
        assert codec.decode(Scores, b"\x08\x01\x0a\x02\x02\x03").values == [1, 2, 3]

    def test_embedded_message_occurrences_merge(self):
        data = b"\x0a\x03\x12\x01a" + b"\x0a\x02\x20\x05"
        request = codec.decode(CreateBookRequest, data)
        assert request.book == Book(title="a", year=5)

    def test_present_empty_message_decodes_to_instance(self):
        assert codec.decode(CreateBookRequest, b"\x0a\x00").book == Book()
        assert codec.decode(CreateBookRequest, b"").book is None

    def test_update_request(self):
        request = UpdateBookRequest(id=9, book=Book(title="T", genres=["x"]))
        assert codec.decode(UpdateBookRequest, codec.encode(request)) == request


class TestUnknownFields:
    """Test preservation of fields the schema does not declare."""

    def test_unknown_tag_is_kept_and_reemitted(self):
        extra = b"\x78\x05"  # tag 15, varint 5
        data = codec.encode(Book(id=3, title="Dune")) + extra
        book = codec.decode(Book, data)

        assert book.id == 3
        assert book.title == "Dune"
        assert [field.tag for field in book.unknown_fields] == [15]
        assert book.unknown_fields[0].data == extra
        assert codec.encode(book) == data

    def test_unknown_length_delimited_and_fixed_width(self):
        extra = b"\x7a\x02hi" + b"\x81\x01" + b"\x00" * 8 + b"\x85\x01" + b"\x00" * 4
        book = codec.decode(Book, extra)
        assert [field.tag for field in book.unknown_fields] == [15, 16, 16]
        assert codec.encode(book) == extra

    def test_known_tag_with_wrong_wire_type_is_kept(self):
        book = codec.decode(Book, b"\x10\x01")  # title sent as a varint
        assert book.title == ""
        assert book.unknown_fields[0].data == b"\x10\x01"

    def test_unknown_fields_survive_in_request(self):
        request = codec.decode(ReadBookRequest, b"\x08\x02\x10\x03")
        assert request.id == 2
        assert len(request.unknown_fields) == 1

    def test_unknown_fields_take_part_in_equality(self):
        assert codec.decode(Book, b"\x78\x05") != Book()


class TestMalformed:
    """Test rejection of structurally invalid input."""

    @pytest.mark.parametrize(
        ("message_type", "data"),
        [
            (Book, b"\x08"),  # key without value
            (Book, b"\x08\x80"),  # truncated varint value
            (Book, b"\x12\x05Dun"),  # length past end of input
            (Book, b"\x7a\x05ab"),  # unknown field, length past end of input
            (Book, b"\x79\x00\x00"),  # unknown fixed64, too short
            (Book, b"\x00\x01"),  # tag 0
            (Book, b"\x0b"),  # group start
            (Book, b"\x0e\x00"),  # wire type 6
            (Book, b"\x12\x01\xff"),  # invalid UTF-8
            (CreateBookRequest, b"\x0a\x02\x12\x05"),  # truncated embedded message
        ],
    )
    def test_raises_malformed_message(self, message_type, data):
        with pytest.raises(MalformedMessage):
            codec.decode(message_type, data)

    def test_out_of_range_int32_is_never_produced(self):
        """Decoded int32 values always fit the declared range."""
        data = b"\x20" + codec.encode_varint(2**31)
        assert codec.decode(Book, data).year == -(2**31)
