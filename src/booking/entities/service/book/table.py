"""Book database table model."""

from sqlalchemy import JSON, BigInteger, Column, Integer, String
from sqlalchemy.dialects.postgresql import ARRAY
from sqlmodel import Field, SQLModel

# BIGINT identity on PostgreSQL; SQLite only auto-increments INTEGER primary keys.
_ID_TYPE = BigInteger().with_variant(Integer(), "sqlite")
# Ordered TEXT[] on PostgreSQL, JSON list elsewhere.
_GENRES_TYPE = JSON().with_variant(ARRAY(String()), "postgresql")


class BookTable(SQLModel, table=True):
    """Persistence model for books.

    Separate from the wire ``Book`` so storage concerns (column types,
    identity generation) stay out of the schema.
    """

    __tablename__ = "books"

    id: int | None = Field(
        default=None,
        sa_column=Column(_ID_TYPE, primary_key=True, autoincrement=True),
    )
    title: str = ""
    author: str = ""
    year: int = 0
    language: str = ""
    genres: list[str] = Field(
        default_factory=list,
        sa_column=Column(_GENRES_TYPE, nullable=False),
    )
    price: int = 0
    quantity: int = 0
