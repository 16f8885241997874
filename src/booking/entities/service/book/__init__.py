"""Entity package: Book."""

from .entity import Book
from .repository import BookRepository, BookStore
from .table import BookTable

__all__ = ["Book", "BookRepository", "BookStore", "BookTable"]
