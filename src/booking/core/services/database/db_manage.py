"""Schema management for the books table."""

from loguru import logger
from sqlalchemy import Engine
from sqlmodel import SQLModel

from src.booking.core.services.database.db_session import DbSessionService


class DbManageService:
    def __init__(self, engine: Engine | None = None):
        self._engine = engine if engine is not None else DbSessionService().engine

    def create_all(self) -> None:
        """Create all database tables."""
        from src.booking.entities.service.book import BookTable  # noqa: F401

        SQLModel.metadata.create_all(self._engine)
        logger.info("Database initialized with tables.")
