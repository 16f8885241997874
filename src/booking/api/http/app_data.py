from dataclasses import dataclass

from src.booking.core.services.booking_service import BookingService
from src.booking.core.services.database.db_session import DbSessionService
from src.booking.entities.service.book import BookRepository


@dataclass
class ApplicationDependencies:
    database_service: DbSessionService
    booking_service: BookingService


def build_dependencies(database_service: DbSessionService | None = None) -> ApplicationDependencies:
    """Wire the storage collaborator and the handlers for one process."""
    database_service = database_service or DbSessionService()
    return ApplicationDependencies(
        database_service=database_service,
        booking_service=BookingService(BookRepository(database_service)),
    )
