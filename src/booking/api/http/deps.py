"""FastAPI dependency implementations."""

from __future__ import annotations

import re

from fastapi import Depends, Header, Request

from src.booking.api.http.app_data import ApplicationDependencies
from src.booking.core.errors import MalformedMessage
from src.booking.core.services.booking_service import BookingService, CallContext
from src.booking.core.services.database.db_session import DbSessionService

_TIMEOUT_PATTERN = re.compile(r"^(\d{1,8})([HMSmun])$")
_TIMEOUT_UNITS = {
    "H": 3600.0,
    "M": 60.0,
    "S": 1.0,
    "m": 1e-3,
    "u": 1e-6,
    "n": 1e-9,
}


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    """Get the process-wide dependencies built at startup."""
    return request.app.state.app_dependencies


def get_database_service(
    deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> DbSessionService:
    return deps.database_service


def get_booking_service(
    deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> BookingService:
    """Get the handler set shared with the RPC listener."""
    return deps.booking_service


def parse_grpc_timeout(value: str) -> float:
    """Parse a ``Grpc-Timeout`` header value (``100m``, ``2S``, ...) into seconds."""
    match = _TIMEOUT_PATTERN.match(value.strip())
    if match is None:
        raise MalformedMessage(f"invalid Grpc-Timeout header: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _TIMEOUT_UNITS[unit]


def get_call_context(
    grpc_timeout: str | None = Header(default=None, alias="Grpc-Timeout"),
) -> CallContext:
    """Carry the caller's deadline, if any, into the handlers."""
    if grpc_timeout is None:
        return CallContext()
    return CallContext.from_timeout(parse_grpc_timeout(grpc_timeout))
