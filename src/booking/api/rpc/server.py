"""Binary RPC listener for BookingService.

grpcio carries the frames; the request and response bytes are produced and
consumed by ``src.booking.core.codec``. Requests arrive as raw bytes and are
decoded inside the handler so a decode failure can be reported as
INVALID_ARGUMENT instead of grpcio's generic deserialization error.
"""

import time
from collections.abc import Callable
from concurrent import futures

import grpc
from loguru import logger

from src.booking.core import codec
from src.booking.core.errors import BookingError, Status
from src.booking.core.schema.messages import METHODS, SERVICE_NAME, MethodSpec
from src.booking.core.schema.wire import Message
from src.booking.core.services.booking_service import BookingService, CallContext
from src.booking.runtime.config.config_data import RpcConfig

_GRPC_CODES = {code.value[0]: code for code in grpc.StatusCode}


def grpc_status(status: Status) -> grpc.StatusCode:
    return _GRPC_CODES.get(int(status), grpc.StatusCode.UNKNOWN)


def _unary_behavior(
    method: MethodSpec, handler: Callable[[Message, CallContext], Message]
) -> Callable[[bytes, grpc.ServicerContext], Message]:
    def behavior(payload: bytes, context: grpc.ServicerContext) -> Message:
        try:
            request = codec.decode(method.request_type, payload)
            return handler(request, CallContext.from_timeout(context.time_remaining()))
        except BookingError as exc:
            context.abort(grpc_status(exc.status), exc.message)

    return behavior


def build_generic_handler(service: BookingService) -> grpc.GenericRpcHandler:
    """Route every method in the method table to the matching handler."""
    handlers = {
        method.name: grpc.unary_unary_rpc_method_handler(
            _unary_behavior(method, getattr(service, method.handler_name)),
            request_deserializer=None,
            response_serializer=codec.encode,
        )
        for method in METHODS
    }
    return grpc.method_handlers_generic_handler(SERVICE_NAME, handlers)


class RequestLoggingInterceptor(grpc.ServerInterceptor):
    """Log start/end of each call with status, duration and request id."""

    def intercept_service(self, continuation, handler_call_details):
        handler = continuation(handler_call_details)
        if handler is None or handler.unary_unary is None:
            return handler

        method = handler_call_details.method
        metadata = dict(handler_call_details.invocation_metadata or ())
        request_id = metadata.get("x-request-id", "-")
        inner = handler.unary_unary

        def logged(request, context):
            start = time.perf_counter()
            with logger.contextualize(request_id=request_id, rpc_method=method):
                logger.info("rpc.start")
                code = grpc.StatusCode.UNKNOWN
                try:
                    response = inner(request, context)
                    code = grpc.StatusCode.OK
                    return response
                finally:
                    code = context.code() or code
                    logger.bind(
                        status_code=code.name,
                        duration_ms=round((time.perf_counter() - start) * 1000, 1),
                    ).info("rpc.end")

        return grpc.unary_unary_rpc_method_handler(
            logged,
            request_deserializer=handler.request_deserializer,
            response_serializer=handler.response_serializer,
        )


class RpcServer:
    """The BookingService RPC listener."""

    def __init__(self, service: BookingService, config: RpcConfig) -> None:
        self._config = config
        self._server = grpc.server(
            futures.ThreadPoolExecutor(max_workers=config.max_workers),
            interceptors=[RequestLoggingInterceptor()],
        )
        self._server.add_generic_rpc_handlers((build_generic_handler(service),))
        self.port = self._server.add_insecure_port(config.address)
        if self.port == 0:
            raise RuntimeError(f"Failed to bind RPC listener on {config.address}")

    def start(self) -> None:
        self._server.start()
        logger.info("RPC server listening on {}:{}", self._config.host, self.port)

    def stop(self, grace: float | None = None) -> None:
        grace = self._config.grace_period if grace is None else grace
        logger.info("Stopping RPC server (grace {}s)", grace)
        self._server.stop(grace).wait()
