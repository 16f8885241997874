"""Commands that run the BookingService listeners."""

import signal
import threading

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.panel import Panel

from src.booking.runtime.context import get_config

console = Console()


def _start_rpc(deps, host: str | None, port: int | None):
    from src.booking.api.rpc.server import RpcServer

    rpc_config = get_config().rpc.model_copy(
        update={k: v for k, v in {"host": host, "port": port}.items() if v is not None}
    )
    server = RpcServer(deps.booking_service, rpc_config)
    server.start()
    return server


def serve_rpc(
    host: str | None = typer.Option(None, help="Bind host (defaults to config rpc.host)"),
    port: int | None = typer.Option(None, help="Bind port (defaults to config rpc.port)"),
) -> None:
    """Start only the binary RPC listener."""
    from src.booking.api.http.app_data import build_dependencies
    from src.booking.api.utils.app_startup import configure_logging

    configure_logging()
    console.print(Panel.fit("[bold green]BookingService RPC listener[/bold green]"))
    server = _start_rpc(build_dependencies(), host, port)

    stop = threading.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, lambda *_: stop.set())
    stop.wait()
    server.stop()


def serve_http(
    host: str | None = typer.Option(None, help="Bind host (defaults to config app.host)"),
    port: int | None = typer.Option(None, help="Bind port (defaults to config app.port)"),
) -> None:
    """Start only the HTTP/JSON gateway."""
    config = get_config().app
    console.print(Panel.fit("[bold green]BookingService HTTP gateway[/bold green]"))
    uvicorn.run(
        "src.booking.api.http.app:app",
        host=host or config.host,
        port=port or config.port,
        log_config=None,
    )


def serve_all(
    rpc_port: int | None = typer.Option(None, help="RPC port (defaults to config rpc.port)"),
    http_port: int | None = typer.Option(None, help="HTTP port (defaults to config app.port)"),
) -> None:
    """Start both listeners in one process over one shared handler set."""
    from src.booking.api.http.app import app
    from src.booking.api.http.app_data import build_dependencies

    config = get_config()
    console.print(
        Panel.fit("[bold green]BookingService: RPC listener + HTTP gateway[/bold green]")
    )
    deps = build_dependencies()
    app.state.app_dependencies = deps
    server = _start_rpc(deps, None, rpc_port)
    try:
        uvicorn.run(app, host=config.app.host, port=http_port or config.app.port, log_config=None)
    finally:
        logger.info("Gateway stopped; shutting down RPC listener")
        server.stop()


def init_db() -> None:
    """Create the books table."""
    from src.booking.runtime.init_db import init_db as run_init_db

    run_init_db()
    console.print("[green]books table ready[/green]")
