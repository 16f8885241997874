"""Main CLI application module."""

import typer

from .serve_commands import init_db, serve_all, serve_http, serve_rpc

app = typer.Typer(
    help="BookingService command line",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command(name="serve")(serve_all)
app.command(name="serve-rpc")(serve_rpc)
app.command(name="serve-http")(serve_http)
app.command(name="init-db")(init_db)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
