
from __future__ import annotations

import logging
import sys

import typer

from config import Settings
from fastmcp_app import create_mcp


cli = typer.Typer(add_completion=False)


def _configure_logging(level: str) -> None:
    # stdout is the stdio transport; logs go to stderr.
    logging.basicConfig(
        stream=sys.stderr,
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind (HTTP transport)."),
    port: int = typer.Option(None, help="Port to bind (HTTP transport)."),
    transport: str = typer.Option("stdio", help="Transport: 'stdio' or 'http'."),
    log_level: str = typer.Option(None, help="Log level (defaults to MCP_LOG_LEVEL or INFO)."),
) -> None:
    """Start the FastMCP server (defaults to stdio transport)."""

    settings = Settings.from_env()
    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port
    if log_level is not None:
        settings.log_level = log_level.upper()
    _configure_logging(settings.log_level)

    mcp = create_mcp(settings)
    if transport == "stdio":
        mcp.run()
    elif transport == "http":
        app = mcp.http_app(path="/mcp")
        import uvicorn
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    else:
        raise typer.BadParameter(f"unknown transport {transport!r}", param_hint="--transport")


@cli.callback(invoke_without_command=True)
def _default(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        run(host=None, port=None, transport="stdio", log_level=None)


if __name__ == "__main__":
    cli()
