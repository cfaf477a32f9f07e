"""CLI entry point for PolyQueue LSP.

This module provides the command-line interface for PolyQueue LSP,
including commands for running the server and checking the environment.

Commands:
    serve: Start the language server (default)
    detect: Show which queue system a project would bind to
    check-tools: Probe every supported CLI tool

Example:
    polyqueue-lsp serve
    polyqueue-lsp serve --tcp --port 2087
    polyqueue-lsp detect ./orders-service
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from polyqueue_lsp import __version__
from polyqueue_lsp.constants import DEFAULT_TCP_HOST, DEFAULT_TCP_PORT, SERVER_DISPLAY_NAME
from polyqueue_lsp.exceptions import AdapterError, ConfigError
from polyqueue_lsp.logging import LogContext, get_logger, setup_logging
from polyqueue_lsp.models import PolyQueueConfig

logger = get_logger(__name__)


def _success(msg: str) -> str:
    """Format success message with green checkmark."""
    return click.style("✓", fg="green") + " " + msg


def _error(msg: str) -> str:
    """Format error message with red X."""
    return click.style("✗", fg="red") + " " + msg


def _info(msg: str) -> str:
    """Format info message with blue arrow."""
    return click.style("→", fg="blue") + " " + msg


def _load_config(project_root: Path | None) -> PolyQueueConfig:
    from polyqueue_lsp.config import load_config

    try:
        return load_config(project_root=project_root)
    except ConfigError as e:
        click.echo(_error(str(e)), err=True)
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="polyqueue-lsp")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """PolyQueue LSP - language server for Redis Streams, RabbitMQ and NATS.

    Detects the queue system a project uses and provides completion,
    hover and configuration diagnostics for it.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(logging.DEBUG if verbose else logging.INFO)

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@cli.command()
@click.option("--tcp", is_flag=True, help="Listen on TCP instead of stdio")
@click.option("--host", default=DEFAULT_TCP_HOST, show_default=True, help="TCP host")
@click.option("--port", default=DEFAULT_TCP_PORT, show_default=True, type=int, help="TCP port")
def serve(tcp: bool, host: str, port: int) -> None:
    """Start the language server.

    \b
    Examples:
        polyqueue-lsp serve                  # stdio, for editors
        polyqueue-lsp serve --tcp --port 2087
    """
    # Print startup message to stderr (stdout is for the editor protocol)
    transport = f"tcp {host}:{port}" if tcp else "stdio"
    click.echo(click.style(SERVER_DISPLAY_NAME, bold=True) + f" running on {transport}", err=True)

    from polyqueue_lsp.server import start

    start(tcp=tcp, host=host, port=port)


@cli.command()
@click.argument(
    "path",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
def detect(path: Path) -> None:
    """Show which queue system PATH would be bound to."""
    from polyqueue_lsp.detector import build_adapters, detect_queue_system

    project_root = path.resolve()
    config = _load_config(project_root)
    adapters = build_adapters(config)

    with LogContext(logger, command="detect"):
        system = asyncio.run(detect_queue_system(project_root, adapters))

    if system == "none":
        click.echo(_error("No queue system detected"))
        click.echo(_info("Install redis-cli, rabbitmqctl or nats and make sure it is on PATH"))
        sys.exit(1)

    metadata = adapters[system].metadata()
    click.echo(_success(f"{metadata.name} ({metadata.cli_tool})"))
    click.echo("  " + _info(f"Features: {', '.join(metadata.features)}"))


@cli.command("check-tools")
@click.pass_context
def check_tools(ctx: click.Context) -> None:
    """Probe every supported CLI tool and report its version."""
    from polyqueue_lsp.detector import build_adapters

    verbose = ctx.obj.get("verbose", False)
    adapters = build_adapters(_load_config(Path.cwd()))

    click.echo()
    click.echo(click.style("Queue Tools", bold=True))
    click.echo()

    async def probe_all() -> dict[str, str | None]:
        results: dict[str, str | None] = {}
        for system, adapter in adapters.items():
            if not await adapter.detect():
                results[system] = None
                continue
            try:
                results[system] = await adapter.version()
            except AdapterError as e:
                if verbose:
                    click.echo(_error(str(e)), err=True)
                results[system] = "unknown version"
        return results

    results = asyncio.run(probe_all())

    for system, version in results.items():
        metadata = adapters[system].metadata()  # type: ignore[index]
        if version is None:
            click.echo("  " + _error(f"{metadata.name} ({metadata.cli_tool} not found)"))
        else:
            click.echo("  " + _success(f"{metadata.name}: {version}"))

    click.echo()
    if not any(version is not None for version in results.values()):
        click.echo(_error("No queue tools available"))
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
