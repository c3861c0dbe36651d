"""Tool server commands: list, tools, call and serve."""

import dataclasses
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from onboarding_os.config import CONFIG_FILENAME, ServerConfig
from onboarding_os.core import Dispatcher, Failure, render_json, to_envelope
from onboarding_os.server import EventTransport, ToolServer
from onboarding_os.servers import SERVERS, ServerSpec, get_server

console = Console()
# stdout belongs to the stdio transport while a server runs
err_console = Console(stderr=True)


def configure_logging(level: str = "WARNING"):
    """Route all log records to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _get_project_root() -> Path:
    """Get project root directory (contains .onboarding-os.yaml)."""
    cwd = Path.cwd()

    current = cwd
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists():
            return current
        current = current.parent

    # Not found - use current directory
    return cwd


def _resolve_server(name: str) -> ServerSpec:
    try:
        return get_server(name)
    except KeyError as e:
        err_console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)


def _parse_arguments(pairs: List[str], raw_json: Optional[str]) -> Dict[str, Any]:
    """
    Merge --json and --arg options into one arguments mapping.

    --arg values stay strings; the dispatcher coerces numeric strings for
    numeric parameters. --arg wins over a key from --json.

    Raises:
        typer.BadParameter: On malformed JSON or a pair without "="
    """
    arguments: Dict[str, Any] = {}
    if raw_json:
        try:
            parsed = json.loads(raw_json)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"Invalid JSON: {e}", param_hint="--json")
        if not isinstance(parsed, dict):
            raise typer.BadParameter("Expected a JSON object", param_hint="--json")
        arguments.update(parsed)

    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'", param_hint="--arg")
        arguments[key] = value
    return arguments


def _setup_signal_handlers(server: ToolServer):
    """
    Setup signal handlers for graceful shutdown.

    Handles SIGTERM and SIGINT (Ctrl+C): marks the server as terminating and
    exits cleanly.
    """
    def signal_handler(signum, frame):
        err_console.print(f"\n[yellow]Shutting down {server.spec.title} server...[/yellow]")
        server.stop()
        err_console.print("[green]Server stopped successfully[/green]")
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def list_servers():
    """
    List the available tool servers.

    Examples:
        onboarding-os list
    """
    table = Table(title="Tool Servers")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    table.add_column("Tools", justify="right")
    table.add_column("Default Port", justify="right")

    for spec in SERVERS.values():
        registry = spec.build_registry()
        table.add_row(spec.key, spec.name, str(len(registry)), str(spec.default_port))

    console.print(table)


def tools(
    server: str = typer.Argument(..., help="Server key or name (e.g. docs, docs-mcp)"),
):
    """
    List the tools one server exposes, in registration order.

    Examples:
        onboarding-os tools terminal
    """
    spec = _resolve_server(server)
    registry = spec.build_registry()

    table = Table(title=f"{spec.title} Tools")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Required")
    table.add_column("Description")
    for descriptor in registry.list():
        table.add_row(descriptor.name, ", ".join(descriptor.required) or "-", descriptor.description)

    console.print(table)


def call(
    server: str = typer.Argument(..., help="Server key or name"),
    tool: str = typer.Argument(..., help="Tool name"),
    arg: List[str] = typer.Option([], "--arg", "-a", help="Argument as key=value (repeatable)"),
    raw_json: Optional[str] = typer.Option(None, "--json", help="Arguments as a JSON object"),
    envelope: bool = typer.Option(False, help="Print the full result envelope instead of its text"),
):
    """
    Invoke one tool in-process and print its result.

    Exits with code 1 when the invocation fails.

    Examples:
        onboarding-os call docs search_docs --arg query=setup

        onboarding-os call github get_recent_prs --json '{"owner": "acme", "repo": "app", "count": 2}'

        onboarding-os call progress get_leaderboard --envelope
    """
    spec = _resolve_server(server)
    arguments = _parse_arguments(arg, raw_json)

    try:
        config = ServerConfig.load(_get_project_root(), server=spec.key)
    except ValueError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    dispatcher = Dispatcher(spec.build_registry(config))
    result = dispatcher.dispatch(tool, arguments)

    if envelope:
        typer.echo(render_json(to_envelope(result)))
    elif isinstance(result, Failure):
        err_console.print(result.text, markup=False, highlight=False)
    else:
        typer.echo(result.text)

    if isinstance(result, Failure):
        raise typer.Exit(1)


def serve(
    server: str = typer.Argument(..., help="Server key or name"),
    host: str = typer.Option(None, help="Bind host (HTTP only, overrides config)"),
    port: int = typer.Option(None, help="Bind port; selects the HTTP event-stream transport"),
    stdio: bool = typer.Option(False, "--stdio", help="Force the stdio transport even if a port is configured"),
    config_file: bool = typer.Option(True, help=f"Load from {CONFIG_FILENAME}"),
):
    """
    Run one tool server until interrupted.

    Configuration is loaded from .onboarding-os.yaml if it exists, then
    environment variables (ONBOARDING_HOST, PORT, ONBOARDING_LOG_LEVEL,
    ONBOARDING_COMMAND_TIMEOUT). Command-line options override both.

    Examples:
        # stdio transport
        onboarding-os serve docs

        # HTTP server-sent events on the server's usual port
        onboarding-os serve docs --port 4002

        # Ignore config file
        onboarding-os serve terminal --no-config-file
    """
    spec = _resolve_server(server)
    project_root = _get_project_root()

    try:
        if config_file:
            config = ServerConfig.load(project_root, server=spec.key)
        else:
            config = ServerConfig(project_root=project_root)

        overrides: Dict[str, Any] = {}
        if host is not None:
            overrides["host"] = host
        if port is not None:
            overrides["port"] = port
        if stdio:
            overrides["port"] = None
        if overrides:
            config = dataclasses.replace(config, **overrides)

        configure_logging(config.log_level)

        tool_server = ToolServer(spec, config)
        _setup_signal_handlers(tool_server)

        err_console.print(f"[green]Starting {spec.title} server...[/green]")
        if isinstance(tool_server.transport, EventTransport):
            err_console.print(f"Transport: sse ({tool_server.transport.url})")
        else:
            err_console.print("Transport: stdio")
        err_console.print(f"Tools: {len(tool_server.registry)}")
        err_console.print("\n[dim]Press Ctrl+C to stop server[/dim]\n")

        tool_server.start()
    except ValueError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)
    except RuntimeError as e:
        err_console.print(f"[red]Error starting server:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Server stopped by user[/yellow]")
        raise typer.Exit(0)
