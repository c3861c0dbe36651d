"""onboarding-os command line."""

import typer

from onboarding_os import __version__
from onboarding_os.cli.commands import server as server_commands

app = typer.Typer(
    name="onboarding-os",
    help="Developer onboarding MCP tool servers",
    no_args_is_help=True,
)

app.command("list")(server_commands.list_servers)
app.command("tools")(server_commands.tools)
app.command("call")(server_commands.call)
app.command("serve")(server_commands.serve)


def _version_callback(value: bool):
    if value:
        typer.echo(f"onboarding-os {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log dispatch details to stderr"),
):
    """Developer onboarding MCP tool servers."""
    # call and tool commands print failures themselves
    server_commands.configure_logging("DEBUG" if verbose else "ERROR")


def main():
    app()


__all__ = ["app", "main"]
