"""
Catalog of the five tool servers.

Each server module exposes create_registry(), which loads its own fixtures
and returns a fully populated ToolRegistry. Servers never share state.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from onboarding_os.core import ToolRegistry

from . import docs, github, progress, slack, terminal


@dataclass(frozen=True)
class ServerSpec:
    """
    Static description of one tool server.

    Attributes:
        key: Short CLI name (e.g. "docs")
        name: Server name reported to MCP clients (e.g. "docs-mcp")
        title: Display name used in logs and tables
        default_port: Port used when the server is run over HTTP
        factory: Builds the server's registry
        options: Maps a ServerConfig to extra factory keyword arguments
    """

    key: str
    name: str
    title: str
    default_port: int
    factory: Callable[..., ToolRegistry]
    options: Optional[Callable[[Any], Dict[str, Any]]] = None

    def build_registry(self, config: Optional[Any] = None) -> ToolRegistry:
        kwargs = self.options(config) if (self.options and config is not None) else {}
        return self.factory(**kwargs)


SERVERS: Dict[str, ServerSpec] = {
    spec.key: spec
    for spec in (
        ServerSpec("github", github.SERVER_NAME, "GitHub MCP", 4001, github.create_registry),
        ServerSpec("docs", docs.SERVER_NAME, "Docs MCP", 4002, docs.create_registry),
        ServerSpec(
            "terminal",
            terminal.SERVER_NAME,
            "Terminal MCP",
            4003,
            terminal.create_registry,
            terminal.registry_options,
        ),
        ServerSpec("slack", slack.SERVER_NAME, "Slack MCP", 4004, slack.create_registry),
        ServerSpec("progress", progress.SERVER_NAME, "Progress MCP", 4005, progress.create_registry),
    )
}


def get_server(key: str) -> ServerSpec:
    """
    Look up a server by key or MCP name.

    Raises:
        KeyError: If no server matches
    """
    if key in SERVERS:
        return SERVERS[key]
    for spec in SERVERS.values():
        if spec.name == key:
            return spec
    raise KeyError(f"Unknown server '{key}'. Valid servers: {', '.join(SERVERS)}")


def server_keys() -> List[str]:
    return list(SERVERS)


__all__ = ["SERVERS", "ServerSpec", "get_server", "server_keys"]
