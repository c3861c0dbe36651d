"""
FastMCP server wrapper for one tool server.

Exposes a server's Dispatcher over one of two transports, chosen once at
startup from the configuration:
- StreamTransport: MCP over stdin/stdout
- EventTransport: MCP over HTTP server-sent events (subscribe + message post)
"""

import asyncio
import logging
import socket
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import TextContent
from pydantic import Field

from onboarding_os.config import ServerConfig
from onboarding_os.core import Dispatcher, Failure, InvocationResult, ToolRegistry
from onboarding_os.servers import ServerSpec

logger = logging.getLogger(__name__)


class ServerState(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    DISPATCHING = "dispatching"
    TERMINATING = "terminating"


@dataclass(frozen=True)
class StreamTransport:
    """Line-oriented MCP over stdin/stdout; one caller, one request at a time."""

    name = "stdio"


@dataclass(frozen=True)
class EventTransport:
    """
    MCP over HTTP server-sent events.

    Attributes:
        host: Bind address
        port: Bind port
        subscribe_path: Path that opens the event stream
    """

    host: str
    port: int
    subscribe_path: str = "/sse"
    name = "sse"

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{self.subscribe_path}"


Transport = Union[StreamTransport, EventTransport]


def select_transport(config: ServerConfig) -> Transport:
    """A configured port selects EventTransport; otherwise StreamTransport."""
    if config.port is None:
        return StreamTransport()
    return EventTransport(host=config.host, port=config.port)


class RegistryTool(Tool):
    """FastMCP tool that forwards calls to a ToolServer's dispatcher."""

    server: Any = Field(default=None, exclude=True, repr=False)

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        # Handlers may block on subprocesses; keep the event loop free
        result = await asyncio.to_thread(self.server.invoke, self.name, arguments)
        if isinstance(result, Failure):
            raise ToolError(result.text)
        return ToolResult(content=[TextContent(type="text", text=result.text)])


@dataclass
class ToolServer:
    """
    One tool server process: registry, dispatcher and transport.

    Attributes:
        spec: Catalog entry of the server being run
        config: Server configuration
        registry: Tool registry (built from spec when not given)
        transport: Transport selected from config at construction
        state: Current lifecycle state
    """

    spec: ServerSpec
    config: ServerConfig = field(default_factory=ServerConfig)
    registry: Optional[ToolRegistry] = None
    transport: Transport = field(init=False)
    state: ServerState = field(default=ServerState.STARTING, init=False)
    dispatcher: Dispatcher = field(init=False, repr=False)
    tools: List[RegistryTool] = field(default_factory=list, init=False, repr=False)
    _app: Optional[FastMCP] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        if self.registry is None:
            self.registry = self.spec.build_registry(self.config)
        self.dispatcher = Dispatcher(self.registry)
        self.transport = select_transport(self.config)

        self._app = FastMCP(self.spec.name)
        self._register_tools()

    @property
    def app(self) -> FastMCP:
        return self._app

    def _register_tools(self):
        """Mirror every registry entry as a FastMCP tool, in registration order."""
        for descriptor in self.registry.list():
            tool = RegistryTool(
                name=descriptor.name,
                description=descriptor.description,
                parameters=descriptor.to_dict()["inputSchema"],
                server=self,
            )
            self._app.add_tool(tool)
            self.tools.append(tool)

    def invoke(self, tool_name: str, arguments: Optional[Mapping[str, Any]] = None) -> InvocationResult:
        """Dispatch one request at a time, tracking the DISPATCHING state around it."""
        with self._lock:
            previous = self.state
            self.state = ServerState.DISPATCHING
            try:
                return self.dispatcher.dispatch(tool_name, arguments)
            finally:
                self.state = previous

    def _check_port_available(self, host: str, port: int) -> bool:
        """
        Check if port is available for binding.

        Args:
            host: Host address to check
            port: Port number to check

        Returns:
            True if port is available, False otherwise
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind((host, port))
                return True
        except OSError:
            return False

    def start(self):
        """
        Serve requests on the selected transport until the process is signalled.

        Raises:
            RuntimeError: If the port is unavailable or FastMCP fails to start
        """
        transport = self.transport

        if isinstance(transport, StreamTransport):
            self.state = ServerState.LISTENING
            logger.info("%s Server running on stdio", self.spec.title)
            try:
                self._app.run(transport="stdio")
            except Exception as e:
                raise RuntimeError(f"Failed to start {self.spec.name} with stdio transport: {e}") from e

        elif isinstance(transport, EventTransport):
            if not self._check_port_available(transport.host, transport.port):
                raise RuntimeError(
                    f"Port {transport.port} already in use. "
                    f"Choose a different port or stop the conflicting service."
                )
            self.state = ServerState.LISTENING
            logger.info("%s Server running on %s", self.spec.title, transport.url)
            try:
                self._app.run(
                    transport="sse",
                    host=transport.host,
                    port=transport.port,
                    path=transport.subscribe_path,
                )
            except Exception as e:
                raise RuntimeError(
                    f"Failed to start {self.spec.name} on {transport.host}:{transport.port}: {e}"
                ) from e

    def stop(self):
        self.state = ServerState.TERMINATING
        logger.info("%s Server shutting down", self.spec.title)
