"""Tests for ToolServer, transports and the FastMCP binding."""

import asyncio
import logging
import socket
import threading
from unittest.mock import MagicMock

import pytest
from fastmcp.exceptions import ToolError

from onboarding_os.config import ServerConfig
from onboarding_os.core import ToolRegistry
from onboarding_os.server import (
    EventTransport,
    ServerState,
    StreamTransport,
    ToolServer,
    select_transport,
)
from onboarding_os.servers import get_server


@pytest.fixture
def docs_server():
    return ToolServer(get_server("docs"))


class TestSelectTransport:
    """Test transport selection from configuration."""

    def test_no_port_means_stdio(self):
        assert select_transport(ServerConfig()) == StreamTransport()

    def test_port_means_sse(self):
        transport = select_transport(ServerConfig(host="0.0.0.0", port=4002))

        assert transport == EventTransport(host="0.0.0.0", port=4002)
        assert transport.url == "http://0.0.0.0:4002/sse"


class TestToolServer:
    """Test server construction and dispatch."""

    def test_initialization(self, docs_server):
        assert docs_server.state == ServerState.STARTING
        assert isinstance(docs_server.transport, StreamTransport)
        assert docs_server.app is not None
        assert [t.name for t in docs_server.tools] == [
            "search_docs",
            "get_document",
            "get_onboarding_checklist",
            "list_all_docs",
        ]

    def test_tool_schema_exposed_unchanged(self, docs_server):
        expected = docs_server.registry.list()[0].to_dict()["inputSchema"]

        assert docs_server.tools[0].parameters == expected
        assert docs_server.tools[0].description == "Search internal documentation for answers to questions"

    def test_fastmcp_sees_all_tools(self, docs_server):
        tools = asyncio.run(docs_server.app.get_tools())

        assert list(tools) == ["search_docs", "get_document", "get_onboarding_checklist", "list_all_docs"]

    def test_invoke_restores_state(self, docs_server):
        docs_server.state = ServerState.LISTENING

        result = docs_server.invoke("list_all_docs")

        assert not result.is_error
        assert docs_server.state == ServerState.LISTENING

    def test_dispatching_state_during_call(self):
        seen = []
        registry = ToolRegistry("probe-mcp")

        @registry.tool("probe", "Record the server state")
        def probe(args):
            seen.append(server.state)
            return {}

        server = ToolServer(get_server("docs"), registry=registry)
        server.state = ServerState.LISTENING
        server.invoke("probe")

        assert seen == [ServerState.DISPATCHING]
        assert [t.name for t in server.tools] == ["probe"]

    def test_registry_tool_success(self, docs_server):
        result = asyncio.run(docs_server.tools[1].run({"docId": "faq"}))

        assert result.content[0].type == "text"
        assert '"id": "faq"' in result.content[0].text

    def test_registry_tool_runs_off_the_event_loop(self):
        """Blocking handlers run in a worker thread, not on the loop thread."""
        threads = []
        registry = ToolRegistry("thread-mcp")

        @registry.tool("where", "Record the calling thread")
        def where(args):
            threads.append(threading.get_ident())
            return {}

        server = ToolServer(get_server("docs"), registry=registry)

        async def call():
            await server.tools[0].run({})
            return threading.get_ident()

        loop_thread = asyncio.run(call())

        assert len(threads) == 1
        assert threads[0] != loop_thread

    def test_registry_tool_failure(self, docs_server):
        with pytest.raises(ToolError, match="Error: Document not found: missing"):
            asyncio.run(docs_server.tools[1].run({"docId": "missing"}))

    def test_stop(self, docs_server):
        docs_server.stop()

        assert docs_server.state == ServerState.TERMINATING


class TestStart:
    """Test transport startup."""

    def test_port_check(self, docs_server):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 0))
            s.listen()
            busy_port = s.getsockname()[1]

            assert docs_server._check_port_available("127.0.0.1", busy_port) is False

    def test_stdio(self, docs_server, monkeypatch, caplog):
        run = MagicMock()
        monkeypatch.setattr(docs_server.app, "run", run)

        with caplog.at_level(logging.INFO, logger="onboarding_os.server"):
            docs_server.start()

        run.assert_called_once_with(transport="stdio")
        assert docs_server.state == ServerState.LISTENING
        assert "Docs MCP Server running on stdio" in caplog.text

    def test_sse(self, monkeypatch, caplog):
        server = ToolServer(get_server("slack"), ServerConfig(port=4004))
        run = MagicMock()
        monkeypatch.setattr(server.app, "run", run)
        monkeypatch.setattr(server, "_check_port_available", lambda host, port: True)

        with caplog.at_level(logging.INFO, logger="onboarding_os.server"):
            server.start()

        run.assert_called_once_with(transport="sse", host="127.0.0.1", port=4004, path="/sse")
        assert "Slack MCP Server running on http://127.0.0.1:4004/sse" in caplog.text

    def test_sse_port_in_use(self, monkeypatch):
        server = ToolServer(get_server("slack"), ServerConfig(port=4004))
        run = MagicMock()
        monkeypatch.setattr(server.app, "run", run)
        monkeypatch.setattr(server, "_check_port_available", lambda host, port: False)

        with pytest.raises(RuntimeError, match="Port 4004 already in use"):
            server.start()

        run.assert_not_called()
        assert server.state == ServerState.STARTING

    def test_start_failure_wrapped(self, docs_server, monkeypatch):
        monkeypatch.setattr(docs_server.app, "run", MagicMock(side_effect=OSError("stdin closed")))

        with pytest.raises(RuntimeError, match="Failed to start docs-mcp with stdio transport: stdin closed"):
            docs_server.start()
