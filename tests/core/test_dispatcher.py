"""Tests for the Dispatcher and the result envelope."""

from unittest.mock import MagicMock

import pytest

from onboarding_os.core import (
    Dispatcher,
    Failure,
    HandlerError,
    InvocationRequest,
    Success,
    ToolDescriptor,
    ToolRegistry,
    UnsafeCommandError,
    to_envelope,
)


@pytest.fixture
def registry():
    registry = ToolRegistry("test-mcp")

    @registry.tool(
        "greet",
        "Greet someone",
        {"type": "object", "properties": {"name": {"type": "string"}}, "required": ["name"]},
    )
    def greet(args):
        return {"greeting": f"Hello, {args['name']}!"}

    @registry.tool("missing", "Always fails")
    def missing(args):
        raise HandlerError("Document not found: nope")

    @registry.tool("unsafe", "Rejects its command")
    def unsafe(args):
        raise UnsafeCommandError("rm -rf /", ["ls"])

    @registry.tool("crash", "Raises an unexpected error")
    def crash(args):
        raise KeyError("boom")

    @registry.tool(
        "count",
        "Needs a number",
        {"type": "object", "properties": {"n": {"type": "integer"}}, "required": ["n"]},
    )
    def count(args):
        return args["n"]

    return registry


class TestDispatch:
    """Test dispatch() outcomes."""

    def test_success(self, registry):
        result = Dispatcher(registry).dispatch("greet", {"name": "Ada"})

        assert isinstance(result, Success)
        assert result.payload == {"greeting": "Hello, Ada!"}
        assert result.text == '{\n  "greeting": "Hello, Ada!"\n}'

    def test_request_object(self, registry):
        request = InvocationRequest.from_params({"name": "greet", "arguments": {"name": "Bo"}})

        result = Dispatcher(registry).dispatch(request)

        assert result.payload == {"greeting": "Hello, Bo!"}

    def test_unknown_tool_never_calls_a_handler(self):
        """An unknown name fails without invoking anything."""
        registry = ToolRegistry("test-mcp")
        handler = MagicMock()
        registry.register(ToolDescriptor("known", "Known"), handler)

        result = Dispatcher(registry).dispatch("unknown", {})

        assert isinstance(result, Failure)
        assert result.kind == "unknown_tool"
        assert result.text == "Unknown tool: unknown"
        handler.assert_not_called()

    def test_handler_error(self, registry):
        result = Dispatcher(registry).dispatch("missing")

        assert result.kind == "handler_error"
        assert result.text == "Error: Document not found: nope"

    def test_unsafe_command(self, registry):
        result = Dispatcher(registry).dispatch("unsafe")

        assert result.kind == "unsafe_command"
        assert result.text.startswith("Error: Command not in safe list.")
        assert "Safe commands: ls" in result.text

    def test_unexpected_exception_contained(self, registry):
        """Arbitrary handler exceptions become failures."""
        result = Dispatcher(registry).dispatch("crash")

        assert isinstance(result, Failure)
        assert result.kind == "handler_error"
        assert "boom" in result.text

    def test_validation_error(self, registry):
        result = Dispatcher(registry).dispatch("count", {"n": "lots"})

        assert result.kind == "validation_error"
        assert result.text == "Error: Argument 'n' must be an integer"

    def test_missing_required_string_defaults_to_empty(self, registry):
        result = Dispatcher(registry).dispatch("greet", {})

        assert result.payload == {"greeting": "Hello, !"}

    def test_non_ascii_kept(self, registry):
        result = Dispatcher(registry).dispatch("greet", {"name": "Zoë 🎉"})

        assert "Zoë 🎉" in result.text


class TestEnvelope:
    """Test the wire envelope."""

    def test_success_envelope_has_no_error_flag(self, registry):
        envelope = Dispatcher(registry).call("greet", {"name": "Ada"})

        assert list(envelope) == ["content"]
        assert envelope["content"][0]["type"] == "text"

    def test_failure_envelope_flags_error(self):
        envelope = to_envelope(Failure("bad input"))

        assert envelope == {"content": [{"type": "text", "text": "Error: bad input"}], "isError": True}

    def test_list_tools(self, registry):
        names = [t["name"] for t in Dispatcher(registry).list_tools()["tools"]]

        assert names == ["greet", "missing", "unsafe", "crash", "count"]
