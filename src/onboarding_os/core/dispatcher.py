"""
Dispatcher: turns an invocation request into an invocation result.

Every per-request failure (unknown tool, bad arguments, handler exception)
comes back as a Failure value. Nothing raised by a handler escapes
dispatch().
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from .arguments import coerce_arguments
from .errors import HandlerError, UnknownToolError, UnsafeCommandError, ValidationError
from .registry import ToolRegistry

logger = logging.getLogger(__name__)

UNKNOWN_TOOL = "unknown_tool"
VALIDATION_ERROR = "validation_error"
HANDLER_ERROR = "handler_error"
UNSAFE_COMMAND = "unsafe_command"


def render_json(payload: Any) -> str:
    """Canonical text form of a payload: pretty-printed JSON, non-ASCII kept."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


@dataclass(frozen=True)
class InvocationRequest:
    """One call: a tool name plus its arguments."""

    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "InvocationRequest":
        """Build from an MCP-style params object ({"name", "arguments"})."""
        return cls(
            tool_name=params.get("name") or params.get("toolName") or "",
            arguments=dict(params.get("arguments") or {}),
        )


@dataclass(frozen=True)
class Success:
    """Handler completed; payload is the structured return value."""

    payload: Any
    is_error = False

    @property
    def text(self) -> str:
        return render_json(self.payload)


@dataclass(frozen=True)
class Failure:
    """
    Invocation did not produce a payload.

    Attributes:
        message: Human-readable reason (the triggering exception's own text)
        kind: unknown_tool, validation_error, handler_error or unsafe_command
    """

    message: str
    kind: str = HANDLER_ERROR
    is_error = True

    @property
    def text(self) -> str:
        if self.kind == UNKNOWN_TOOL:
            return self.message
        return f"Error: {self.message}"


InvocationResult = Union[Success, Failure]


def to_envelope(result: InvocationResult) -> Dict[str, Any]:
    """Serialize a result into the wire envelope."""
    envelope: Dict[str, Any] = {"content": [{"type": "text", "text": result.text}]}
    if result.is_error:
        envelope["isError"] = True
    return envelope


class Dispatcher:
    """Resolves, validates and invokes tools from a single registry."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def dispatch(
        self,
        request: Union[InvocationRequest, str],
        arguments: Optional[Mapping[str, Any]] = None,
    ) -> InvocationResult:
        """
        Invoke one tool.

        Args:
            request: An InvocationRequest, or a bare tool name
            arguments: Arguments when request is a bare name

        Returns:
            Success with the handler's return value, or Failure
        """
        if isinstance(request, str):
            request = InvocationRequest(request, dict(arguments or {}))

        try:
            descriptor, handler = self.registry.resolve(request.tool_name)
        except UnknownToolError as e:
            logger.warning("%s: %s", self.registry.server_name, e.message)
            return Failure(e.message, kind=UNKNOWN_TOOL)

        try:
            args = coerce_arguments(descriptor, request.arguments)
            payload = handler(args)
        except ValidationError as e:
            logger.warning("Invalid arguments for %s: %s", descriptor.name, e.message)
            return Failure(e.message, kind=VALIDATION_ERROR)
        except UnsafeCommandError as e:
            logger.warning("Rejected unsafe command %r", e.command)
            return Failure(e.message, kind=UNSAFE_COMMAND)
        except HandlerError as e:
            logger.warning("Tool %s failed: %s", descriptor.name, e.message)
            return Failure(e.message, kind=HANDLER_ERROR)
        except Exception as e:
            logger.exception("Unexpected error in tool %s", descriptor.name)
            return Failure(str(e) or type(e).__name__, kind=HANDLER_ERROR)

        logger.debug("Tool %s completed", descriptor.name)
        return Success(payload)

    def call(self, tool_name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Dispatch and return the wire envelope."""
        return to_envelope(self.dispatch(tool_name, arguments))

    def list_tools(self) -> Dict[str, Any]:
        return self.registry.listing()
