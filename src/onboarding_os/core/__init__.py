"""
Shared tool-server core.

- registry.py: ToolDescriptor and ToolRegistry
- arguments.py: schema-driven argument coercion
- dispatcher.py: Dispatcher, Success/Failure results and the wire envelope
- errors.py: error taxonomy
"""

from .dispatcher import (
    Dispatcher,
    Failure,
    InvocationRequest,
    InvocationResult,
    Success,
    render_json,
    to_envelope,
)
from .errors import (
    DuplicateNameError,
    HandlerError,
    ToolServerError,
    UnknownToolError,
    UnsafeCommandError,
    ValidationError,
)
from .registry import ToolDescriptor, ToolRegistry

__all__ = [
    "Dispatcher",
    "DuplicateNameError",
    "Failure",
    "HandlerError",
    "InvocationRequest",
    "InvocationResult",
    "Success",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolServerError",
    "UnknownToolError",
    "UnsafeCommandError",
    "ValidationError",
    "render_json",
    "to_envelope",
]
