"""
Error taxonomy for tool registration and dispatch.

Registry errors are raised at startup. Everything else is raised inside a
handler or while coercing arguments, and is converted into a Failure
result by the dispatcher.
"""

from typing import Iterable, Optional


class ToolServerError(Exception):
    """Base class for all tool server errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DuplicateNameError(ToolServerError):
    """Raised when a tool name is registered twice in one registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class UnknownToolError(ToolServerError):
    """Raised when a tool name is not present in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ValidationError(ToolServerError):
    """Raised when invocation arguments do not match the tool's input schema."""


class HandlerError(ToolServerError):
    """Raised by a handler when it cannot produce a result (missing record, failed lookup)."""


class UnsafeCommandError(HandlerError):
    """
    Raised when a command is not on the read-only allow-list.

    Attributes:
        command: The rejected command text
        allowed: The allow-list the command was checked against
    """

    def __init__(self, command: str, allowed: Optional[Iterable[str]] = None):
        self.command = command
        self.allowed = list(allowed or [])
        message = (
            "Command not in safe list. Use run_setup_command for commands "
            "that modify the system."
        )
        if self.allowed:
            message += f" Safe commands: {', '.join(self.allowed)}"
        super().__init__(message)
