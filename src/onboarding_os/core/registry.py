"""
Tool registry: the closed set of operations a server exposes.

A registry is filled once at startup and read for the rest of the process
lifetime. Registration order is what clients see when they enumerate tools,
so it is preserved exactly.
"""

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from .errors import DuplicateNameError, UnknownToolError

Handler = Callable[[Dict[str, Any]], Any]

EMPTY_SCHEMA: Mapping[str, Any] = MappingProxyType({"type": "object", "properties": {}})


@dataclass(frozen=True)
class ToolDescriptor:
    """
    Name, description and declared argument shape of one tool.

    Attributes:
        name: Unique tool identifier within a registry
        description: Human-readable description shown to clients
        input_schema: JSON Schema object describing accepted arguments
    """

    name: str
    description: str
    input_schema: Mapping[str, Any] = field(default_factory=lambda: EMPTY_SCHEMA)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Tool name must be a non-empty string")
        # Freeze a private copy so later edits to the caller's dict do not leak in
        object.__setattr__(
            self, "input_schema", MappingProxyType(copy.deepcopy(dict(self.input_schema)))
        )

    @property
    def properties(self) -> Mapping[str, Any]:
        return self.input_schema.get("properties", {})

    @property
    def required(self) -> List[str]:
        return list(self.input_schema.get("required", []))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape used in tool enumeration."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(dict(self.input_schema)),
        }


class ToolRegistry:
    """Ordered mapping from tool name to (descriptor, handler)."""

    def __init__(self, server_name: str):
        self.server_name = server_name
        self._tools: Dict[str, Tuple[ToolDescriptor, Handler]] = {}

    def register(self, descriptor: ToolDescriptor, handler: Handler) -> None:
        """
        Add a tool to the registry.

        Args:
            descriptor: Tool descriptor
            handler: Callable receiving the coerced arguments mapping

        Raises:
            DuplicateNameError: If a tool with the same name is already registered
        """
        if descriptor.name in self._tools:
            raise DuplicateNameError(descriptor.name)
        self._tools[descriptor.name] = (descriptor, handler)

    def tool(
        self,
        name: str,
        description: str,
        input_schema: Mapping[str, Any] = EMPTY_SCHEMA,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""

        def decorator(handler: Handler) -> Handler:
            self.register(ToolDescriptor(name, description, input_schema), handler)
            return handler

        return decorator

    def list(self) -> List[ToolDescriptor]:
        """Return all descriptors in registration order."""
        return [descriptor for descriptor, _ in self._tools.values()]

    def resolve(self, name: str) -> Tuple[ToolDescriptor, Handler]:
        """
        Look up a tool by name.

        Raises:
            UnknownToolError: If the name is not registered
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def listing(self) -> Dict[str, Any]:
        """Build the tool enumeration response."""
        return {"tools": [descriptor.to_dict() for descriptor in self.list()]}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"ToolRegistry({self.server_name!r}, tools={list(self._tools)})"
