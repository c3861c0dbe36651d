"""
Onboarding OS: five MCP tool servers for developer onboarding.

Architecture:
- core/: tool registry, argument coercion, dispatcher and error taxonomy
- servers/: the five handler sets (github, docs, terminal, slack, progress)
- fixtures/: YAML datasets the handlers read
- server.py: FastMCP wrapper with stdio and SSE transports
- config.py: YAML + environment configuration
- cli/: the onboarding-os command line
"""

__version__ = "0.1.0"

__all__ = ["ServerConfig", "ToolServer", "__version__"]

from .config import ServerConfig
from .server import ToolServer
