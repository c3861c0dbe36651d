"""
Server configuration.

Loaded from an optional .onboarding-os.yaml in the project root, then
overridden by environment variables. A configured port selects the HTTP
event-stream transport; no port means stdio.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_FILENAME = ".onboarding-os.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _int_env(name: str) -> int:
    try:
        return int(os.environ[name])
    except ValueError:
        raise ValueError(f"Invalid {name}: {os.environ[name]}. Must be an integer.") from None


def _float_env(name: str) -> float:
    try:
        return float(os.environ[name])
    except ValueError:
        raise ValueError(f"Invalid {name}: {os.environ[name]}. Must be a number.") from None


@dataclass
class ServerConfig:
    """
    Configuration for one tool server process.

    Attributes:
        host: Bind address for the HTTP transport (default: "127.0.0.1")
        port: HTTP port; None selects the stdio transport
        log_level: Logging level name (default: "INFO")
        command_timeout: Seconds before an external command is killed (default: 10)
        project_root: Directory the terminal server checks and runs commands in
    """

    host: str = "127.0.0.1"
    port: Optional[int] = None
    log_level: str = "INFO"
    command_timeout: float = 10.0
    project_root: Optional[Path] = None

    def __post_init__(self):
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{self.log_level}'. Must be one of: {', '.join(LOG_LEVELS)}"
            )
        if self.port is not None:
            try:
                self.port = int(self.port)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid port {self.port!r}. Must be an integer.") from None
            if not 0 < self.port < 65536:
                raise ValueError(f"Invalid port {self.port}. Must be between 1 and 65535.")
        try:
            self.command_timeout = float(self.command_timeout)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid command_timeout {self.command_timeout!r}. Must be a number.") from None
        if self.command_timeout <= 0:
            raise ValueError("command_timeout must be positive")
        if self.project_root is not None:
            self.project_root = Path(self.project_root)

    @property
    def uses_http(self) -> bool:
        return self.port is not None

    @classmethod
    def load(cls, project_path: Path, server: Optional[str] = None) -> "ServerConfig":
        """
        Load configuration from <project_path>/.onboarding-os.yaml.

        Falls back to defaults if the file doesn't exist. Environment
        variables override file values.

        Args:
            project_path: Project root directory
            server: Server key whose servers.<key>.port entry applies

        Returns:
            ServerConfig with loaded/default values

        Raises:
            ValueError: If the file is invalid or an override is malformed
        """
        config_file = project_path / CONFIG_FILENAME
        raw: Dict[str, Any] = {}

        if config_file.exists():
            try:
                with open(config_file) as f:
                    raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid {CONFIG_FILENAME}: {e}") from e
            if not isinstance(raw, dict):
                raise ValueError(f"Invalid {CONFIG_FILENAME}: expected a mapping at top level")

        values: Dict[str, Any] = {
            k: raw[k] for k in ("host", "log_level", "command_timeout", "project_root") if k in raw
        }
        servers = raw.get("servers") or {}
        if not isinstance(servers, dict):
            raise ValueError(f"Invalid {CONFIG_FILENAME}: servers must be a mapping of server key to settings")
        if server is not None:
            server_section = servers.get(server) or {}
            if not isinstance(server_section, dict):
                raise ValueError(
                    f"Invalid {CONFIG_FILENAME}: servers.{server} must be a mapping (e.g. port: 4002)"
                )
            if "port" in server_section:
                values["port"] = server_section["port"]

        # Environment variables override config file
        if "ONBOARDING_HOST" in os.environ:
            values["host"] = os.environ["ONBOARDING_HOST"]
        if "PORT" in os.environ:
            values["port"] = _int_env("PORT")
        if "ONBOARDING_LOG_LEVEL" in os.environ:
            values["log_level"] = os.environ["ONBOARDING_LOG_LEVEL"]
        if "ONBOARDING_COMMAND_TIMEOUT" in os.environ:
            values["command_timeout"] = _float_env("ONBOARDING_COMMAND_TIMEOUT")

        if "project_root" not in values:
            values["project_root"] = project_path
        else:
            root = Path(values["project_root"])
            values["project_root"] = root if root.is_absolute() else project_path / root

        return cls(**values)
