"""Tests for the server catalog."""

from unittest.mock import MagicMock

import pytest

from onboarding_os.config import ServerConfig
from onboarding_os.servers import SERVERS, ServerSpec, get_server, server_keys, terminal


def test_server_order_and_ports():
    assert server_keys() == ["github", "docs", "terminal", "slack", "progress"]
    assert [s.default_port for s in SERVERS.values()] == [4001, 4002, 4003, 4004, 4005]


@pytest.mark.parametrize("name", ["docs", "docs-mcp"])
def test_get_server_by_key_or_name(name):
    assert get_server(name).key == "docs"


def test_get_server_unknown():
    with pytest.raises(KeyError, match="Unknown server 'jira'"):
        get_server("jira")


@pytest.mark.parametrize(
    "key,count",
    [("github", 5), ("docs", 4), ("terminal", 5), ("slack", 5), ("progress", 4)],
)
def test_every_server_builds(key, count):
    registry = get_server(key).build_registry()

    assert registry.server_name == f"{key}-mcp"
    assert len(registry) == count


def test_options_feed_the_factory(tmp_path):
    factory = MagicMock()
    spec = ServerSpec("x", "x-mcp", "X MCP", 4999, factory, options=lambda c: {"cwd": c.project_root})

    spec.build_registry(ServerConfig(project_root=tmp_path))
    spec.build_registry()

    assert factory.call_args_list[0].kwargs == {"cwd": tmp_path}
    assert factory.call_args_list[1].kwargs == {}


def test_terminal_takes_cwd_and_timeout_from_config():
    assert get_server("terminal").options is terminal.registry_options
