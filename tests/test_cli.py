"""Tests for the click entry point."""

import json

import pytest
from click.testing import CliRunner

from groups_perf import __version__
from groups_perf.cli import main
from tests.mock_groups_server import MockGroupsServer


@pytest.fixture
def runner():
    return CliRunner()


def _env(server, **extra):
    env = {
        "GROUPS_API_URL": server.base_url,
        "MEMBERS_API_URL": server.members_url,
        "AUTH0_URL": server.token_url,
        "AUTH0_AUDIENCE": "https://api.example.com/",
        "AUTH0_CLIENT_ID": "id",
        "AUTH0_CLIENT_SECRET": "secret",
        "INITIAL_MEMBER_SIZE": "120",
        "MEMBERS_PAGE_DELAY": "0",
    }
    env.update(extra)
    return env


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_lists_env_vars(runner):
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "GROUPS_API_URL" in result.output
    assert "--i-accept-side-effects" in result.output


def test_run_from_env(runner):
    with MockGroupsServer() as server:
        result = runner.invoke(main, ["--json", "--i-accept-side-effects"], env=_env(server))
        assert server.chunk_sizes == [100, 20]
        assert len(server.deleted) == 1
    assert result.exit_code == 0
    report = json.loads(result.stdout)
    assert report["summary"]["failed"] == 0


def test_flags_override_env(runner):
    with MockGroupsServer() as server:
        result = runner.invoke(
            main,
            ["--members", "30", "--chunk-size", "10", "--json", "--i-accept-side-effects"],
            env=_env(server),
        )
        assert server.chunk_sizes == [10, 10, 10]
    assert result.exit_code == 0


def test_without_consent_exits_1(runner):
    with MockGroupsServer() as server:
        result = runner.invoke(main, [], env=_env(server))
        assert server.token_requests == 0
    assert result.exit_code == 1


def test_malformed_env_exits_1(runner):
    with MockGroupsServer() as server:
        result = runner.invoke(main, ["--i-accept-side-effects"], env=_env(server, INITIAL_MEMBER_SIZE="many"))
    assert result.exit_code == 1
    assert "INITIAL_MEMBER_SIZE" in result.output


def test_failed_run_exits_1(runner):
    with MockGroupsServer(behaviours={"members_status": 500}) as server:
        result = runner.invoke(main, ["--json", "--i-accept-side-effects"], env=_env(server))
        assert len(server.deleted) == 1
    assert result.exit_code == 1


def test_unknown_log_level_exits_1(runner):
    with MockGroupsServer() as server:
        result = runner.invoke(main, ["--i-accept-side-effects"], env=_env(server, LOG_LEVEL="verbose"))
        assert server.token_requests == 0
    assert result.exit_code == 1
    assert "LOG_LEVEL" in result.output
