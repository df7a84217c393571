"""CLI tests using typer.testing.CliRunner.

The remote endpoint is replaced by an in-process fake client; everything
else (YAML loading, filters, viewed set, formatters) runs for real.
"""

import datetime
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from tripmatch.cli import app
from tripmatch.config import load_settings
from tripmatch.search.orchestrator import SearchOrchestrator
from tripmatch.viewed import ViewedSet

runner = CliRunner()

FIXTURES_DIR = Path(__file__).parent / "fixtures"
CURRENT = str(FIXTURES_DIR / "current_itinerary.yaml")
MALFORMED = str(FIXTURES_DIR / "malformed_itinerary.yaml")


class StaticClient:
    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    def search(self, request):
        self.calls += 1
        return self.payload


@pytest.fixture
def fake_remote(monkeypatch):
    """Point the CLI at a StaticClient; returns a setter for the payload."""
    client = StaticClient({"success": True, "data": []})

    def _build(use_cache: bool = True):
        return SearchOrchestrator(
            client,
            viewed=ViewedSet(load_settings().viewed_path),
            today=datetime.date(2026, 6, 1),
        )

    monkeypatch.setattr("tripmatch.cli._build_orchestrator", _build)

    def _set(payload):
        client.payload = payload
        return client

    return _set


class TestHelp:
    def test_root_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("search", "browse", "cache", "viewed", "config"):
            assert command in result.output

    def test_cache_help(self):
        result = runner.invoke(app, ["cache", "--help"])
        assert result.exit_code == 0
        assert "stats" in result.output
        assert "cleanup" in result.output


class TestSearch:
    def test_lists_matches(self, fake_remote, make_record):
        fake_remote({"success": True, "data": [make_record(id="a", destination="Rome")]})
        result = runner.invoke(app, ["search", CURRENT, "--user-id", "me-123", "--plain"])
        assert result.exit_code == 0
        assert "[1] a" in result.output
        assert "Rome" in result.output

    def test_json_output(self, fake_remote, make_record):
        fake_remote({"success": True, "data": [make_record(id="a")]})
        result = runner.invoke(app, ["search", CURRENT, "-u", "me-123", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["matching"] == 1
        assert data["itineraries"][0]["id"] == "a"

    def test_remote_failure_exit_1(self, fake_remote):
        fake_remote({"success": False, "error": "Database query failed"})
        result = runner.invoke(app, ["search", CURRENT, "-u", "me-123", "--plain"])
        assert result.exit_code == 1
        assert "try again later" in result.output

    def test_remote_failure_json(self, fake_remote):
        fake_remote({"success": False, "error": "Database query failed"})
        result = runner.invoke(app, ["search", CURRENT, "-u", "me-123", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["summary"]["error"]

    def test_missing_user_id(self, fake_remote):
        result = runner.invoke(app, ["search", CURRENT])
        assert result.exit_code == 2

    def test_missing_file(self, fake_remote):
        result = runner.invoke(app, ["search", "no-such-file.yaml", "-u", "me-123"])
        assert result.exit_code == 2

    def test_malformed_yaml(self, fake_remote):
        result = runner.invoke(app, ["search", MALFORMED, "-u", "me-123"])
        assert result.exit_code == 2

    def test_refresh(self, fake_remote):
        client = fake_remote({"success": True, "data": []})
        result = runner.invoke(app, ["search", CURRENT, "-u", "me-123", "--refresh", "--plain"])
        assert result.exit_code == 0
        assert client.calls == 1


class TestBrowse:
    def test_like_and_skip(self, fake_remote, make_record):
        fake_remote(
            {
                "success": True,
                "data": [
                    make_record(id="a", destination="Rome"),
                    make_record(id="b", destination="Lisbon"),
                ],
            }
        )
        result = runner.invoke(app, ["browse", CURRENT, "-u", "me-123", "--plain"], input="l\ns\n")
        assert result.exit_code == 0
        assert "Rome" in result.output
        assert "Lisbon" in result.output
        assert "Liked: a" in result.output
        assert "No more matches" in result.output
        assert ViewedSet(load_settings().viewed_path).ids() == ["a", "b"]

    def test_quit_leaves_current_unviewed(self, fake_remote, make_record):
        fake_remote({"success": True, "data": [make_record(id="a")]})
        result = runner.invoke(app, ["browse", CURRENT, "-u", "me-123", "--plain"], input="q\n")
        assert result.exit_code == 0
        assert ViewedSet(load_settings().viewed_path).ids() == []

    def test_failure_exit_1(self, fake_remote):
        fake_remote({"success": False, "error": "Request timeout"})
        result = runner.invoke(app, ["browse", CURRENT, "-u", "me-123"])
        assert result.exit_code == 1


class TestCacheCommands:
    def test_stats_json(self):
        result = runner.invoke(app, ["cache", "stats", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["totalKeys"] == 0

    def test_cleanup(self):
        result = runner.invoke(app, ["cache", "cleanup"])
        assert result.exit_code == 0
        assert "Removed 0 expired cache entries." in result.output

    def test_clear(self):
        from tripmatch.cache import ResultCache

        ResultCache(load_settings().cache_path).set("k", [1])
        result = runner.invoke(app, ["cache", "clear"])
        assert result.exit_code == 0
        assert "Search cache cleared." in result.output
        assert not load_settings().cache_path.exists()


class TestViewedCommands:
    def test_list(self):
        ViewedSet(load_settings().viewed_path).add("x")
        result = runner.invoke(app, ["viewed", "list", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["ids"] == ["x"]

    def test_clear_with_yes(self):
        ViewedSet(load_settings().viewed_path).add("x")
        result = runner.invoke(app, ["viewed", "clear", "--yes"])
        assert result.exit_code == 0
        assert ViewedSet(load_settings().viewed_path).ids() == []

    def test_clear_declined(self):
        ViewedSet(load_settings().viewed_path).add("x")
        result = runner.invoke(app, ["viewed", "clear"], input="n\n")
        assert result.exit_code == 0
        assert ViewedSet(load_settings().viewed_path).ids() == ["x"]


class TestConfigCommands:
    def test_show_json(self, monkeypatch):
        monkeypatch.setenv("TRIPMATCH_RPC_URL", "https://fn.example.test")
        result = runner.invoke(app, ["config", "show", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["rpc_url"] == "https://fn.example.test"
        assert data["rpc_token"] == "(not set)"

    def test_show_masks_token(self, monkeypatch):
        monkeypatch.setenv("TRIPMATCH_RPC_TOKEN", "supersecrettoken")
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "supe..." in result.output
        assert "supersecrettoken" not in result.output

    def test_set_token(self, monkeypatch):
        saved = {}
        monkeypatch.setattr(
            "keyring.set_password", lambda service, user, token: saved.update({user: token})
        )
        result = runner.invoke(app, ["config", "set-token"], input="tok-123\n")
        assert result.exit_code == 0
        assert saved == {"rpc-token": "tok-123"}
