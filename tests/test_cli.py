"""Tests for the command line interface."""

import json

import pytest
import yaml
from typer.testing import CliRunner

from taskmaster_jira_sync import cli

from tests.conftest import FakeTracker


class CliTracker(FakeTracker):
    def __init__(self, config):
        super().__init__()
        self.config = config

    def get_issue(self, key):
        return self.issues[key]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, store):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "jira": {"base_url": "https://jira.example.com", "username": "bot", "api_token": "secret"},
                "rate_limits": {},
                "sync": {"taskmaster_path": str(tmp_path)},
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def fake_jira(monkeypatch):
    created = []

    def factory(config):
        tracker = CliTracker(config)
        created.append(tracker)
        return tracker

    monkeypatch.setattr(cli, "JiraClient", factory)
    return created


class TestSyncOnce:
    def test_prints_stats_per_tag(self, runner, config_file, fake_jira):
        result = runner.invoke(cli.app, ["sync-once", "-c", str(config_file)])

        assert result.exit_code == 0, result.output
        stats = json.loads(result.output)
        assert stats["master"] == {"created": 2, "updated": 0, "failed": 0, "skipped": 1}
        assert stats["feature-x"]["created"] == 1
        assert len(fake_jira[0].issues) == 3

    def test_dry_run_flag_reaches_config(self, runner, config_file, fake_jira):
        result = runner.invoke(cli.app, ["sync-once", "-c", str(config_file), "--dry-run"])

        assert result.exit_code == 0, result.output
        assert fake_jira[0].config.sync.dry_run is True


class TestSyncIssue:
    def test_unknown_issue_exits_with_error(self, runner, config_file, monkeypatch):
        class EmptyTracker(CliTracker):
            def get_issue(self, key):
                return {"key": key, "fields": {}}

        monkeypatch.setattr(cli, "JiraClient", EmptyTracker)

        result = runner.invoke(cli.app, ["sync-issue", "PROJ-404", "-c", str(config_file)])

        assert result.exit_code == 1
        assert "PROJ-404" in result.output


def test_format_table():
    table = cli._format_table("Projects", [("PROJ", "Project"), ("OPS", "Operations")])

    assert table.splitlines()[0] == "Projects:"
    assert "PROJ  |  Project" in table
    assert cli._format_table("Empty", []) == "Empty: нет данных"
