"""Tests for AppConfig."""

from pathlib import Path

import pytest

from taskmaster_jira_sync.config import AppConfig


class TestAppConfig:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "jira:\n"
            "  base_url: https://jira.example.com\n"
            "  username: bot\n"
            "  api_token: secret\n"
            "sync:\n"
            "  direction: taskmaster-to-jira\n"
            "  default_project_key: ops\n"
            "  taskmaster_path: /srv/taskmaster\n",
            encoding="utf-8",
        )

        config = AppConfig.load(path)

        assert config.sync.direction == "taskmaster-to-jira"
        assert config.sync.default_project_key == "OPS"
        assert config.tasks_path == Path("/srv/taskmaster/.taskmaster/tasks/tasks.json")
        assert config.sync.conflict_resolution == "last-write-wins"

    def test_defaults(self):
        config = AppConfig.from_mapping(
            {"jira": {"base_url": "https://jira", "username": "bot", "api_token": "secret"}}
        )

        assert set(config.rate_limits) == {"jira", "confluence", "jsm"}
        assert config.rate_limits["jira"].burst == 20
        assert config.custom_fields.task_id == "customfield_10032"
        assert config.custom_fields.task_id_jql == "cf[10032]"
        assert config.sync.tag_prefixes == ["cc-dev:", "atlassian:", "jira:"]
        assert config.sync.debounce_seconds == 1.0
        assert config.field_mapping.task_statuses["cancelled"] == "Done"

    def test_credentials_from_environment(self, monkeypatch):
        monkeypatch.setenv("ATLASSIAN_URL", "https://env.atlassian.net")
        monkeypatch.setenv("ATLASSIAN_USERNAME", "env-user")
        monkeypatch.setenv("ATLASSIAN_API_TOKEN", "env-token")

        config = AppConfig.from_mapping({"jira": {"username": "yaml-user"}})

        assert config.jira.base_url == "https://env.atlassian.net"
        assert config.jira.username == "yaml-user"
        assert config.jira.api_token == "env-token"

    def test_invalid_config(self, monkeypatch):
        for name in ("ATLASSIAN_URL", "ATLASSIAN_USERNAME", "ATLASSIAN_API_TOKEN"):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ValueError, match="некорректна"):
            AppConfig.from_mapping({"jira": {"base_url": "https://jira"}})

    def test_invalid_direction(self):
        with pytest.raises(ValueError):
            AppConfig.from_mapping(
                {
                    "jira": {"base_url": "https://jira", "username": "bot", "api_token": "secret"},
                    "sync": {"direction": "sideways"},
                }
            )
