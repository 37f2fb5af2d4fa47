"""Общие фикстуры и тестовые двойники."""

import json
from typing import Any, Dict, List, Optional, Set

import pytest

from taskmaster_jira_sync.config import AppConfig
from taskmaster_jira_sync.errors import TransientServiceError, ValidationError
from taskmaster_jira_sync.ports import TrackerGateway
from taskmaster_jira_sync.services.task_store import JsonTaskStore

TASK_ID_FIELD = "customfield_10032"


class FakeTracker(TrackerGateway):
    """Jira в памяти: хранит задачи и журнал вызовов."""

    def __init__(self) -> None:
        self.issues: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.failing_task_ids: Set[str] = set()
        self._counter = 0

    def calls_named(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    def find_issue_by_task_id(self, task_id) -> Optional[Dict[str, Any]]:
        self.calls.append(("find", str(task_id)))
        for issue in self.issues.values():
            if issue["fields"].get(TASK_ID_FIELD) == str(task_id):
                return issue
        return None

    def create_issue(self, payload: Dict) -> Dict[str, Any]:
        self.calls.append(("create", payload))
        if not payload.get("project_key") or not payload.get("summary"):
            raise ValidationError("project_key and summary are required")
        if payload.get("task_id") in self.failing_task_ids:
            raise TransientServiceError("Jira is down")
        self._counter += 1
        key = f"{payload['project_key']}-{self._counter}"
        issue = {
            "key": key,
            "fields": {
                "summary": payload["summary"],
                "description": payload["description"],
                "issuetype": {"name": payload["issue_type"]},
                "priority": {"name": payload["priority"]},
                "status": {"name": "To Do"},
                TASK_ID_FIELD: payload["task_id"],
            },
        }
        self.issues[key] = issue
        return issue

    def update_issue(self, key: str, payload: Dict) -> None:
        self.calls.append(("update", key, payload))
        fields = self.issues[key]["fields"]
        for name in ("summary", "description"):
            if name in payload:
                fields[name] = payload[name]
        if "priority" in payload:
            fields["priority"] = {"name": payload["priority"]}

    def transition_issue_status(self, key: str, status_name: str) -> None:
        self.calls.append(("transition", key, status_name))
        self.issues[key]["fields"]["status"] = {"name": status_name}

    def extract_cross_reference(self, issue):
        return (issue.get("fields") or {}).get(TASK_ID_FIELD)


class FakeTimer:
    """Заменитель threading.Timer: срабатывает только по вызову fire()."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class TimerRecorder:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


def make_config(tmp_path=None, **sync) -> AppConfig:
    raw: Dict[str, Any] = {
        "jira": {"base_url": "https://jira.example.com", "username": "bot", "api_token": "secret"},
        "rate_limits": {},
        "sync": {"debounce_seconds": 0.01, **sync},
    }
    if tmp_path is not None:
        raw["sync"]["taskmaster_path"] = str(tmp_path)
    return AppConfig.from_mapping(raw)


def write_tasks(config: AppConfig, data: Dict[str, Any]) -> None:
    config.tasks_path.parent.mkdir(parents=True, exist_ok=True)
    config.tasks_path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_tasks(config: AppConfig) -> Dict[str, Any]:
    return json.loads(config.tasks_path.read_text(encoding="utf-8"))


@pytest.fixture
def tracker():
    return FakeTracker()


@pytest.fixture
def config(tmp_path):
    return make_config(tmp_path)


@pytest.fixture
def tasks_data():
    return {
        "master": {
            "tasks": [
                {
                    "id": "t-1",
                    "title": "Fix bug",
                    "description": "Crash on start",
                    "status": "pending",
                    "priority": "high",
                    "tags": ["cc-dev:proj"],
                    "dependencies": [],
                },
                {"id": "t-2", "title": "Local note", "status": "pending", "tags": []},
                {"id": 3, "title": "Write docs", "status": "review", "priority": "low", "tags": ["jira:docs"]},
            ]
        },
        "feature-x": {
            "tasks": [
                {"id": "f-1", "title": "Other tag task", "status": "pending", "tags": ["cc-dev:other"]},
            ]
        },
        "metadata": {"created": "2024-01-01T00:00:00Z"},
    }


@pytest.fixture
def store(config, tasks_data):
    write_tasks(config, tasks_data)
    return JsonTaskStore(config.tasks_path, poll_interval=0.05)
