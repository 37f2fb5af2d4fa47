"""HTTP-клиент для Jira REST API."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests
from requests.auth import HTTPBasicAuth

from taskmaster_jira_sync.config import AppConfig
from taskmaster_jira_sync.errors import TransientServiceError, ValidationError
from taskmaster_jira_sync.models import Issue, TaskId
from taskmaster_jira_sync.ports import TrackerGateway

LOGGER = logging.getLogger(__name__)

ISSUE_FIELDS = ["summary", "description", "status", "priority", "issuetype", "labels"]


class JiraAPIError(TransientServiceError):
    """Ошибка Jira API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JiraClient(TrackerGateway):
    """Минимальный клиент Jira API для синхронизации задач TaskMaster."""

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None) -> None:
        self._credentials = config.jira
        self._fields = config.custom_fields
        self._dry_run = config.sync.dry_run
        self._session = session or requests.Session()
        self._session.auth = HTTPBasicAuth(self._credentials.username, self._credentials.api_token)
        self._session.headers.update(
            {
                "User-Agent": "taskmaster-jira-sync/0.1",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def base_url(self) -> str:
        return self._credentials.base_url.rstrip("/")

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/rest/api/{self._credentials.api_version}"

    # region low-level helpers
    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        try:
            response = self._session.request(method, url, timeout=self._credentials.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise JiraAPIError(f"Jira недоступна при запросе {method} {url}: {exc}") from exc
        if response.status_code >= 400:
            raise JiraAPIError(
                f"Ошибка Jira {response.status_code} при запросе {method} {url}: {response.text[:500]}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        return response.json()

    def _write(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        if self._dry_run:
            LOGGER.info("[DRY-RUN] %s %s", method, endpoint)
            return {}
        return self._request(method, endpoint, **kwargs)

    # endregion

    # region TrackerGateway
    def find_issue_by_task_id(self, task_id: TaskId) -> Optional[Issue]:
        # поле текстовое: JQL умеет только ~, точное совпадение проверяем сами
        escaped = str(task_id).replace("\\", "\\\\").replace('"', '\\"')
        payload = {
            "jql": f'{self._fields.task_id_jql} ~ "\\"{escaped}\\""',
            "maxResults": 10,
            "fields": ISSUE_FIELDS + [self._fields.task_id],
        }
        result = self._request("POST", "/search", json=payload)
        for issue in result.get("issues", []):
            if str(self.extract_cross_reference(issue)) == str(task_id):
                return issue
        return None

    def create_issue(self, payload: Dict) -> Issue:
        missing = [name for name in ("project_key", "summary") if not payload.get(name)]
        if missing:
            raise ValidationError(f"Не заданы обязательные поля задачи Jira: {', '.join(missing)}")
        fields: Dict[str, Any] = {
            "project": {"key": payload["project_key"]},
            "summary": payload["summary"],
            "description": payload.get("description") or "",
            "issuetype": {"name": payload.get("issue_type") or "Task"},
        }
        if payload.get("priority"):
            fields["priority"] = {"name": payload["priority"]}
        if payload.get("task_id") is not None:
            fields[self._fields.task_id] = str(payload["task_id"])
        fields.update(payload.get("attribution") or {})
        response = self._write("POST", "/issue", json={"fields": fields})
        key = response.get("key") or f"{payload['project_key']}-DRYRUN"
        return {"key": key, "id": response.get("id"), "self": response.get("self"), "fields": fields}

    def update_issue(self, key: str, payload: Dict) -> None:
        fields: Dict[str, Any] = {}
        if "summary" in payload:
            fields["summary"] = payload["summary"]
        if "description" in payload:
            fields["description"] = payload["description"]
        if "priority" in payload:
            fields["priority"] = {"name": payload["priority"]}
        if not fields:
            return
        self._write("PUT", f"/issue/{key}", json={"fields": fields})

    def transition_issue_status(self, key: str, status_name: str) -> None:
        transitions = self._request("GET", f"/issue/{key}/transitions").get("transitions", [])
        wanted = status_name.casefold()
        for transition in transitions:
            target = (transition.get("to") or {}).get("name") or transition.get("name") or ""
            if target.casefold() == wanted or (transition.get("name") or "").casefold() == wanted:
                self._write("POST", f"/issue/{key}/transitions", json={"transition": {"id": transition["id"]}})
                return
        LOGGER.warning("Для задачи %s нет перехода в статус %s", key, status_name)

    def extract_cross_reference(self, issue: Issue) -> Optional[TaskId]:
        value = (issue.get("fields") or {}).get(self._fields.task_id)
        if value in (None, ""):
            return None
        if isinstance(value, float) and value.is_integer():
            # поле может быть числовым (Story Points)
            return str(int(value))
        return str(value)

    # endregion

    def get_issue(self, key: str) -> Issue:
        params = {"fields": ",".join(ISSUE_FIELDS + [self._fields.task_id])}
        return self._request("GET", f"/issue/{key}", params=params)

    def list_projects(self, start_at: int = 0, max_results: int = 50) -> Dict:
        """Возвращает страницу проектов Jira."""
        params = {"startAt": start_at, "maxResults": max_results}
        return self._request("GET", "/project/search", params=params)

    def iter_projects(self, page_size: int = 50) -> Iterable[Dict]:
        """Итерирует проекты Jira."""
        start_at = 0
        while True:
            payload = self.list_projects(start_at=start_at, max_results=page_size)
            values: List[Dict] = payload.get("values", [])
            for value in values:
                yield value
            start_at += len(values)
            if payload.get("isLast", True) or not values:
                break

    def test_connection(self) -> Dict:
        """Проверяет учётные данные, возвращает текущего пользователя."""
        return self._request("GET", "/myself")


__all__ = ["JiraClient", "JiraAPIError"]
