"""Клиенты внешних API."""

from .jira import JiraAPIError, JiraClient

__all__ = ["JiraClient", "JiraAPIError"]
