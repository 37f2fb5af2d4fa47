"""Синхронизация задач TaskMaster с Jira."""

__version__ = "0.1.0"
