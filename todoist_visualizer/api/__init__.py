"""Todoist REST API access."""

from .client import TodoistClient, parse_items

__all__ = ["TodoistClient", "parse_items"]
