"""Test configuration for pytest."""

import sys
from pathlib import Path
from typing import Any, Callable, Dict
from unittest.mock import MagicMock

import pytest

# Add the project root directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from todoist_visualizer.api.client import TodoistClient  # noqa: E402
from todoist_visualizer.config import VisualizerConfig  # noqa: E402

BASE_URL = "https://api.test/rest/v2"


@pytest.fixture
def config() -> VisualizerConfig:
    """Create a configuration pointing at a fake API."""
    return VisualizerConfig(base_url=BASE_URL, max_workers=2)


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Create fake HTTP responses."""

    def _make(status: int = 200, payload: Any = None) -> MagicMock:
        response = MagicMock()
        response.status_code = status
        response.json.return_value = [] if payload is None else payload
        return response

    return _make


@pytest.fixture
def api_payloads() -> Dict[str, Any]:
    """Response bodies per collection."""
    return {
        "favorites": [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}],
        "filters": [{"id": "10", "name": "Today", "query": "today"}],
        "tasks": [{"id": "100", "content": "Write report"}],
    }


@pytest.fixture
def http_session(make_response, api_payloads) -> MagicMock:
    """Create a mock HTTP session answering by collection name.

    Set ``http_session.statuses[name]`` to make a collection fail.
    """
    session = MagicMock()
    session.statuses = {}

    def _get(url, **kwargs):
        name = url.rsplit("/", 1)[-1]
        status = session.statuses.get(name, 200)
        return make_response(status, api_payloads.get(name) if status == 200 else {})

    session.get.side_effect = _get
    return session


@pytest.fixture
def client(config, http_session) -> TodoistClient:
    """Create a client using the mock HTTP session."""
    return TodoistClient("test_token", config, session=http_session)
