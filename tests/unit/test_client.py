"""Unit tests for TodoistClient."""

import pytest
import requests

from todoist_visualizer.api.client import TodoistClient, parse_items
from todoist_visualizer.models import ApiError, ItemKind, MissingCredentialError
from todoist_visualizer.utils.errors import classify_error


def test_fetch_favorites(client, config, http_session):
    """Test fetching favorites."""
    favorites = client.fetch_favorites()

    assert [f.id for f in favorites] == ["1", "2"]
    assert [f.name for f in favorites] == ["A", "B"]
    assert all(f.kind == ItemKind.FAVORITE for f in favorites)
    http_session.get.assert_called_once_with(f"{config.base_url}/favorites", timeout=30.0)


def test_fetch_filters_keeps_extra_fields(client):
    """Test that unknown fields are passed through verbatim."""
    (today,) = client.fetch_filters()

    assert today.kind == ItemKind.FILTER
    assert today.data["query"] == "today"


def test_fetch_tasks_uses_content_as_name(client):
    """Test that tasks are named after their content."""
    (task,) = client.fetch_tasks()

    assert task.kind == ItemKind.TASK
    assert task.name == "Write report"


@pytest.mark.parametrize("token", ["", "   "])
def test_fetch_without_token_makes_no_request(config, http_session, token):
    """Test that a missing token fails before any network call."""
    client = TodoistClient(token, config, session=http_session)

    with pytest.raises(MissingCredentialError):
        client.fetch_favorites()

    http_session.get.assert_not_called()


def test_fetch_without_token_builds_no_session(config, mocker):
    """Test that no HTTP session is built for a missing token."""
    mock_auth = mocker.patch("todoist_visualizer.api.client.authenticate_todoist")

    with pytest.raises(MissingCredentialError):
        TodoistClient("", config).fetch_filters()

    mock_auth.assert_not_called()


def test_fetch_builds_session_lazily(config, mocker, http_session):
    """Test that the authorized session is built on first use."""
    mock_auth = mocker.patch(
        "todoist_visualizer.api.client.authenticate_todoist", return_value=http_session
    )
    client = TodoistClient("test_token", config)

    client.fetch_favorites()
    client.fetch_filters()

    mock_auth.assert_called_once_with("test_token", config)


def test_fetch_http_error(client, http_session):
    """Test that a non-2xx status raises ApiError carrying the status."""
    http_session.statuses["favorites"] = 401

    with pytest.raises(ApiError) as exc_info:
        client.fetch_favorites()

    assert exc_info.value.status == 401
    error = classify_error(exc_info.value)
    assert error.code.value == "AUTH_FAILED"
    assert "Authentication failed" in error.message


def test_fetch_transport_error_propagates(client, http_session):
    """Test that transport failures reach the caller unchanged."""
    http_session.get.side_effect = requests.ConnectionError("unreachable")

    with pytest.raises(requests.ConnectionError):
        client.fetch_favorites()


def test_fetch_unknown_collection(client, http_session):
    """Test that only known collections can be fetched."""
    with pytest.raises(ValueError, match="Unknown collection"):
        client.fetch_collection("projects")
    http_session.get.assert_not_called()


def test_parse_items_rejects_non_list():
    """Test that the body must be a JSON array."""
    with pytest.raises(ValueError, match="Expected a JSON array"):
        parse_items({"items": []}, ItemKind.FAVORITE)


def test_parse_items_rejects_missing_id():
    """Test that every object needs an id."""
    with pytest.raises(ValueError, match="missing id"):
        parse_items([{"name": "no id"}], ItemKind.FILTER)


def test_parse_items_normalizes_numeric_ids():
    """Test that numeric ids become strings."""
    (item,) = parse_items([{"id": 2203306141, "name": "Inbox"}], ItemKind.FAVORITE)
    assert item.id == "2203306141"


def test_url_for_joins_slashes(config):
    """Test URL construction."""
    client = TodoistClient("t", config)
    assert client.url_for("/filters") == f"{config.base_url}/filters"


def test_close_releases_session(client, http_session):
    """Test closing the client."""
    client.close()

    http_session.close.assert_called_once()
    assert client.session is None
