"""Integration tests for a full visualizer session."""

import pytest

from todoist_visualizer.api.client import TodoistClient
from todoist_visualizer.models import Err, ErrorCode, Ok
from todoist_visualizer.session import SessionPhase, VisualizerSession
from todoist_visualizer.utils.image_utils import PillowImageGenerator


@pytest.mark.integration
def test_fetch_select_generate(config, http_session, tmp_path):
    """Test the whole flow from fetching to rendered images."""
    client = TodoistClient("test_token", config, session=http_session)
    generator = PillowImageGenerator(str(tmp_path), width=64, height=48)

    with VisualizerSession(client, generator) as session:
        assert isinstance(session.load_collections(), Ok)
        for item_id in ("1", "2", "1", "10"):
            assert isinstance(session.toggle(item_id), Ok)

        result = session.generate_images()

    assert isinstance(result, Ok)
    state = result.value
    assert state.phase == SessionPhase.IMAGES_READY
    assert state.selection == frozenset({"2", "10"})
    assert set(state.images) == {"2", "10"}
    assert sorted(p.name for p in tmp_path.iterdir()) == ["10.png", "2.png"]


@pytest.mark.integration
def test_recover_from_rate_limit(config, http_session):
    """Test that a rate-limited fetch can be retried by the user."""
    client = TodoistClient("test_token", config, session=http_session)
    http_session.statuses["filters"] = 429

    with VisualizerSession(client) as session:
        failed = session.load_collections()
        assert isinstance(failed, Err)
        assert failed.error.code == ErrorCode.RATE_LIMIT
        assert session.snapshot.favorites == ()

        http_session.statuses.clear()
        loaded = session.load_collections()

    assert isinstance(loaded, Ok)
    assert [f.id for f in loaded.value.favorites] == ["1", "2"]
