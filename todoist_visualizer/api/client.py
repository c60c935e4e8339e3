"""HTTP gateway for the Todoist REST API."""

import logging
from typing import Any, List, Optional

import requests

from todoist_visualizer.config import VisualizerConfig
from todoist_visualizer.models import ApiError, ItemKind, MissingCredentialError, RemoteItem
from todoist_visualizer.utils.auth import authenticate_todoist

logger = logging.getLogger(__name__)

RESOURCE_KINDS = {
    "favorites": ItemKind.FAVORITE,
    "filters": ItemKind.FILTER,
    "tasks": ItemKind.TASK,
}


def parse_items(payload: Any, kind: ItemKind) -> List[RemoteItem]:
    """Convert a decoded JSON response body into remote items.

    Raises:
        ValueError: If the body is not a JSON array of objects with an id
    """
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of {kind.value} items, got {type(payload).__name__}")
    return [RemoteItem.from_json(entry, kind) for entry in payload]


class TodoistClient:
    """Fetches a user's collections from the Todoist REST API."""

    def __init__(
        self,
        api_token: str,
        config: Optional[VisualizerConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            api_token: Personal API token, sent as a bearer token
            config: Base URL, timeout and retry settings
            session: Pre-built HTTP session; built from the token on first use otherwise
        """
        self._api_token = api_token or ""
        self.config = config or VisualizerConfig()
        self.session = session

    def __repr__(self) -> str:
        return f"TodoistClient(base_url={self.config.base_url!r})"

    def _get_session(self) -> requests.Session:
        if self.session is None:
            self.session = authenticate_todoist(self._api_token, self.config)
        return self.session

    def url_for(self, resource_path: str) -> str:
        """Join the configured base URL and a resource path."""
        return f"{self.config.base_url.rstrip('/')}/{resource_path.lstrip('/')}"

    def fetch_collection(self, resource_path: str) -> List[RemoteItem]:
        """Fetch one collection of items.

        Args:
            resource_path: ``favorites``, ``filters`` or ``tasks``

        Returns:
            Items in the order the API returned them

        Raises:
            MissingCredentialError: If no token was given; no request is made
            ApiError: If the API answers with a non-2xx status
            ValueError: If the response body is not a list of items
            requests.RequestException: On transport failures
        """
        if not self._api_token.strip():
            raise MissingCredentialError("API token is required")

        kind = RESOURCE_KINDS.get(resource_path.strip("/"))
        if kind is None:
            raise ValueError(f"Unknown collection: {resource_path}")

        url = self.url_for(resource_path)
        logger.debug("GET %s", url)
        response = self._get_session().get(url, timeout=self.config.timeout)

        if not 200 <= response.status_code < 300:
            logger.debug("GET %s failed with status %s", url, response.status_code)
            raise ApiError(response.status_code)

        items = parse_items(response.json(), kind)
        logger.info("Fetched %d %s", len(items), resource_path)
        return items

    def fetch_favorites(self) -> List[RemoteItem]:
        """Fetch the user's favorites."""
        return self.fetch_collection("favorites")

    def fetch_filters(self) -> List[RemoteItem]:
        """Fetch the user's saved filters."""
        return self.fetch_collection("filters")

    def fetch_tasks(self) -> List[RemoteItem]:
        """Fetch the user's active tasks."""
        return self.fetch_collection("tasks")

    def close(self) -> None:
        """Close the HTTP session if one was built."""
        if self.session is not None:
            self.session.close()
            self.session = None
