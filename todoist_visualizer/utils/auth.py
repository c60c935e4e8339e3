"""Authentication utilities for the Todoist REST API."""

import logging

from google.auth.transport.requests import AuthorizedSession
from google.oauth2.credentials import Credentials
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from todoist_visualizer.config import VisualizerConfig
from todoist_visualizer.models import MissingCredentialError

logger = logging.getLogger(__name__)

# Statuses worth retrying when retries are enabled.
RETRY_STATUSES = (429, 500, 502, 503, 504)

# Usage-metrics header google-auth adds to every signed request.
METRICS_HEADER = "x-goog-api-client"


class BearerTokenCredentials(Credentials):
    """OAuth2 credentials that only add the bearer authorization header."""

    def before_request(self, request, method, url, headers):
        super().before_request(request, method, url, headers)
        # Requests go to Todoist, not Google; keep Google client metrics off them.
        headers.pop(METRICS_HEADER, None)


def get_credentials(api_token: str) -> Credentials:
    """Wrap a personal API token in a bearer credentials object.

    Personal tokens never expire and cannot be refreshed, so the credentials
    carry no refresh token or expiry.

    Args:
        api_token: Todoist personal API token

    Returns:
        Credentials that add ``Authorization: Bearer <token>`` to requests

    Raises:
        MissingCredentialError: If the token is empty
    """
    if not api_token or not api_token.strip():
        raise MissingCredentialError("API token is required")
    return BearerTokenCredentials(token=api_token.strip())


def build_retry(config: VisualizerConfig) -> Retry:
    """Get the urllib3 retry policy for the configured retry count."""
    return Retry(
        total=config.max_retries,
        backoff_factor=config.backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=["GET"],
        raise_on_status=False,
    )


def authenticate_todoist(api_token: str, config: VisualizerConfig) -> AuthorizedSession:
    """Build an HTTP session authorized with the given token.

    Args:
        api_token: Todoist personal API token
        config: Retry settings are taken from here

    Returns:
        A ``requests`` session that signs every request with the token

    Raises:
        MissingCredentialError: If the token is empty
    """
    creds = get_credentials(api_token)
    # A 401 is reported to the user, not answered with a refresh attempt.
    session = AuthorizedSession(creds, refresh_status_codes=(), max_refresh_attempts=0)
    adapter = HTTPAdapter(max_retries=build_retry(config))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    logger.debug("Built authorized session (max_retries=%d)", config.max_retries)
    return session
