# Entrius 2025
import time
from typing import Any, Dict, Optional

import bittensor as bt
import requests

from forgelink.classes import EventsPage
from forgelink.constants import (
    BASE_GITHUB_API_URL,
    GITHUB_REQUEST_TIMEOUT,
    POLL_INTERVAL_HEADER,
)

RATE_LIMIT_MIN_REMAINING = 10  # at or below this many requests left we warn


class ForgeError(Exception):
    """Base class for GitHub API failures."""


class ForgeNotFoundError(ForgeError):
    """The requested issue or pull request does not exist."""


class ForgeRequestError(ForgeError):
    """Transport failure, unexpected status code or malformed response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _int_header(response: requests.Response, name: str) -> Optional[int]:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        bt.logging.debug(f"Ignoring malformed {name} header: {value!r}")
        return None


def parse_poll_interval(response: requests.Response) -> Optional[int]:
    """Read the server advised polling interval in seconds, if any."""
    interval = _int_header(response, POLL_INTERVAL_HEADER)
    return None if interval is None else max(0, interval)


def log_rate_limit(response: requests.Response) -> Optional[int]:
    """Log the remaining GitHub quota once it runs low.

    Args:
        response: A successful GitHub API response

    Returns:
        Optional[int]: Requests remaining in the current window, None when GitHub sent no quota headers
    """
    remaining = _int_header(response, "X-RateLimit-Remaining")
    limit = _int_header(response, "X-RateLimit-Limit")
    if remaining is None or not limit:
        return None

    reset_in = max(0, (_int_header(response, "X-RateLimit-Reset") or 0) - int(time.time()))
    if remaining <= RATE_LIMIT_MIN_REMAINING:
        bt.logging.warning(f"GitHub API quota nearly spent: {remaining}/{limit} left, window resets in {reset_in}s")
    elif remaining * 10 <= limit:
        bt.logging.info(f"GitHub API quota: {remaining}/{limit} left")
    return remaining


def make_headers(token: str) -> Dict[str, str]:
    """Build standard GitHub HTTP headers for a PAT.

    Args:
        token (str): Github pat
    Returns:
        Dict[str, str]: Mapping of HTTP header names to values.
    """
    return {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3+json",
    }


class GitHubClient:
    """Minimal GitHub REST client for one owner/repo.

    Only the two calls the bot needs are exposed so tests can swap in a
    scripted double: ``get_issue`` and ``list_repo_events``.
    """

    def __init__(self, token: str, owner: str, repo: str, session: Optional[requests.Session] = None):
        self.owner = owner
        self.repo = repo
        self.session = session or requests.Session()
        self.session.headers.update(make_headers(token))

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _get(self, path: str, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        try:
            return self.session.get(
                f"{BASE_GITHUB_API_URL}/repos/{self.full_name}{path}",
                headers=headers,
                timeout=GITHUB_REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise ForgeRequestError(f"GitHub request {path} failed: {e}") from e

    def get_issue(self, number: int) -> Dict[str, Any]:
        """Fetch an issue or pull request by number.

        Raises:
            ForgeNotFoundError: GitHub answered 404.
            ForgeRequestError: any other failure.
        """
        response = self._get(f"/issues/{number}")

        if response.status_code == 404:
            raise ForgeNotFoundError(f"{self.full_name}#{number} does not exist")
        if response.status_code != 200:
            raise ForgeRequestError(
                f"GitHub issue #{number} request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        log_rate_limit(response)
        try:
            return response.json()
        except ValueError as e:
            raise ForgeRequestError(f"Malformed JSON for GitHub issue #{number}: {e}") from e

    def list_repo_events(self, etag: Optional[str] = None) -> EventsPage:
        """Fetch the most recent page of public repository events.

        Args:
            etag (Optional[str]): ETag from the previous successful fetch, sent as If-None-Match

        Returns:
            EventsPage: ``not_modified`` is set when GitHub answered 304

        Raises:
            ForgeRequestError: transport failure, unexpected status or malformed body.
        """
        headers = {"If-None-Match": etag} if etag else None
        response = self._get("/events", headers=headers)

        if response.status_code == 304:
            return EventsPage(etag=etag, poll_interval=parse_poll_interval(response), not_modified=True)
        if response.status_code != 200:
            raise ForgeRequestError(
                f"GitHub events request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        log_rate_limit(response)
        try:
            events = response.json()
        except ValueError as e:
            raise ForgeRequestError(f"Malformed JSON in GitHub events response: {e}") from e
        if not isinstance(events, list):
            raise ForgeRequestError(f"Unexpected GitHub events payload type: {type(events).__name__}")

        return EventsPage(
            events=events,
            etag=response.headers.get("ETag"),
            poll_interval=parse_poll_interval(response),
        )
