# Entrius 2025
import html
import itertools
import json
import re
import threading
import time
from typing import Any, Dict, Iterator, Optional
from urllib.parse import quote

import bittensor as bt
import requests

from forgelink.classes import RoomMessage
from forgelink.constants import (
    MATRIX_CLIENT_API_PREFIX,
    MATRIX_HTML_FORMAT,
    MATRIX_SYNC_RETRY_SECONDS,
    MATRIX_SYNC_TIMEOUT_MS,
)

MATRIX_REQUEST_TIMEOUT = 30  # seconds, on top of the sync long-poll timeout

# Skip room history on the first sync; only messages arriving afterwards are handled
INITIAL_SYNC_FILTER = json.dumps({"room": {"timeline": {"limit": 0}}})

_LIST_ITEM_BREAK = re.compile(r'</li>\s*<li>', re.IGNORECASE)
_HTML_TAG = re.compile(r'<[^>]+>')


class MatrixError(Exception):
    """Failed call to the Matrix client-server API."""

    def __init__(self, message: str, status_code: Optional[int] = None, errcode: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.errcode = errcode


def html_to_text(body: str) -> str:
    """Plain-text fallback for an HTML notice body."""
    text = _LIST_ITEM_BREAK.sub('\n* ', body)
    if text != body:
        text = '* ' + text
    return html.unescape(_HTML_TAG.sub('', text))


def _request(
    session: requests.Session, method: str, url: str, timeout: float = MATRIX_REQUEST_TIMEOUT, **kwargs
) -> Dict[str, Any]:
    try:
        response = session.request(method, url, timeout=timeout, **kwargs)
    except requests.exceptions.RequestException as e:
        raise MatrixError(f"Matrix request {method} {url} failed: {e}") from e

    try:
        data = response.json()
    except ValueError:
        data = {}

    if response.status_code != 200:
        errcode = data.get("errcode") if isinstance(data, dict) else None
        error = data.get("error") if isinstance(data, dict) else None
        raise MatrixError(
            f"Matrix request {method} {url} failed with status {response.status_code}: {errcode} {error}",
            status_code=response.status_code,
            errcode=errcode,
        )
    return data


class MatrixClient:
    """Thin Matrix client-server API client used by the bot.

    Sending is serialized with a lock so the message handler and the event
    relay can share one client.
    """

    def __init__(self, homeserver: str, access_token: str, session: Optional[requests.Session] = None):
        self.homeserver = homeserver.rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {access_token}"})

        self._send_lock = threading.Lock()
        self._txn_counter = itertools.count()
        self._user_id_lock = threading.Lock()
        self._user_id: Optional[str] = None

    def _url(self, path: str) -> str:
        return f"{self.homeserver}{MATRIX_CLIENT_API_PREFIX}{path}"

    @staticmethod
    def password_login(homeserver: str, user: str, password: str) -> str:
        """Log in with a password and return a new access token."""
        data = _request(
            requests.Session(),
            "POST",
            f"{homeserver.rstrip('/')}{MATRIX_CLIENT_API_PREFIX}/login",
            json={
                "type": "m.login.password",
                "identifier": {"type": "m.id.user", "user": user},
                "password": password,
            },
        )
        token = data.get("access_token")
        if not token:
            raise MatrixError("Matrix login response did not include an access token")
        return token

    def get_user_id(self) -> str:
        """Return the bot's own user id, fetched once and cached."""
        with self._user_id_lock:
            if self._user_id is None:
                data = _request(self.session, "GET", self._url("/account/whoami"))
                self._user_id = data["user_id"]
                bt.logging.info(f"Logged in to Matrix as {self._user_id}")
            return self._user_id

    def resolve_room(self, room: str) -> str:
        """Resolve a room alias (``#room:server``) to a room id. Room ids are returned unchanged."""
        if room.startswith('!'):
            return room
        data = _request(self.session, "GET", self._url(f"/directory/room/{quote(room, safe='')}"))
        return data["room_id"]

    def _send_message(self, room_id: str, content: Dict[str, Any]) -> str:
        with self._send_lock:
            txn_id = f"forgelink.{int(time.time() * 1000)}.{next(self._txn_counter)}"
            data = _request(
                self.session,
                "PUT",
                self._url(f"/rooms/{quote(room_id, safe='')}/send/m.room.message/{txn_id}"),
                json=content,
            )
        return data.get("event_id", "")

    def send_notice(self, room_id: str, text: str) -> str:
        return self._send_message(room_id, {"msgtype": "m.notice", "body": text})

    def send_html_notice(self, room_id: str, body_html: str) -> str:
        return self._send_message(
            room_id,
            {
                "msgtype": "m.notice",
                "body": html_to_text(body_html),
                "format": MATRIX_HTML_FORMAT,
                "formatted_body": body_html,
            },
        )

    def sync(self, since: Optional[str] = None, timeout_ms: int = 0, sync_filter: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"timeout": timeout_ms}
        if since:
            params["since"] = since
        if sync_filter:
            params["filter"] = sync_filter
        return _request(
            self.session,
            "GET",
            self._url("/sync"),
            timeout=MATRIX_REQUEST_TIMEOUT + timeout_ms / 1000,
            params=params,
        )

    @staticmethod
    def room_messages(sync_response: Dict[str, Any]) -> Iterator[RoomMessage]:
        """Extract text messages from the joined rooms of a sync response."""
        joined = sync_response.get("rooms", {}).get("join", {})
        for room_id, room in joined.items():
            for event in room.get("timeline", {}).get("events", []):
                if event.get("type") != "m.room.message":
                    continue
                body = (event.get("content") or {}).get("body")
                if not isinstance(body, str):
                    continue
                yield RoomMessage(room_id=room_id, sender=event.get("sender", ""), body=body)

    def iter_room_messages(self, stop_event: threading.Event) -> Iterator[RoomMessage]:
        """Long-poll /sync and yield new room messages until ``stop_event`` is set."""
        since: Optional[str] = None

        while not stop_event.is_set():
            try:
                if since is None:
                    since = self.sync(sync_filter=INITIAL_SYNC_FILTER)["next_batch"]
                    bt.logging.info("Matrix client started")
                    continue
                response = self.sync(since=since, timeout_ms=MATRIX_SYNC_TIMEOUT_MS)
            except (MatrixError, KeyError) as e:
                bt.logging.warning(f"Matrix sync failed, retrying in {MATRIX_SYNC_RETRY_SECONDS}s: {e}")
                stop_event.wait(MATRIX_SYNC_RETRY_SECONDS)
                continue

            since = response.get("next_batch", since)
            yield from self.room_messages(response)
