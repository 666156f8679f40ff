# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Shared fixtures: scripted GitHub and Matrix doubles plus raw payload factories.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from forgelink.classes import EventsPage
from forgelink.forge.client import ForgeNotFoundError

EPOCH = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def github_timestamp(moment: datetime) -> str:
    return moment.strftime('%Y-%m-%dT%H:%M:%SZ')


class ScriptedForgeClient:
    """Forge client double that replays scripted issues and event pages."""

    full_name = 'fish-shell/fish-shell'

    def __init__(self, issues: Optional[Dict[int, Any]] = None, pages: Optional[List[Any]] = None):
        self.issues = issues or {}
        self.pages = list(pages or [])
        self.issue_calls: List[int] = []
        self.etags_seen: List[Optional[str]] = []

    def get_issue(self, number: int) -> Dict[str, Any]:
        self.issue_calls.append(number)
        result = self.issues.get(number, ForgeNotFoundError(f'#{number} not found'))
        if isinstance(result, Exception):
            raise result
        return result

    def list_repo_events(self, etag: Optional[str] = None) -> EventsPage:
        self.etags_seen.append(etag)
        if not self.pages:
            return EventsPage(etag=etag, not_modified=True)
        result = self.pages.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeMatrix:
    """Matrix client double recording every notice sent."""

    def __init__(self, user_id: str = '@fishbot:matrix.org', messages=None):
        self.user_id = user_id
        self.messages = list(messages or [])
        self.sent: List[tuple] = []
        self.user_id_calls = 0

    def get_user_id(self) -> str:
        self.user_id_calls += 1
        return self.user_id

    def resolve_room(self, room: str) -> str:
        return '!fish:matrix.org' if room.startswith('#') else room

    def send_html_notice(self, room_id: str, body: str) -> str:
        self.sent.append(('html', room_id, body))
        return f'$event{len(self.sent)}'

    def send_notice(self, room_id: str, body: str) -> str:
        self.sent.append(('text', room_id, body))
        return f'$event{len(self.sent)}'

    def iter_room_messages(self, stop_event):
        for message in self.messages:
            if stop_event.is_set():
                return
            yield message


def _make_issue(
    number: int = 4521,
    title: str = 'Crash on <input>',
    state: str = 'open',
    state_reason: Optional[str] = None,
    locked: bool = False,
    pull_request: bool = False,
) -> Dict[str, Any]:
    kind = 'pull' if pull_request else 'issues'
    issue = {
        'number': number,
        'title': title,
        'html_url': f'https://github.com/fish-shell/fish-shell/{kind}/{number}',
        'state': state,
        'state_reason': state_reason,
        'locked': locked,
    }
    if pull_request:
        issue['pull_request'] = {'url': f'https://api.github.com/repos/fish-shell/fish-shell/pulls/{number}'}
    return issue


def _make_raw_event(
    event_id: str,
    seconds_after_epoch: int,
    event_type: str = 'IssuesEvent',
    action: str = 'opened',
    number: int = 1000,
    title: str = 'Something broke',
    login: str = 'faho',
) -> Dict[str, Any]:
    subject = {
        'number': number,
        'title': title,
        'html_url': f'https://github.com/fish-shell/fish-shell/issues/{number}',
    }
    payload: Dict[str, Any] = {'action': action}
    if event_type == 'PullRequestEvent':
        subject['html_url'] = f'https://github.com/fish-shell/fish-shell/pull/{number}'
        payload['pull_request'] = subject
    elif event_type in ('IssuesEvent', 'IssueCommentEvent'):
        payload['issue'] = subject
    return {
        'id': event_id,
        'type': event_type,
        'actor': {'login': login},
        'created_at': github_timestamp(EPOCH + timedelta(seconds=seconds_after_epoch)),
        'payload': payload,
    }


@pytest.fixture
def epoch():
    return EPOCH


@pytest.fixture
def make_issue():
    return _make_issue


@pytest.fixture
def make_raw_event():
    return _make_raw_event


@pytest.fixture
def forge_client():
    return ScriptedForgeClient


@pytest.fixture
def fake_matrix():
    return FakeMatrix
