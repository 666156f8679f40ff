from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from forgelink.constants import ISSUES_EVENT, PULL_REQUEST_EVENT


def parse_github_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp (``2024-05-01T12:00:00Z``) into an aware UTC datetime."""
    return datetime.fromisoformat(value.rstrip("Z")).replace(tzinfo=timezone.utc)


class LinkKind(Enum):
    """What a resolved reference points at"""

    ISSUE = "Issue"
    PULL_REQUEST = "Pull Request"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class ResolvedLink:
    """An issue or pull request resolved from a chat reference"""

    kind: LinkKind
    number: int
    title: str
    url: str
    state: str  # "open" or "closed"
    status_glyph: str


@dataclass(frozen=True)
class EventSubject:
    """Issue or pull request snapshot carried by a repository event"""

    number: int
    title: str
    url: str

    @classmethod
    def from_github_response(cls, raw: Dict[str, Any]) -> Optional["EventSubject"]:
        """Build the snapshot, or None when the payload was trimmed of number, title or url."""
        try:
            return cls(number=int(raw["number"]), title=raw["title"], url=raw["html_url"])
        except (KeyError, TypeError, ValueError):
            return None


@dataclass(frozen=True)
class RepoEvent:
    """A single entry of the repository's public events feed"""

    id: str
    type: str
    created_at: datetime
    actor: str
    action: Optional[str] = None
    subject: Optional[EventSubject] = None

    @classmethod
    def from_github_response(cls, raw: Dict[str, Any]) -> "RepoEvent":
        """Build an event from a raw feed item.

        A subject missing its number, title or url leaves ``subject`` unset
        instead of failing.

        Raises:
            KeyError, TypeError, ValueError: if id, type or created_at is missing or invalid.
        """
        payload = raw.get("payload") or {}
        event_type = raw["type"]

        if event_type == PULL_REQUEST_EVENT:
            subject_raw = payload.get("pull_request")
        elif event_type == ISSUES_EVENT:
            subject_raw = payload.get("issue")
        else:
            subject_raw = payload.get("issue") or payload.get("pull_request")

        return cls(
            id=str(raw["id"]),
            type=event_type,
            created_at=parse_github_timestamp(raw["created_at"]),
            actor=(raw.get("actor") or {}).get("login", ""),
            action=payload.get("action"),
            subject=EventSubject.from_github_response(subject_raw) if isinstance(subject_raw, dict) else None,
        )


@dataclass
class EventsPage:
    """Result of one conditional fetch of the events feed"""

    events: List[Dict[str, Any]] = field(default_factory=list)
    etag: Optional[str] = None
    poll_interval: Optional[int] = None
    not_modified: bool = False


@dataclass
class WatcherState:
    """Mutable polling state owned by a single RepoEventWatcher"""

    epoch_watermark: datetime
    etag: Optional[str] = None
    poll_interval_seconds: int = 0

    def advance(self, latest: Optional[datetime]) -> None:
        """Move the watermark forward, never backwards."""
        if latest is not None and latest > self.epoch_watermark:
            self.epoch_watermark = latest

    def __str__(self) -> str:
        return (
            f"WatcherState(watermark={self.epoch_watermark.isoformat()}, "
            f"etag={self.etag}, poll_interval={self.poll_interval_seconds}s)"
        )


@dataclass(frozen=True)
class RoomMessage:
    """Inbound chat message"""

    room_id: str
    sender: str
    body: str
