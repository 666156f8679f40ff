# Entrius 2025

"""Polling watcher for a repository's public events feed."""

import queue
import threading
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

import bittensor as bt

from forgelink.classes import EventsPage, RepoEvent, WatcherState, parse_github_timestamp
from forgelink.constants import DEFAULT_POLL_INTERVAL_SECONDS


class RepoEventWatcher:
    """Polls the events feed on a background thread and queues batches of new events.

    Each iteration sleeps for the current poll interval, performs a conditional
    fetch with the last ETag, keeps events newer than the watermark whose type
    is of interest, and then advances the watermark to the newest timestamp
    seen on the page. The watermark only ever moves to event timestamps,
    never to the wall clock.

    Batches are put on ``self.batches`` in the order they were produced.
    """

    def __init__(
        self,
        client,
        epoch: datetime,
        event_types: Iterable[str],
        default_poll_interval: int = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self.client = client
        self.event_types = frozenset(event_types)
        self.default_poll_interval = default_poll_interval
        self.state = WatcherState(epoch_watermark=epoch)
        self.batches: "queue.Queue[List[RepoEvent]]" = queue.Queue()

        self._stop_event = threading.Event()
        self.watch_thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.watch_thread is not None and self.watch_thread.is_alive()

    def _fetch(self) -> Optional[EventsPage]:
        """Conditional fetch of the feed. Returns None for a 304 or a failed request."""
        try:
            page = self.client.list_repo_events(self.state.etag)
        except Exception as e:
            bt.logging.warning(f"GitHub events error: {e}")
            self.state.poll_interval_seconds = self.default_poll_interval
            return None

        if page.poll_interval is not None:
            self.state.poll_interval_seconds = page.poll_interval
        else:
            self.state.poll_interval_seconds = self.default_poll_interval

        if page.not_modified:
            bt.logging.debug("GitHub events unchanged since last poll")
            return None

        self.state.etag = page.etag
        return page

    def poll_once(self) -> List[RepoEvent]:
        """Run a single fetch/filter/advance iteration.

        Returns:
            List[RepoEvent]: New events of interest, in feed order (possibly empty)
        """
        page = self._fetch()
        if page is None:
            return []

        epoch = self.state.epoch_watermark
        latest: Optional[datetime] = None
        new_events = 0
        batch: List[RepoEvent] = []

        for raw in page.events:
            event_id = raw.get("id") if isinstance(raw, dict) else None
            try:
                created_at = parse_github_timestamp(raw["created_at"])
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                bt.logging.warning(f"Skipping GitHub event {event_id} without a valid created_at: {e}")
                continue

            # Every timestamp counts toward the watermark, whatever the rest of the item holds
            if latest is None or created_at > latest:
                latest = created_at

            if created_at <= epoch:
                # Presumed already handled in an earlier iteration
                continue

            new_events += 1
            event_type = raw.get("type")
            if event_type not in self.event_types:
                bt.logging.debug(f"Ignoring {event_type} event {event_id}")
                continue

            try:
                event = RepoEvent.from_github_response(raw)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                bt.logging.warning(f"Skipping malformed GitHub event {event_id}: {e}")
                continue

            batch.append(event)

        self.state.advance(latest)

        bt.logging.debug(f"Yielding {len(batch)} of {new_events} new repo event(s)")
        return batch

    def _watch_loop(self) -> None:
        """Main polling loop that runs in a separate thread."""
        bt.logging.info(f"Repository event watcher started at {self.state.epoch_watermark.isoformat()}")

        while not self._stop_event.is_set():
            if self._stop_event.wait(self.state.poll_interval_seconds):
                break

            try:
                batch = self.poll_once()
            except Exception as e:
                bt.logging.error(f"Unexpected error in repository event watcher: {e}")
                self.state.poll_interval_seconds = self.default_poll_interval
                continue

            if batch:
                self.batches.put(batch)

        bt.logging.info("Repository event watcher stopped")

    def start(self) -> bool:
        """Start polling on a daemon thread."""
        if self.is_running:
            bt.logging.warning("Repository event watcher is already running")
            return False

        self._stop_event.clear()
        self.watch_thread = threading.Thread(target=self._watch_loop, name="repo-event-watcher", daemon=True)
        self.watch_thread.start()
        return True

    def stop(self, timeout: float = 10) -> None:
        """Interrupt the loop between iterations and wait for the thread."""
        self._stop_event.set()
        if self.watch_thread and self.watch_thread.is_alive():
            self.watch_thread.join(timeout=timeout)

    def iter_batches(self, stop_event: threading.Event, poll_timeout: float = 1.0) -> Iterator[List[RepoEvent]]:
        """Yield queued batches until ``stop_event`` is set."""
        while not stop_event.is_set():
            try:
                batch = self.batches.get(timeout=poll_timeout)
            except queue.Empty:
                continue
            yield batch
