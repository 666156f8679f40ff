# Entrius 2025
import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional

import bittensor as bt

from forgelink.chat.render import format_event_lines, format_link_lines, make_list
from forgelink.classes import RepoEvent, RoomMessage
from forgelink.constants import MESSAGE_STYLE_HTML, RELAYED_EVENT_TYPES
from forgelink.forge.references import extract_issue_numbers
from forgelink.forge.resolver import IssueResolver
from forgelink.forge.watcher import RepoEventWatcher
from forgelink.utils.logging import log_relayed_lines


class ForgeLinkBot:
    """Links issue references posted in Matrix rooms and relays repository activity."""

    def __init__(
        self,
        matrix,
        github,
        room: str,
        message_style: str = MESSAGE_STYLE_HTML,
        relay_logger: Optional[logging.Logger] = None,
    ):
        self.matrix = matrix
        self.github = github
        self.resolver = IssueResolver(github)
        self.room = room
        self.message_style = message_style
        self.relay_logger = relay_logger

        self.watcher: Optional[RepoEventWatcher] = None
        self.relay_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def send(self, room_id: str, lines: List[str]) -> Optional[str]:
        """Render lines into a single notice and send it, logging the outcome."""
        to_send = make_list(self.message_style, lines)
        try:
            if self.message_style == MESSAGE_STYLE_HTML:
                result = self.matrix.send_html_notice(room_id, to_send)
            else:
                result = self.matrix.send_notice(room_id, to_send)
        except Exception as e:
            bt.logging.warning(f"Matrix send to {room_id} failed: {e}")
            return None

        bt.logging.debug(f"Matrix send result: {result}")
        return result

    def handle_room_message(self, message: RoomMessage) -> None:
        """Entry point for every inbound room message."""
        if not message.body:
            return

        # Never react to our own notices
        try:
            own_user_id = self.matrix.get_user_id()
        except Exception as e:
            bt.logging.warning(f"Could not determine own Matrix user id: {e}")
            return
        if message.sender == own_user_id:
            return

        self.link_issues(message)

    def link_issues(self, message: RoomMessage) -> Optional[str]:
        """Reply with links for the issues and pull requests referenced in a message."""
        issue_numbers = extract_issue_numbers(message.body)
        if not issue_numbers:
            return None

        bt.logging.debug(f"Message received from {message.sender}: {message.body}")
        bt.logging.debug(f"Issue numbers found: {issue_numbers}")

        links = self.resolver.resolve_many(issue_numbers)
        if not links:
            return None

        lines = format_link_lines(self.message_style, links)
        bt.logging.debug(f"Extracted GitHub links: {lines}")
        return self.send(message.room_id, lines)

    def relay_batch(self, room_id: str, batch: List[RepoEvent]) -> Optional[str]:
        """Announce a batch of repository events in the room."""
        lines = format_event_lines(self.message_style, batch)
        if not lines:
            return None

        bt.logging.debug(f"GitHub events message: {lines}")
        result = self.send(room_id, lines)
        if result is not None:
            log_relayed_lines(self.relay_logger, room_id, lines)
        return result

    def _relay_loop(self, room_id: str) -> None:
        for batch in self.watcher.iter_batches(self._stop_event):
            try:
                self.relay_batch(room_id, batch)
            except Exception as e:
                bt.logging.error(f"Failed to relay {len(batch)} repository event(s): {e}")

    def start_monitor(self, epoch: Optional[datetime] = None) -> bool:
        """Start the repository watcher and the relay thread. Only the first call has an effect."""
        if self.watcher is not None:
            bt.logging.warning("Repository monitor is already running")
            return False

        room_id = self.matrix.resolve_room(self.room)
        bt.logging.info(f"Relaying {self.github.full_name} events to {self.room} ({room_id})")

        self.watcher = RepoEventWatcher(
            self.github,
            epoch or datetime.now(timezone.utc),
            RELAYED_EVENT_TYPES,
        )
        self.watcher.start()

        self.relay_thread = threading.Thread(
            target=self._relay_loop, args=(room_id,), name="event-relay", daemon=True
        )
        self.relay_thread.start()
        return True

    def run(self) -> None:
        """Start monitoring and handle inbound messages until stopped."""
        self.start_monitor()
        for message in self.matrix.iter_room_messages(self._stop_event):
            try:
                self.handle_room_message(message)
            except Exception as e:
                bt.logging.error(f"Error handling message from {message.sender}: {e}")

    def stop(self) -> None:
        """Interrupt the sync loop, the watcher and the relay thread."""
        bt.logging.info("Stopping forgelink bot...")
        self._stop_event.set()
        if self.watcher:
            self.watcher.stop()
        if self.relay_thread and self.relay_thread.is_alive():
            self.relay_thread.join(timeout=10)
