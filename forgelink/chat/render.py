# Entrius 2025

"""Rendering of resolved links and repository events into room messages."""

import html
import re
from typing import List, Optional, Sequence

import bittensor as bt

from forgelink.classes import RepoEvent, ResolvedLink
from forgelink.constants import (
    ISSUES_EVENT,
    MESSAGE_STYLE_HTML,
    PULL_REQUEST_EVENT,
    RELAYED_EVENT_ACTIONS,
)

UNSAFE_HTML_CHARS = re.compile(r'[^0-9A-Za-z ]')


def escape(text: str) -> str:
    """Replace everything but ASCII letters, digits and spaces with numeric character references."""
    return UNSAFE_HTML_CHARS.sub(lambda m: f'&#{ord(m.group(0))};', text)


def escape_attribute(value: str) -> str:
    """Escape a value for a double-quoted HTML attribute."""
    return html.escape(value, quote=True)


def make_list(style: str, lines: Sequence[str]) -> str:
    """Join lines into one message body.

    A single line is returned as is. Several lines become an unordered list
    in html style or asterisk bullets in text style.
    """
    if not lines:
        return ''
    if len(lines) == 1:
        return lines[0]
    if style == MESSAGE_STYLE_HTML:
        return '<ul><li>' + '</li><li>'.join(lines) + '</li></ul>'
    return '* ' + '\n* '.join(lines)


def format_link_line(style: str, link: ResolvedLink) -> str:
    label = link.kind.label
    if style == MESSAGE_STYLE_HTML:
        return (
            f'<a href="{escape_attribute(link.url)}">'
            f'{label} #{link.number}: {link.status_glyph} {escape(link.title)}</a>'
        )
    return f'{label} {link.number}: {link.status_glyph} {link.title}: {link.url}'


def format_link_lines(style: str, links: Sequence[ResolvedLink]) -> List[str]:
    return [format_link_line(style, link) for link in links]


def format_event_line(style: str, event: RepoEvent) -> Optional[str]:
    """Describe an issue or pull request event, or None if it is not relayed."""
    if event.type == ISSUES_EVENT:
        noun = 'issue'
    elif event.type == PULL_REQUEST_EVENT:
        noun = 'pull request'
    else:
        bt.logging.debug(f'Unhandled {event.type} event {event.id}')
        return None

    if event.action not in RELAYED_EVENT_ACTIONS or event.subject is None:
        bt.logging.debug(f'Unhandled {event.type} with action {event.action}: {event.id}')
        return None

    subject = event.subject
    if style == MESSAGE_STYLE_HTML:
        return (
            f'@{escape(event.actor)} {event.action} {noun} #{subject.number}: '
            f'<a href="{escape_attribute(subject.url)}">{escape(subject.title)}</a>'
        )
    return f'@{event.actor} {event.action} {noun} #{subject.number}: {subject.title}'


def format_event_lines(style: str, events: Sequence[RepoEvent]) -> List[str]:
    lines = []
    for event in events:
        line = format_event_line(style, event)
        if line is not None:
            lines.append(line)
    return lines
