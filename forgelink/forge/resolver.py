# Entrius 2025
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

import bittensor as bt

from forgelink.classes import LinkKind, ResolvedLink
from forgelink.constants import (
    ISSUE_CLOSED_GLYPH,
    ISSUE_DONE_GLYPH,
    ISSUE_LOCKED_GLYPH,
    ISSUE_PENDING_GLYPH,
    ISSUE_REJECTED_GLYPH,
    MAX_RESOLVER_WORKERS,
    PR_DONE_GLYPH,
    PR_IN_PROGRESS_GLYPH,
    PR_REJECTED_GLYPH,
)
from forgelink.forge.client import ForgeNotFoundError


def status_glyph(issue: Dict[str, Any]) -> str:
    """Pick the status glyph for a GitHub issue/PR payload.

    The checks are a fallback chain and must stay in this order.
    """
    state_reason = issue.get('state_reason')

    if issue.get('pull_request'):
        if state_reason == 'completed':
            return PR_DONE_GLYPH
        if state_reason == 'not_planned':
            return PR_REJECTED_GLYPH
        return PR_IN_PROGRESS_GLYPH

    if state_reason == 'completed':
        return ISSUE_DONE_GLYPH
    if state_reason == 'not_planned':
        return ISSUE_REJECTED_GLYPH
    if issue.get('state') == 'open':
        return ISSUE_PENDING_GLYPH
    if issue.get('locked'):
        return ISSUE_LOCKED_GLYPH
    return ISSUE_CLOSED_GLYPH


class IssueResolver:
    """Maps issue numbers to ResolvedLink objects through a forge client."""

    def __init__(self, client, max_workers: int = MAX_RESOLVER_WORKERS):
        self.client = client
        self.max_workers = max_workers

    def resolve(self, number: int) -> Optional[ResolvedLink]:
        """Resolve a single issue/PR number.

        Args:
            number (int): Referenced issue or pull request number

        Returns:
            Optional[ResolvedLink]: None when the number is invalid, unknown or the lookup failed
        """
        if number <= 0:
            return None

        try:
            issue = self.client.get_issue(number)
        except ForgeNotFoundError:
            bt.logging.debug(f"Invalid/non-existent GitHub issue #{number}")
            return None
        except Exception as e:
            bt.logging.warning(f"Unable to retrieve GitHub issue #{number}: {e}")
            return None

        try:
            return ResolvedLink(
                kind=LinkKind.PULL_REQUEST if issue.get('pull_request') else LinkKind.ISSUE,
                number=int(issue['number']),
                title=issue['title'],
                url=issue['html_url'],
                state=issue['state'],
                status_glyph=status_glyph(issue),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            bt.logging.warning(f"Unexpected GitHub issue #{number} payload: {e}")
            return None

    def resolve_many(self, numbers: Sequence[int]) -> List[ResolvedLink]:
        """Resolve several numbers concurrently, keeping the input order.

        Numbers that fail to resolve are left out.
        """
        if not numbers:
            return []

        workers = max(1, min(self.max_workers, len(numbers)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(self.resolve, numbers))

        return [link for link in results if link is not None]
