# Entrius 2025

"""Detection of ``#1234`` style issue/pull request references in free text."""

import re
from typing import List

from forgelink.constants import MIN_ISSUE_REFERENCE_DIGITS

# A reference starts at a word boundary, after a space or newline, or at the
# start of the text, and must end on a word boundary ("#1234abc" is not one).
ISSUE_REFERENCE_PATTERN = re.compile(
    r'(?:\b|(?<=[ \n])|\A)#([0-9]{%d,})\b' % MIN_ISSUE_REFERENCE_DIGITS,
    re.ASCII,
)


def extract_issue_numbers(text: str) -> List[int]:
    """Find issue numbers referenced in a message.

    Args:
        text (str): Message body

    Returns:
        List[int]: Distinct referenced numbers in order of first appearance
    """
    if not text:
        return []

    seen = set()
    results: List[int] = []
    for match in ISSUE_REFERENCE_PATTERN.finditer(text):
        number = int(match.group(1))
        if number <= 0 or number in seen:
            continue
        seen.add(number)
        results.append(number)

    return results
