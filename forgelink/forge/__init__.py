from .client import ForgeError, ForgeNotFoundError, ForgeRequestError, GitHubClient
from .references import extract_issue_numbers
from .resolver import IssueResolver
from .watcher import RepoEventWatcher

__all__ = [
    "ForgeError",
    "ForgeNotFoundError",
    "ForgeRequestError",
    "GitHubClient",
    "IssueResolver",
    "RepoEventWatcher",
    "extract_issue_numbers",
]
