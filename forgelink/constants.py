# Entrius 2025
# =============================================================================
# GitHub API
# =============================================================================
BASE_GITHUB_API_URL = "https://api.github.com"
GITHUB_REQUEST_TIMEOUT = 30  # seconds

DEFAULT_GITHUB_OWNER = "fish-shell"
DEFAULT_GITHUB_REPO = "fish-shell"

# =============================================================================
# Repository Events Feed
# =============================================================================
DEFAULT_POLL_INTERVAL_SECONDS = 60  # used when X-Poll-Interval is absent
POLL_INTERVAL_HEADER = "X-Poll-Interval"

# https://docs.github.com/en/rest/using-the-rest-api/github-event-types
ISSUE_COMMENT_EVENT = "IssueCommentEvent"
ISSUES_EVENT = "IssuesEvent"
PULL_REQUEST_EVENT = "PullRequestEvent"
PULL_REQUEST_REVIEW_COMMENT_EVENT = "PullRequestReviewCommentEvent"
PULL_REQUEST_REVIEW_EVENT = "PullRequestReviewEvent"
WATCH_EVENT = "WatchEvent"

RELAYED_EVENT_TYPES = (ISSUES_EVENT, PULL_REQUEST_EVENT)
RELAYED_EVENT_ACTIONS = ("opened", "closed", "reopened")

# =============================================================================
# Issue References
# =============================================================================
MIN_ISSUE_REFERENCE_DIGITS = 3  # shorter numbers are usually unrelated hashtags

# =============================================================================
# Status Glyphs
# =============================================================================
PR_DONE_GLYPH = "✅"
PR_REJECTED_GLYPH = "🚫"
PR_IN_PROGRESS_GLYPH = "🛠️"
ISSUE_DONE_GLYPH = "☑️"
ISSUE_REJECTED_GLYPH = "❌"
ISSUE_PENDING_GLYPH = "⬜"
ISSUE_LOCKED_GLYPH = "🔒"
ISSUE_CLOSED_GLYPH = "✅"

# =============================================================================
# Matrix
# =============================================================================
DEFAULT_MATRIX_HOMESERVER = "https://matrix.org"
DEFAULT_MATRIX_ROOM = "#fish-shell:matrix.org"
MATRIX_CLIENT_API_PREFIX = "/_matrix/client/v3"
MATRIX_SYNC_TIMEOUT_MS = 30000
MATRIX_SYNC_RETRY_SECONDS = 5
MATRIX_HTML_FORMAT = "org.matrix.custom.html"

# =============================================================================
# Messages
# =============================================================================
MESSAGE_STYLE_HTML = "html"
MESSAGE_STYLE_TEXT = "text"
MESSAGE_STYLES = (MESSAGE_STYLE_HTML, MESSAGE_STYLE_TEXT)

MAX_RESOLVER_WORKERS = 8
