from .matrix_client import MatrixClient, MatrixError
from .render import escape, format_event_line, format_link_line, make_list

__all__ = ["MatrixClient", "MatrixError", "escape", "format_event_line", "format_link_line", "make_list"]
