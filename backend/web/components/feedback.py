"""
Feedback banner shown once after a submission redirect.
"""

from typing import Optional

from .base import Component


class FeedbackBanner(Component):
    """Render a success/error message; `debug_info` only for admins."""

    def __init__(self, status: str, message: str, *, debug_info: Optional[str] = None, show_debug: bool = False) -> None:
        self.status = status
        self.message = message
        self.debug_info = debug_info
        self.show_debug = show_debug

    def render(self) -> str:
        if not self.status:
            return ""
        kind = "success" if self.status == "success" else "error"
        role = "status" if kind == "success" else "alert"
        debug_html = ""
        if self.show_debug and self.debug_info:
            debug_html = f'<pre class="feedback-debug">{self.escape(self.debug_info)}</pre>'
        return (
            f'<div class="{self.classes("submission-feedback", kind)}" role="{role}">'
            f"<p>{self.escape(self.message)}</p>{debug_html}</div>"
        )
