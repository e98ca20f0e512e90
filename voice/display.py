"""Text surfaces the voice client writes to.

Three lines: status (what the assistant is doing), transcript (what it
heard) and response (what it answered). The client only ever writes to
them. ConsoleDisplay prints changes to a stream; other front-ends
provide an object with the same methods.
"""

import logging
import sys

logger = logging.getLogger(__name__)


class ConsoleDisplay:
    """Render the three text surfaces as prefixed console lines."""

    def __init__(self, stream=None):
        self._stream = stream or sys.stdout
        self.status = ""
        self.transcript = ""
        self.response = ""
        self.feedback_status = ""

    def set_status(self, text: str):
        if text == self.status:
            return
        self.status = text
        if text:
            self._emit("status", text)

    def set_transcript(self, text: str):
        self.transcript = text
        self._emit("you", text)

    def set_response(self, text: str):
        self.response = text
        self._emit("nova", text)

    def append_response(self, text: str):
        """Add a line under the current response (timer completions)."""
        self.response = f"{self.response}\n{text}" if self.response else text
        self._emit("nova", text)

    def set_feedback_status(self, text: str):
        self.feedback_status = text
        if text:
            self._emit("feedback", text)

    def _emit(self, label: str, text: str):
        try:
            print(f"[{label}] {text}", file=self._stream, flush=True)
        except (OSError, ValueError) as exc:
            logger.debug("Display write failed: %s", exc)
