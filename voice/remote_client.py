"""Assistant service client -- JSON calls from the voice client to the backend.

Open-ended queries never fail from the caller's point of view: if the
service cannot answer, the wake-words are stripped from the text and a
web search is opened instead. Reminder and preference calls raise
NetworkError so the dispatcher can apologise out loud. Feedback reports
its outcome on the display's feedback line, which clears itself.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests

import config
from voice.errors import NetworkError
from voice.models import QueryResult

logger = logging.getLogger(__name__)

QUERY_ENDPOINT = "/api/query"
REMINDERS_ENDPOINT = "/api/reminders"
FEEDBACK_ENDPOINT = "/api/feedback"
HISTORY_ENDPOINT = "/api/history"
SYSTEM_ENDPOINT = "/api/system"
PREFERENCES_ENDPOINT = "/api/preferences"

WAKE_WORD_RE = re.compile(
    r"\b(?:%s)\b" % "|".join(re.escape(w) for w in config.WAKE_WORDS), re.IGNORECASE
)

FEEDBACK_EMPTY = "Please enter feedback before submitting."
FEEDBACK_THANKS = "Thank you for your feedback!"
FEEDBACK_FAILED = "Failed to submit feedback. Please try again."


def clean_search_query(text: str) -> str:
    """Remove wake-words from *text* and trim the ends."""
    return WAKE_WORD_RE.sub("", text).strip()


def search_url(query: str) -> str:
    return f"{config.SEARCH_URL}?{urlencode({'q': query})}"


class AssistantClient:
    """Talk to the assistant service over HTTP."""

    def __init__(self, base_url: str = "http://localhost:3000",
                 browser: Optional[Callable[[str], Any]] = None,
                 scheduler=None, display=None, timeout: float = 30,
                 feedback_status_seconds: float = 5):
        self.base_url = base_url.rstrip("/")
        self._browser = browser
        self._scheduler = scheduler
        self._display = display
        self._timeout = timeout
        self._feedback_status_seconds = feedback_status_seconds
        self.reminders: List[str] = []

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, timeout=self._timeout, **kwargs)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise NetworkError(f"{method} {path} returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise NetworkError(f"{method} {path} returned {type(data).__name__}, expected object")
        return data

    # ─── Queries ───

    def query(self, text: str) -> QueryResult:
        """Ask the service; on any failure fall back to a web search."""
        try:
            data = self._request("POST", QUERY_ENDPOINT, json={"message": text})
            answer = data.get("response")
            if not isinstance(answer, str) or not answer.strip():
                raise NetworkError("No response from assistant")
            return QueryResult(text=answer)
        except NetworkError as exc:
            logger.warning("Query failed, searching the web instead: %s", exc)

        query = clean_search_query(text)
        url = search_url(query)
        try:
            self._browser(url)
        except Exception as exc:
            logger.error("Could not open search page: %s", exc)
        return QueryResult(
            text=f"I'm not sure about that. Searching the web for: {query}",
            fallback=True,
            search_url=url,
        )

    # ─── Reminders ───

    def add_reminder(self, text: str) -> List[str]:
        """Store a reminder and return the updated list (newest first)."""
        data = self._request("POST", REMINDERS_ENDPOINT, json={"reminder": text})
        if not data.get("success", True):
            raise NetworkError(data.get("message", "Failed to add reminder"))
        self.reminders = list(data.get("reminders", []))
        return self.reminders

    def list_reminders(self) -> List[str]:
        """Return all reminders. An empty list means there are none."""
        data = self._request("GET", REMINDERS_ENDPOINT)
        reminders = data.get("reminders")
        if not isinstance(reminders, list):
            raise NetworkError("Malformed reminders response")
        self.reminders = list(reminders)
        return self.reminders

    # ─── Feedback ───

    def submit_feedback(self, text: str) -> bool:
        feedback = (text or "").strip()
        if not feedback:
            self._show_feedback_status(FEEDBACK_EMPTY, clear=False)
            return False

        try:
            self._request("POST", FEEDBACK_ENDPOINT, json={"feedback": feedback})
        except NetworkError as exc:
            logger.warning("Feedback not sent: %s", exc)
            self._show_feedback_status(FEEDBACK_FAILED)
            return False
        self._show_feedback_status(FEEDBACK_THANKS)
        return True

    def _show_feedback_status(self, message: str, clear: bool = True):
        if self._display is None:
            return
        self._display.set_feedback_status(message)
        if clear and self._scheduler is not None:
            self._scheduler.call_later(
                self._feedback_status_seconds,
                lambda: self._display.set_feedback_status(""),
            )

    # ─── Service info ───

    def history(self, limit: int = 10) -> List[Dict[str, Any]]:
        data = self._request("GET", HISTORY_ENDPOINT, params={"limit": limit})
        return data.get("history", [])

    def system_status(self) -> Dict[str, Any]:
        return self._request("GET", SYSTEM_ENDPOINT)

    def get_preferences(self) -> Dict[str, Any]:
        data = self._request("GET", PREFERENCES_ENDPOINT)
        return data.get("preferences", {})

    def set_preference(self, key: str, value: Any) -> Dict[str, Any]:
        data = self._request("POST", PREFERENCES_ENDPOINT, json={"key": key, "value": value})
        return data.get("preferences", {})
