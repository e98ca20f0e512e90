from __future__ import annotations

import pytest

from voice.errors import NetworkError
from voice.models import QueryResult


class FakeBrowser:
    def __init__(self) -> None:
        self.opened: list[str] = []

    def __call__(self, url: str) -> bool:
        self.opened.append(url)
        return True


class FakeScheduler:
    def __init__(self) -> None:
        self.calls: list = []

    def call_later(self, delay_s, callback):  # noqa: ANN001
        self.calls.append((delay_s, callback))

    def fire_all(self) -> None:
        calls, self.calls = self.calls, []
        for _delay, callback in calls:
            callback()


class FakeDisplay:
    def __init__(self) -> None:
        self.statuses: list[str] = []
        self.transcript = ""
        self.response = ""
        self.appended: list[str] = []
        self.feedback_statuses: list[str] = []

    @property
    def status(self) -> str:
        return self.statuses[-1] if self.statuses else ""

    def set_status(self, text: str) -> None:
        self.statuses.append(text)

    def set_transcript(self, text: str) -> None:
        self.transcript = text

    def set_response(self, text: str) -> None:
        self.response = text

    def append_response(self, text: str) -> None:
        self.appended.append(text)

    def set_feedback_status(self, text: str) -> None:
        self.feedback_statuses.append(text)


class FakeSynthesizer:
    def __init__(self) -> None:
        self.spoken: list[str] = []
        self.closed = False

    def speak(self, text: str) -> int:
        self.spoken.append(text)
        return len(self.spoken)

    def close(self) -> None:
        self.closed = True


class FakeRecognizer:
    def __init__(self, error=None) -> None:  # noqa: ANN001
        self.starts: list = []
        self.stops = 0
        self.active = False
        self.closed = False
        self.error = error

    def start(self, session_id: int, language: str = "en-US") -> None:
        if self.error is not None:
            raise self.error
        self.starts.append((session_id, language))

    def stop(self) -> None:
        self.stops += 1

    def close(self) -> None:
        self.closed = True


class FakeClient:
    def __init__(self) -> None:
        self.reminders: list[str] = []
        self.queries: list[str] = []
        self.answer = QueryResult(text="Paris is the capital of France.")
        self.fail_reminders = False
        self.preferences: dict = {}
        self.fail_preferences = False
        self.saved_preferences: list = []

    def query(self, text: str) -> QueryResult:
        self.queries.append(text)
        return self.answer

    def list_reminders(self) -> list[str]:
        if self.fail_reminders:
            raise NetworkError("down")
        return list(self.reminders)

    def add_reminder(self, text: str) -> list[str]:
        if self.fail_reminders:
            raise NetworkError("down")
        self.reminders.insert(0, text)
        return list(self.reminders)

    def get_preferences(self) -> dict:
        if self.fail_preferences:
            raise NetworkError("down")
        return dict(self.preferences)

    def set_preference(self, key, value) -> dict:  # noqa: ANN001
        if self.fail_preferences:
            raise NetworkError("down")
        self.saved_preferences.append((key, value))
        self.preferences[key] = value
        return dict(self.preferences)


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()
