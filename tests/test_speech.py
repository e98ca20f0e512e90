from __future__ import annotations

import io
import threading
from types import SimpleNamespace

import pytest

from core.event_bus import EventBus
from voice.errors import AdapterError, normalize_error_kind
from voice.models import SpeechEventKind
from voice.speech import TOPIC, ConsoleSynthesizer, KeyboardRecognizer, _Synthesizer, select_voice


def _collect(bus: EventBus, count: int, timeout: float = 2.0) -> list:
    events = []
    bus.subscribe(TOPIC, events.append)
    while len(events) < count:
        if bus.drain(timeout=timeout) == 0:
            break
    return events


def test_select_voice_prefers_named_voice() -> None:
    voices = [SimpleNamespace(id="1", name="Alex"), SimpleNamespace(id="2", name="Google US English")]
    assert select_voice(voices, ["Google US English"]).id == "2"
    assert select_voice(voices, ["Missing"]).id == "1"
    assert select_voice([], ["Missing"]) is None


def test_keyboard_recognizer_emits_session_events() -> None:
    bus = EventBus()
    recognizer = KeyboardRecognizer(bus, stream=io.StringIO("  what time is it \n"), prompt="")

    recognizer.start(7)
    events = _collect(bus, 3)

    assert [e.kind for e in events] == [
        SpeechEventKind.STARTED, SpeechEventKind.RESULT, SpeechEventKind.ENDED,
    ]
    assert all(e.ref == 7 for e in events)
    assert events[1].text == "what time is it"


def test_blank_line_is_no_speech() -> None:
    bus = EventBus()
    recognizer = KeyboardRecognizer(bus, stream=io.StringIO("\n"), prompt="")

    recognizer.start(1)
    events = _collect(bus, 3)

    assert events[1].kind is SpeechEventKind.ERROR
    assert events[1].error == "no-speech"


def test_closed_input_is_audio_capture_error() -> None:
    bus = EventBus()
    recognizer = KeyboardRecognizer(bus, stream=io.StringIO(""), prompt="")

    recognizer.start(1)
    events = _collect(bus, 3)

    assert events[1].error == "audio-capture"
    assert events[2].kind is SpeechEventKind.ENDED
    assert recognizer.eof is True


class _BlockingStream:
    def __init__(self) -> None:
        self.release = threading.Event()

    def readline(self) -> str:
        self.release.wait(2.0)
        return "late words\n"


def test_only_one_session_at_a_time() -> None:
    bus = EventBus()
    stream = _BlockingStream()
    recognizer = KeyboardRecognizer(bus, stream=stream, prompt="")

    recognizer.start(1)
    with pytest.raises(AdapterError):
        recognizer.start(2)
    stream.release.set()


def test_stopped_session_drops_result() -> None:
    bus = EventBus()
    stream = _BlockingStream()
    recognizer = KeyboardRecognizer(bus, stream=stream, prompt="")

    recognizer.start(1)
    recognizer.stop()
    stream.release.set()
    events = _collect(bus, 2)

    assert [e.kind for e in events] == [SpeechEventKind.STARTED, SpeechEventKind.ENDED]


def test_console_synthesizer_reports_utterance() -> None:
    bus = EventBus()
    synth = ConsoleSynthesizer(bus)

    first = synth.speak("hello")
    second = synth.speak("again")
    events = _collect(bus, 4)
    synth.close()

    assert second == first + 1
    assert [(e.kind, e.ref) for e in events] == [
        (SpeechEventKind.SPEAK_STARTED, first),
        (SpeechEventKind.SPEAK_ENDED, first),
        (SpeechEventKind.SPEAK_STARTED, second),
        (SpeechEventKind.SPEAK_ENDED, second),
    ]


class _BrokenSynthesizer(_Synthesizer):
    def _say(self, text: str) -> None:
        raise RuntimeError("driver crashed")


def test_synthesis_failure_is_reported() -> None:
    bus = EventBus()
    synth = _BrokenSynthesizer(bus)

    ref = synth.speak("hello")
    events = _collect(bus, 2)
    synth.close()

    assert events[-1].kind is SpeechEventKind.SPEAK_ERROR
    assert events[-1].ref == ref
    assert "driver crashed" in events[-1].error


def test_error_kind_normalization() -> None:
    assert normalize_error_kind("not-allowed") == "permission-denied"
    assert normalize_error_kind("NETWORK") == "network"
    assert normalize_error_kind("aborted") == "other"
    assert AdapterError("service-not-allowed").kind == "permission-denied"


def test_new_session_can_start_while_stopped_one_closes() -> None:
    bus = EventBus()
    stream = _BlockingStream()
    recognizer = KeyboardRecognizer(bus, stream=stream, prompt="")

    recognizer.start(1)
    recognizer.stop()
    recognizer.start(2)
    recognizer.stop()
    stream.release.set()
    events = _collect(bus, 4)

    assert sorted((e.ref, e.kind.value) for e in events) == [
        (1, "ended"), (1, "started"), (2, "ended"), (2, "started"),
    ]
