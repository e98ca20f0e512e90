"""Voice assistant session -- owns the microphone, the reply and the state.

Usage:
    assistant = VoiceAssistant(bus, recognizer, synthesizer, client, display,
                               scheduler, browser=webbrowser.open_new_tab)
    assistant.start()              # Speak the welcome message
    assistant.toggle_microphone()  # Mic button
    bus.drain(timeout=0.1)         # Main loop delivers SpeechEvents
    assistant.close()

State machine:
    IDLE → (mic on) → LISTENING → (transcript) → PROCESSING →
    SPEAKING → (utterance done) → IDLE

    LISTENING → (mic off / session ended) → IDLE
    LISTENING/PROCESSING → (adapter failure) → ERROR → IDLE

All transitions happen on the thread that drains the bus. Adapters only
publish SpeechEvents; events for an old session or utterance are dropped.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set

import config
from core.event_bus import EventBus
from voice.dispatcher import CommandDispatcher, welcome_message
from voice.errors import AdapterError, NetworkError, normalize_error_kind, status_for
from voice.models import SpeechEvent, SpeechEventKind, State
from voice.speech import TOPIC

logger = logging.getLogger(__name__)

_FALSE_WORDS = {"false", "0", "no", "off", ""}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_WORDS
    return bool(value)


class VoiceAssistant:
    """Session controller for the voice client."""

    def __init__(self, bus: EventBus, recognizer, synthesizer, client, display,
                 scheduler=None, browser: Optional[Callable[[str], Any]] = None,
                 dispatcher: Optional[CommandDispatcher] = None,
                 preferences: Optional[Dict[str, Any]] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 on_state_change=None):
        self._bus = bus
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.client = client
        self.display = display
        self.on_state_change = on_state_change
        self._clock = clock

        self.preferences: Dict[str, Any] = {
            "auto_speak": True,
            "language": "en-US",
        }
        if preferences:
            self.preferences.update(preferences)

        self.dispatcher = dispatcher or CommandDispatcher(
            client, browser, self, display, scheduler, clock=clock,
        )

        self._state = State.IDLE
        self._session_id = 0
        self._utterance_id: Optional[int] = None
        self._pending_utterances: Set[int] = set()
        self.last_error: Optional[str] = None

        bus.subscribe(TOPIC, self.handle_event)

    @property
    def state(self):
        return self._state

    @state.setter
    def state(self, new_state):
        old = self._state
        self._state = new_state
        logger.info("Voice: %s → %s", old.name, new_state.name)
        if self.on_state_change:
            try:
                self.on_state_change(old, new_state)
            except Exception as exc:
                logger.error("State change callback failed: %s", exc)

    # ─── Lifecycle ───

    def start(self):
        """Greet the user and show the ready status."""
        message = welcome_message(self._clock())
        self.display.set_response(message)
        self.display.set_status(config.READY_STATUS)
        try:
            self.speak(message)
        except AdapterError as exc:
            logger.warning("Welcome message not spoken: %s", exc)

    def close(self):
        self._bus.unsubscribe(TOPIC, self.handle_event)
        self.recognizer.close()
        self.synthesizer.close()
        logger.info("Voice assistant stopped")

    # ─── Microphone ───

    def toggle_microphone(self) -> bool:
        """Mic button. Returns True if a recognition session was started."""
        if self._state is State.IDLE:
            if self._pending_utterances:
                logger.info("Still speaking, microphone not started")
                return False
            self._session_id += 1
            try:
                self.recognizer.start(self._session_id, self.preferences["language"])
            except AdapterError as exc:
                logger.warning("Recognition not started: %s", exc)
                self._fail(exc.kind)
                return False
            self.state = State.LISTENING
            self.display.set_status(config.LISTENING_STATUS)
            return True

        if self._state is State.LISTENING:
            self.recognizer.stop()
            self.state = State.IDLE
            self.display.set_status(config.READY_STATUS)
            return False

        logger.info("Microphone toggle ignored while %s", self._state.name)
        return False

    # ─── Events ───

    def handle_event(self, event: SpeechEvent):
        kind = event.kind

        if kind in (SpeechEventKind.STARTED, SpeechEventKind.RESULT,
                    SpeechEventKind.ERROR, SpeechEventKind.ENDED):
            if event.ref != self._session_id or self._state is not State.LISTENING:
                logger.debug("Dropped %s for session %d in %s",
                             kind.value, event.ref, self._state.name)
                return
            if kind is SpeechEventKind.RESULT:
                self._process(event.text)
            elif kind is SpeechEventKind.ERROR:
                logger.warning("Recognition error: %s", event.error)
                self._fail(event.error)
            elif kind is SpeechEventKind.ENDED:
                self.state = State.IDLE
                self.display.set_status(config.READY_STATUS)
            return

        if kind is SpeechEventKind.SPEAK_STARTED:
            logger.debug("Utterance %d started", event.ref)
            return

        # SPEAK_ENDED / SPEAK_ERROR
        self._pending_utterances.discard(event.ref)
        if kind is SpeechEventKind.SPEAK_ERROR:
            logger.warning("Utterance %d failed: %s", event.ref, event.error)
        if self._state is State.SPEAKING and event.ref == self._utterance_id:
            self._utterance_id = None
            self.state = State.IDLE
            self.display.set_status(config.READY_STATUS)

    def _process(self, transcript: str):
        self.state = State.PROCESSING
        self.display.set_status(config.PROCESSING_STATUS)
        self.display.set_transcript(transcript)
        self._utterance_id = None
        try:
            reply = self.dispatcher.dispatch(transcript)
            self.display.set_response(reply.display)
            self._utterance_id = self.speak(reply.speech)
        except AdapterError as exc:
            logger.warning("Reply not spoken: %s", exc)
            self._fail(exc.kind)
        finally:
            if self._state is State.PROCESSING:
                self.state = State.SPEAKING if self._utterance_id is not None else State.IDLE
                self.display.set_status(config.READY_STATUS)

    def _fail(self, kind: str):
        kind = normalize_error_kind(kind)
        self.last_error = kind
        self.state = State.ERROR
        self.display.set_status(status_for(kind))
        self.state = State.IDLE

    # ─── Speech output ───

    def speak(self, text: str) -> Optional[int]:
        """Queue *text* for synthesis unless auto-speak is off.

        Returns the utterance id, or None when nothing will be spoken.
        """
        if not text or not _as_bool(self.preferences.get("auto_speak", True)):
            return None
        utterance_id = self.synthesizer.speak(text)
        self._pending_utterances.add(utterance_id)
        return utterance_id

    # ─── Preferences ───

    def sync_preferences(self):
        """Pull stored preferences from the assistant service, if reachable."""
        try:
            stored = self.client.get_preferences()
        except NetworkError as exc:
            logger.warning("Using local preferences: %s", exc)
            return
        for key in ("auto_speak", "language"):
            if stored.get(key) not in (None, ""):
                self.preferences[key] = stored[key]
        self.preferences["auto_speak"] = _as_bool(self.preferences["auto_speak"])

    def set_preference(self, key: str, value: Any):
        if key == "auto_speak":
            value = _as_bool(value)
        self.preferences[key] = value
        try:
            self.client.set_preference(key, value)
        except NetworkError as exc:
            logger.warning("Preference %s kept locally only: %s", key, exc)

    def get_status(self) -> Dict[str, Any]:
        """Return dict of current status for UI display."""
        return {
            "state": self._state.name.lower(),
            "listening": self._state is State.LISTENING,
            "speaking": bool(self._pending_utterances),
            "last_error": self.last_error,
        }
