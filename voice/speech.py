"""Speech I/O adapters -- recognition and synthesis behind the event bus.

Recognition:
    SpeechRecognizer  -- microphone + Google web recognizer (speech_recognition)
    KeyboardRecognizer -- reads typed lines instead (text mode, no audio)

Synthesis:
    Pyttsx3Synthesizer -- offline TTS through pyttsx3
    ConsoleSynthesizer -- logs the utterance and finishes immediately

Adapters never touch session state. They publish SpeechEvent objects on
the "speech" topic: STARTED, RESULT(text), ERROR(kind), ENDED for a
recognition session and SPEAK_STARTED, SPEAK_ENDED, SPEAK_ERROR for an
utterance. Every event carries the session or utterance id it belongs to.
"""

import itertools
import logging
import sys
import threading
from queue import Queue
from typing import Iterable, List, Optional

from core.event_bus import EventBus
from voice.errors import (
    AUDIO_CAPTURE, NETWORK, NO_SPEECH, OTHER, PERMISSION_DENIED, UNSUPPORTED,
    AdapterError,
)
from voice.models import SpeechEvent, SpeechEventKind

logger = logging.getLogger(__name__)

TOPIC = "speech"


def select_voice(voices: Iterable, preferred: List[str]):
    """Pick the first voice whose name contains a preferred name.

    Falls back to the first available voice, or None when there are none.
    """
    voices = list(voices)
    for voice in voices:
        name = getattr(voice, "name", "") or ""
        if any(p in name for p in preferred):
            return voice
    return voices[0] if voices else None


class _Recognizer:
    """Shared session bookkeeping for recognizer adapters.

    Each session gets its own stop flag. A stopped session may still be
    blocked in capture when the next one starts; it finishes quietly and
    its events carry the old session id.
    """

    def __init__(self, bus: EventBus):
        self._bus = bus
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, session_id: int, language: str = "en-US"):
        """Open one recognition session.

        Raises AdapterError if a session that was not stopped is still open.
        """
        if self.active and not self._stop.is_set():
            raise AdapterError(OTHER, "A recognition session is already open.")
        stop = threading.Event()
        self._stop = stop
        self._thread = threading.Thread(
            target=self._session, args=(session_id, language, stop),
            daemon=True, name=f"recognizer-{session_id}",
        )
        self._thread.start()

    def stop(self):
        """Ask the open session to finish without producing a result."""
        self._stop.set()

    def close(self):
        self.stop()

    def _session(self, session_id: int, language: str, stop: threading.Event):
        self._emit(SpeechEventKind.STARTED, session_id)
        try:
            text = self._recognize(language, stop)
            if stop.is_set():
                logger.debug("Recognition %d stopped, dropping result", session_id)
            elif text:
                self._emit(SpeechEventKind.RESULT, session_id, text=text.strip())
            else:
                self._emit(SpeechEventKind.ERROR, session_id, error=NO_SPEECH)
        except AdapterError as exc:
            if not stop.is_set():
                self._emit(SpeechEventKind.ERROR, session_id, error=exc.kind)
        finally:
            self._emit(SpeechEventKind.ENDED, session_id)

    def _recognize(self, language: str, stop: threading.Event) -> str:
        raise NotImplementedError

    def _emit(self, kind: SpeechEventKind, ref: int, text: str = "", error: str = ""):
        self._bus.publish(TOPIC, SpeechEvent(kind=kind, ref=ref, text=text, error=error))


class SpeechRecognizer(_Recognizer):
    """Capture one utterance from the microphone and transcribe it.

    Only the best alternative is used; there are no interim results.
    """

    def __init__(self, bus: EventBus, listen_timeout: float = 6.0,
                 phrase_time_limit: float = 15.0, device_index: Optional[int] = None):
        super().__init__(bus)
        try:
            import speech_recognition as sr
        except ImportError as exc:
            raise AdapterError(UNSUPPORTED, f"speech_recognition is not installed: {exc}")
        self._sr = sr
        self._recognizer = sr.Recognizer()
        self._listen_timeout = listen_timeout
        self._phrase_time_limit = phrase_time_limit
        self._device_index = device_index

    def _recognize(self, language: str, stop: threading.Event) -> str:
        sr = self._sr
        try:
            with sr.Microphone(device_index=self._device_index) as source:
                audio = self._recognizer.listen(
                    source,
                    timeout=self._listen_timeout,
                    phrase_time_limit=self._phrase_time_limit,
                )
            if stop.is_set():
                return ""
            return self._recognizer.recognize_google(audio, language=language)
        except sr.WaitTimeoutError:
            raise AdapterError(NO_SPEECH)
        except sr.UnknownValueError:
            raise AdapterError(NO_SPEECH)
        except sr.RequestError as exc:
            logger.warning("Recognition service error: %s", exc)
            raise AdapterError(NETWORK, str(exc))
        except PermissionError as exc:
            raise AdapterError(PERMISSION_DENIED, str(exc))
        except (OSError, AttributeError) as exc:
            # AttributeError: PyAudio missing, Microphone() cannot open a stream
            logger.warning("Microphone unavailable: %s", exc)
            raise AdapterError(AUDIO_CAPTURE, str(exc))


class KeyboardRecognizer(_Recognizer):
    """Read one typed line per session instead of listening."""

    def __init__(self, bus: EventBus, stream=None, prompt: str = "> "):
        super().__init__(bus)
        self._stream = stream or sys.stdin
        self._prompt = prompt
        self.eof = False

    def _recognize(self, language: str, stop: threading.Event) -> str:
        if self._prompt:
            print(self._prompt, end="", flush=True)
        line = self._stream.readline()
        if not line:
            self.eof = True
            raise AdapterError(AUDIO_CAPTURE, "Input closed")
        return line.strip()


class _Synthesizer:
    """Serialise utterances on one worker thread and report progress."""

    def __init__(self, bus: EventBus):
        self._bus = bus
        self._ids = itertools.count(1)
        self._queue: Queue = Queue()
        self._thread = threading.Thread(target=self._worker, daemon=True, name="synthesizer")
        self._thread.start()

    def speak(self, text: str) -> int:
        """Queue *text* for synthesis. Returns the utterance id."""
        utterance_id = next(self._ids)
        self._queue.put((utterance_id, text))
        return utterance_id

    def close(self):
        self._queue.put(None)

    def _worker(self):
        while True:
            item = self._queue.get()
            if item is None:
                break
            utterance_id, text = item
            self._emit(SpeechEventKind.SPEAK_STARTED, utterance_id)
            try:
                self._say(text)
            except Exception as exc:
                logger.error("Speech synthesis error: %s", exc)
                self._emit(SpeechEventKind.SPEAK_ERROR, utterance_id, error=str(exc))
                continue
            self._emit(SpeechEventKind.SPEAK_ENDED, utterance_id)

    def _say(self, text: str):
        raise NotImplementedError

    def _emit(self, kind: SpeechEventKind, ref: int, error: str = ""):
        self._bus.publish(TOPIC, SpeechEvent(kind=kind, ref=ref, error=error))


class Pyttsx3Synthesizer(_Synthesizer):
    """Offline text-to-speech through pyttsx3.

    The engine is created lazily on the worker thread, since pyttsx3
    drivers must be used from the thread that created them.
    """

    def __init__(self, bus: EventBus, rate: int = 175,
                 preferred_voices: Optional[List[str]] = None):
        try:
            import pyttsx3
        except ImportError as exc:
            raise AdapterError(UNSUPPORTED, f"pyttsx3 is not installed: {exc}")
        self._pyttsx3 = pyttsx3
        self._rate = rate
        self._preferred = preferred_voices or []
        self._engine = None
        super().__init__(bus)

    def _get_engine(self):
        if self._engine is None:
            engine = self._pyttsx3.init()
            engine.setProperty("rate", self._rate)
            voice = select_voice(engine.getProperty("voices") or [], self._preferred)
            if voice is not None:
                engine.setProperty("voice", voice.id)
                logger.info("Using voice: %s", getattr(voice, "name", voice.id))
            self._engine = engine
        return self._engine

    def _say(self, text: str):
        engine = self._get_engine()
        engine.say(text)
        engine.runAndWait()


class ConsoleSynthesizer(_Synthesizer):
    """No audio: the reply is already on the display, so just log it."""

    def _say(self, text: str):
        logger.debug("Speak: %s", text)
