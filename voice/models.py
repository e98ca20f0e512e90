"""Core data models for the voice client."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class State(Enum):
    IDLE = auto()        # Waiting for the microphone button
    LISTENING = auto()   # Recognition session open
    PROCESSING = auto()  # Transcript being dispatched
    SPEAKING = auto()    # Reply being synthesized
    ERROR = auto()       # Adapter failure, will reset to IDLE


class SpeechEventKind(str, Enum):
    # Recognition
    STARTED = "started"
    RESULT = "result"
    ERROR = "error"
    ENDED = "ended"
    # Synthesis
    SPEAK_STARTED = "speak_started"
    SPEAK_ENDED = "speak_ended"
    SPEAK_ERROR = "speak_error"


@dataclass(frozen=True)
class SpeechEvent:
    kind: SpeechEventKind
    ref: int = 0  # recognition session id or utterance id
    text: str = ""
    error: str = ""


@dataclass
class Reply:
    """What one dispatcher branch produced: one utterance, one display update."""
    speech: str
    display: str
    rule: str
    opened_url: Optional[str] = None


@dataclass
class QueryResult:
    text: str
    fallback: bool = False
    search_url: Optional[str] = None
