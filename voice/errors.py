"""Error taxonomy for the voice client."""

from config import ERROR_STATUS

NO_SPEECH = "no-speech"
AUDIO_CAPTURE = "audio-capture"
PERMISSION_DENIED = "permission-denied"
NETWORK = "network"
UNSUPPORTED = "unsupported"
OTHER = "other"

# Names the host platforms use for the same failure
_KIND_ALIASES = {
    "not-allowed": PERMISSION_DENIED,
    "service-not-allowed": PERMISSION_DENIED,
}


def normalize_error_kind(kind: str) -> str:
    kind = (kind or "").strip().lower()
    kind = _KIND_ALIASES.get(kind, kind)
    return kind if kind in ERROR_STATUS else OTHER


def status_for(kind: str) -> str:
    """User-visible status line for a recognition error kind."""
    return ERROR_STATUS[normalize_error_kind(kind)]


class AssistantError(Exception):
    """Base class for voice client errors."""


class AdapterError(AssistantError):
    """Speech adapter failed: unsupported, permission, no speech, capture."""

    def __init__(self, kind: str, message: str = ""):
        self.kind = normalize_error_kind(kind)
        super().__init__(message or status_for(self.kind))


class NetworkError(AssistantError):
    """A call to the assistant service failed or returned a bad status."""


class ParseError(AssistantError):
    """A command was recognised but its arguments could not be parsed."""


class DuplicateAliasError(ValueError):
    """The same website alias is mapped to two different URLs."""
