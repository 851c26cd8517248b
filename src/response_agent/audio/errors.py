"""Error hierarchy for the audio capture and playback component.

Every error carries the underlying platform message so operators can tell a
denied microphone apart from a missing codec or a corrupt recording.
"""


class AudioError(Exception):
    """Base class for all audio component failures."""


class CaptureAccessDenied(AudioError):
    """The microphone could not be opened (permission refused or no device)."""


class CaptureUnsupported(AudioError):
    """No entry of the format preference list is supported by the encoder."""


class CaptureNotStarted(AudioError):
    """end_capture was called without an open capture session."""


class CaptureAlreadyActive(AudioError):
    """begin_capture was called while a capture session is still open."""


class CaptureFailed(AudioError):
    """The encoder reported a failure while flushing the recording."""


class Base64Error(AudioError, ValueError):
    """The audio payload is not valid base64 text."""


class DecodeError(AudioError):
    """The bytes are not a decodable audio container."""
