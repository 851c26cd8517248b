"""Encoding formats and the fixed preference list used for capture."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from response_agent.audio.errors import CaptureUnsupported

if TYPE_CHECKING:
    from response_agent.audio.runtime import AudioRuntime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioFormat:
    """A container/codec pair the encoder can be asked to produce.

    ``container`` and ``subtype`` use libsndfile's names (as accepted by
    ``soundfile``); ``mime_type`` is what callers send along with the blob.
    """

    mime_type: str
    container: str
    subtype: str
    extension: str


OGG_OPUS = AudioFormat("audio/ogg;codecs=opus", "OGG", "OPUS", "ogg")
OGG_VORBIS = AudioFormat("audio/ogg;codecs=vorbis", "OGG", "VORBIS", "ogg")
FLAC_PCM16 = AudioFormat("audio/flac", "FLAC", "PCM_16", "flac")
WAV_PCM16 = AudioFormat("audio/wav", "WAV", "PCM_16", "wav")

# Order matters: the first supported entry wins.
FORMAT_PREFERENCES: tuple[AudioFormat, ...] = (
    OGG_OPUS,
    OGG_VORBIS,
    FLAC_PCM16,
    WAV_PCM16,
)


def negotiate_format(
    runtime: AudioRuntime,
    preferences: Iterable[AudioFormat] = FORMAT_PREFERENCES,
) -> AudioFormat:
    """Return the first preferred format the runtime's encoder supports.

    Raises:
        CaptureUnsupported: If no preferred format is supported.
    """
    tried: list[str] = []
    for fmt in preferences:
        if runtime.is_format_supported(fmt):
            logger.debug("Negotiated capture format %s", fmt.mime_type)
            return fmt
        tried.append(fmt.mime_type)

    msg = f"No supported recording format (tried: {', '.join(tried) or 'none'})"
    raise CaptureUnsupported(msg)


def format_for_filename(filename: str) -> AudioFormat | None:
    """Look up a known format by file extension, or None."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    for fmt in FORMAT_PREFERENCES:
        if fmt.extension == extension:
            return fmt
    return None
