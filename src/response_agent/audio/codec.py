"""Base64 and container encode/decode helpers built on soundfile."""

import base64
import binascii
import io
import logging
from collections.abc import Iterable

import numpy as np
import soundfile as sf

from response_agent.audio.errors import Base64Error, DecodeError
from response_agent.audio.formats import AudioFormat
from response_agent.audio.runtime import DecodedAudio

logger = logging.getLogger(__name__)


def decode_base64(text: str) -> bytes:
    """Strictly decode base64 text.

    Characters outside the base64 alphabet are rejected rather than skipped,
    so malformed payloads fail here before any audio decoding is attempted.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise Base64Error(f"Invalid base64 audio payload: {exc}") from exc


def encode_base64(data: bytes) -> str:
    """Encode bytes as ASCII base64 text."""
    return base64.b64encode(data).decode("ascii")


def decode_audio(data: bytes) -> DecodedAudio:
    """Decode a container blob into float32 samples.

    The container is detected by libsndfile from the blob itself.

    Raises:
        DecodeError: If the bytes are empty or not a decodable container.
    """
    if not data:
        raise DecodeError("Audio decode failed: empty payload")

    try:
        samples, sample_rate = sf.read(
            io.BytesIO(data), dtype="float32", always_2d=True
        )
    except (sf.SoundFileError, TypeError, ValueError) as exc:
        raise DecodeError(f"Audio decode failed: {exc}") from exc

    return DecodedAudio(samples=samples, sample_rate=int(sample_rate))


def encode_audio(
    blocks: Iterable[np.ndarray],
    fmt: AudioFormat,
    sample_rate: int,
    channels: int,
) -> bytes:
    """Encode sample blocks, in order, into one container blob."""
    buffer = io.BytesIO()
    with sf.SoundFile(
        buffer,
        mode="w",
        samplerate=sample_rate,
        channels=channels,
        format=fmt.container,
        subtype=fmt.subtype,
    ) as out:
        for block in blocks:
            out.write(block)
    data = buffer.getvalue()
    logger.debug("Encoded %d bytes as %s", len(data), fmt.mime_type)
    return data
