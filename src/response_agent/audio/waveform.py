"""Block-wise RMS amplitude envelope for waveform visualisation.

The envelope has one value per block of ``floor(n / columns)`` samples. A
renderer typically draws each value as a vertical line of height
``rms * WAVEFORM_GAIN / 2`` anchored to the bottom of the surface.
"""

import logging
from collections.abc import Callable

import numpy as np

from response_agent.audio.codec import decode_base64
from response_agent.audio.errors import AudioError
from response_agent.audio.runtime import DecodedAudio

logger = logging.getLogger(__name__)

WAVEFORM_GAIN = 200.0


def rms_envelope(samples: np.ndarray, columns: int) -> list[float]:
    """Compute the RMS of each complete block of samples.

    The trailing partial block is dropped. When there are no more samples
    than columns the block size would be zero, so the envelope is empty.
    """
    data = np.asarray(samples, dtype=np.float64).ravel()
    count = data.size
    if columns <= 0 or count == 0 or columns >= count:
        return []

    block_size = count // columns
    block_count = count // block_size
    blocks = data[: block_count * block_size].reshape(block_count, block_size)
    return np.sqrt(np.mean(np.square(blocks), axis=1)).tolist()


def envelope_from_base64(
    audio_base64: str,
    columns: int,
    decode: Callable[[bytes], DecodedAudio],
) -> list[float]:
    """Decode a base64 audio blob and return the envelope of its first channel.

    The waveform is a non-essential enhancement: any decode failure is logged
    and an empty envelope is returned instead of raising.
    """
    try:
        decoded = decode(decode_base64(audio_base64))
    except AudioError as exc:
        logger.warning("Waveform analysis failed: %s", exc)
        return []

    return rms_envelope(decoded.channel(0), columns)
