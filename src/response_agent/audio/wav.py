"""Canonical 44-byte PCM WAV container.

Layout (all integers little-endian)::

    0   "RIFF"
    4   file length - 8
    8   "WAVE"
    12  "fmt "
    16  16 (PCM descriptor size)
    20  1 (PCM format code)
    22  channels
    24  sample rate
    28  byte rate = sample_rate * channels * bits_per_sample / 8
    32  block align = channels * bits_per_sample / 8
    34  bits per sample
    36  "data"
    40  payload length
    44  samples
"""

import struct

WAV_HEADER_SIZE = 44

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def build_wav_header(
    data_length: int,
    sample_rate: int,
    channels: int,
    bits_per_sample: int,
) -> bytes:
    """Return the canonical PCM WAV header for a payload of data_length bytes."""
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    return _HEADER.pack(
        b"RIFF",
        data_length + WAV_HEADER_SIZE - 8,
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_length,
    )


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    """Wrap raw little-endian PCM samples in a WAV container."""
    header = build_wav_header(len(pcm), sample_rate, channels, bits_per_sample)
    return header + pcm


def silent_wav(
    duration_ms: int,
    sample_rate: int = 16000,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    """Build a zero-filled WAV clip of the given duration."""
    frames = sample_rate * duration_ms // 1000
    data_length = frames * channels * bits_per_sample // 8
    return pcm_to_wav(bytes(data_length), sample_rate, channels, bits_per_sample)
