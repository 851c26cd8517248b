"""Tests for the hand-built WAV container."""

import io
import struct

import soundfile as sf

from response_agent.audio.wav import (
    WAV_HEADER_SIZE,
    build_wav_header,
    pcm_to_wav,
    silent_wav,
)


def test_silent_wav_lengths() -> None:
    """2 s of 16 kHz mono 16-bit audio is 64000 payload bytes."""
    wav = silent_wav(2000, sample_rate=16000)

    assert len(wav) == WAV_HEADER_SIZE + 64000
    (riff_length,) = struct.unpack_from("<I", wav, 4)
    (data_length,) = struct.unpack_from("<I", wav, 40)
    assert riff_length == 64036
    assert data_length == 64000
    assert wav[WAV_HEADER_SIZE:] == bytes(64000)


def test_header_fields() -> None:
    header = build_wav_header(
        data_length=1000, sample_rate=44100, channels=2, bits_per_sample=16
    )

    assert len(header) == WAV_HEADER_SIZE
    assert header[0:4] == b"RIFF"
    assert header[8:12] == b"WAVE"
    assert header[12:16] == b"fmt "
    assert header[36:40] == b"data"

    fmt_size, audio_format, channels, rate, byte_rate, align, bits = (
        struct.unpack_from("<IHHIIHH", header, 16)
    )
    assert fmt_size == 16
    assert audio_format == 1
    assert channels == 2
    assert rate == 44100
    assert byte_rate == 44100 * 2 * 2
    assert align == 4
    assert bits == 16


def test_pcm_to_wav_is_readable_by_soundfile() -> None:
    pcm = struct.pack("<4h", 0, 16384, -16384, 32767)

    samples, rate = sf.read(io.BytesIO(pcm_to_wav(pcm, 24000)), dtype="int16")

    assert rate == 24000
    assert samples.tolist() == [0, 16384, -16384, 32767]


def test_zero_duration_is_header_only() -> None:
    wav = silent_wav(0)

    assert len(wav) == WAV_HEADER_SIZE
    assert struct.unpack_from("<I", wav, 4) == (36,)
