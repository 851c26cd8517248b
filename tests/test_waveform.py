"""Tests for the RMS envelope used to draw waveforms."""

import math

import numpy as np
import pytest

from response_agent.audio.codec import decode_audio, encode_base64
from response_agent.audio.waveform import (
    WAVEFORM_GAIN,
    envelope_from_base64,
    rms_envelope,
)
from response_agent.audio.wav import pcm_to_wav, silent_wav


def test_one_value_per_column() -> None:
    samples = np.random.default_rng(0).uniform(-1, 1, 1000).astype(np.float32)

    envelope = rms_envelope(samples, 100)

    assert len(envelope) == 100
    assert all(0.0 <= value <= 1.0 for value in envelope)


def test_silence_is_all_zero() -> None:
    assert rms_envelope(np.zeros(1000, dtype=np.float32), 100) == [0.0] * 100


def test_fewer_samples_than_columns_is_empty() -> None:
    assert rms_envelope(np.ones(5, dtype=np.float32), 100) == []


def test_as_many_samples_as_columns_is_empty() -> None:
    assert rms_envelope(np.ones(100, dtype=np.float32), 100) == []


@pytest.mark.parametrize("columns", [0, -3])
def test_non_positive_columns_is_empty(columns: int) -> None:
    assert rms_envelope(np.ones(100, dtype=np.float32), columns) == []


def test_known_block_values() -> None:
    """Constant blocks have an RMS equal to their magnitude."""
    samples = np.array([0.5] * 4 + [-0.25] * 4 + [0.0] * 4, dtype=np.float32)

    assert rms_envelope(samples, 3) == pytest.approx([0.5, 0.25, 0.0])


def test_alternating_block_rms() -> None:
    samples = np.array([1.0, -1.0, 1.0, -1.0, 0.6, 0.8], dtype=np.float32)

    envelope = rms_envelope(samples, 3)

    assert envelope == pytest.approx([1.0, 1.0, math.sqrt((0.36 + 0.64) / 2)])


def test_trailing_partial_block_is_dropped() -> None:
    """10 samples over 3 columns -> blocks of 3, the 10th sample is ignored."""
    samples = np.array([0.1] * 9 + [1.0], dtype=np.float32)

    envelope = rms_envelope(samples, 3)

    assert envelope == pytest.approx([0.1, 0.1, 0.1])


def test_more_blocks_than_columns_when_division_is_uneven() -> None:
    """floor(n / columns) sized blocks can yield more values than columns."""
    samples = np.ones(250, dtype=np.float32)

    assert len(rms_envelope(samples, 100)) == 125


def test_envelope_from_base64_uses_first_channel() -> None:
    left = np.full(800, 8192, dtype="<i2")
    right = np.zeros(800, dtype="<i2")
    stereo = np.column_stack([left, right]).tobytes()
    clip = encode_base64(pcm_to_wav(stereo, 8000, channels=2))

    envelope = envelope_from_base64(clip, 8, decode=decode_audio)

    assert envelope == pytest.approx([0.25] * 8, rel=1e-3)


def test_envelope_from_base64_of_silent_wav() -> None:
    clip = encode_base64(silent_wav(2000))

    envelope = envelope_from_base64(clip, 600, decode=decode_audio)

    # 32000 samples in blocks of 53 -> 603 values
    assert len(envelope) == 32000 // (32000 // 600)
    assert max(envelope) == 0.0


def test_envelope_from_base64_swallows_decode_errors() -> None:
    assert envelope_from_base64("not base64!", 10, decode=decode_audio) == []
    junk = encode_base64(b"RIFFjunk")
    assert envelope_from_base64(junk, 10, decode=decode_audio) == []


def test_full_scale_reaches_drawing_height() -> None:
    """A full-scale square wave maps to a line of WAVEFORM_GAIN / 2 pixels."""
    envelope = rms_envelope(np.tile([1.0, -1.0], 50).astype(np.float32), 10)

    assert envelope[0] * WAVEFORM_GAIN / 2 == pytest.approx(100.0)
