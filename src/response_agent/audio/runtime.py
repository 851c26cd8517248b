"""Platform seam for the audio component.

AudioComponent never touches a device library directly. It talks to an
AudioRuntime, which hands out input devices, encoders and an output
(decoding) engine. The default implementation lives in
response_agent.audio.devices; tests plug in a fake runtime.

Encoders report progress by posting notifications through a thread-safe
``notify`` callable. The component turns those into ordered appends on the
event loop, so chunk order is exactly delivery order.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np

if TYPE_CHECKING:
    from response_agent.audio.formats import AudioFormat


@dataclass(frozen=True)
class CaptureConstraints:
    """Microphone settings requested when a capture session opens.

    The three DSP switches are hints for the platform; runtimes that cannot
    honour them record and ignore them.
    """

    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
    sample_rate: int = 48000
    channels: int = 1


@dataclass
class DecodedAudio:
    """Decoded float32 samples shaped (frames, channels)."""

    samples: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1]) if self.samples.ndim > 1 else 1

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0

    def channel(self, index: int) -> np.ndarray:
        """Return the sample sequence of one channel."""
        if self.samples.ndim == 1:
            return self.samples
        return self.samples[:, index]


# ---------------------------------------------------------------------------
# Encoder notifications
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChunkAvailable:
    """An encoded chunk, in capture order."""

    data: bytes


@dataclass(frozen=True)
class EncoderStopped:
    """The encoder flushed its final chunk and stopped."""


@dataclass(frozen=True)
class EncoderFailed:
    """The encoder could not finish the recording."""

    error: BaseException


EncoderEvent = ChunkAvailable | EncoderStopped | EncoderFailed
Notify = Callable[[EncoderEvent], None]


# ---------------------------------------------------------------------------
# Runtime protocols
# ---------------------------------------------------------------------------


class InputDevice(Protocol):
    """An open microphone handle."""

    constraints: CaptureConstraints

    def close(self) -> None:
        """Stop every underlying hardware stream. Safe to call twice."""


class Encoder(Protocol):
    """Turns device samples into an encoded container."""

    format: AudioFormat

    def start(self) -> None: ...

    def stop(self) -> None:
        """Request a stop; the final chunk and EncoderStopped follow via notify."""


class OutputEngine(Protocol):
    """The decoding engine: decodes blobs and renders them to the speaker."""

    def decode(self, data: bytes) -> DecodedAudio:
        """Decode a container blob. Raises DecodeError."""

    def play(self, audio: DecodedAudio) -> None:
        """Start one-shot playback without waiting for it to finish."""

    def close(self) -> None:
        """Stop all playback and release output resources."""


class AudioRuntime(Protocol):
    """Factory for the platform handles used by AudioComponent."""

    def is_format_supported(self, fmt: AudioFormat) -> bool: ...

    async def open_input(self, constraints: CaptureConstraints) -> InputDevice: ...

    def create_encoder(
        self,
        device: InputDevice,
        fmt: AudioFormat,
        notify: Notify,
    ) -> Encoder: ...

    def create_output(self) -> OutputEngine: ...
