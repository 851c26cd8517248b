"""Default audio runtime: PortAudio via sounddevice, codecs via soundfile.

Imported lazily by AudioComponent because ``import sounddevice`` fails on
hosts without the PortAudio shared library (CI runners, slim containers).

Threading: sounddevice invokes stream callbacks on PortAudio's own thread.
Those callbacks only copy samples; anything that must reach the event loop
goes through ``loop.call_soon_threadsafe`` inside the ``notify`` callable.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace

import numpy as np
import sounddevice as sd
import soundfile as sf

from response_agent.audio.codec import decode_audio, encode_audio
from response_agent.audio.errors import CaptureAccessDenied
from response_agent.audio.formats import AudioFormat
from response_agent.audio.runtime import (
    CaptureConstraints,
    ChunkAvailable,
    DecodedAudio,
    EncoderFailed,
    EncoderStopped,
    Notify,
)

logger = logging.getLogger(__name__)

DeviceSpec = int | str | None


class SoundDeviceInput:
    """An opened (not yet started) PortAudio input stream.

    Sample blocks are fanned out to registered listeners on the PortAudio
    thread. The encoder registers itself before starting the stream.
    """

    def __init__(
        self,
        constraints: CaptureConstraints,
        device: DeviceSpec = None,
        blocksize: int = 0,
    ) -> None:
        self.constraints = constraints
        self._listeners: list = []
        self._lock = threading.Lock()
        self._closed = False
        self._stream = sd.InputStream(
            samplerate=constraints.sample_rate,
            channels=constraints.channels,
            dtype="float32",
            device=device,
            blocksize=blocksize,
            callback=self._callback,
        )

    def _callback(self, indata: np.ndarray, frames: int, time, status) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        block = indata.copy()
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(block)

    def add_listener(self, listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def start(self) -> None:
        self._stream.start()

    def stop(self) -> None:
        if not self._stream.stopped:
            self._stream.stop()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.stop()
        finally:
            self._stream.close()
        logger.debug("Input stream closed")


class SoundFileEncoder:
    """Collects device blocks and encodes them with libsndfile on stop.

    Like a browser MediaRecorder started without a timeslice, the encoded
    container is delivered as a single final chunk when the encoder stops.
    """

    def __init__(self, device: SoundDeviceInput, fmt: AudioFormat, notify: Notify):
        self.format = fmt
        self._device = device
        self._notify = notify
        self._blocks: list[np.ndarray] = []
        self._lock = threading.Lock()
        self._running = False

    def _on_block(self, block: np.ndarray) -> None:
        with self._lock:
            if self._running:
                self._blocks.append(block)

    def start(self) -> None:
        self._running = True
        self._device.add_listener(self._on_block)
        self._device.start()

    def stop(self) -> None:
        try:
            self._device.stop()
            with self._lock:
                self._running = False
                blocks, self._blocks = self._blocks, []
            self._device.remove_listener(self._on_block)

            constraints = self._device.constraints
            data = encode_audio(
                blocks,
                self.format,
                sample_rate=constraints.sample_rate,
                channels=constraints.channels,
            )
        except Exception as exc:
            logger.exception("Encoder failed while flushing")
            self._notify(EncoderFailed(exc))
            return

        self._notify(ChunkAvailable(data))
        self._notify(EncoderStopped())


class _OneShotSource:
    """Feeds one decoded buffer to an output stream, then stops it."""

    def __init__(self, audio: DecodedAudio, on_finished) -> None:
        self._samples = audio.samples
        self._position = 0
        self._on_finished = on_finished
        self.stream = sd.OutputStream(
            samplerate=audio.sample_rate,
            channels=audio.channels,
            dtype="float32",
            callback=self._callback,
            finished_callback=self._finished,
        )
        self.closed = False

    def _callback(self, outdata: np.ndarray, frames: int, time, status) -> None:
        chunk = self._samples[self._position : self._position + frames]
        filled = len(chunk)
        outdata[:filled] = chunk
        outdata[filled:] = 0
        self._position += filled
        if filled < frames:
            raise sd.CallbackStop

    def _finished(self) -> None:
        self._on_finished(self)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.stream.close()


class SoundDeviceOutput:
    """Decoding engine that plays each buffer on its own output stream."""

    def __init__(self) -> None:
        self._sources: set[_OneShotSource] = set()
        # Streams that ran out; PortAudio forbids closing them from their own callback
        self._finished: list[_OneShotSource] = []
        self._lock = threading.Lock()

    def decode(self, data: bytes) -> DecodedAudio:
        return decode_audio(data)

    def play(self, audio: DecodedAudio) -> None:
        self._close_finished()
        source = _OneShotSource(audio, self._release)
        with self._lock:
            self._sources.add(source)
        source.stream.start()
        logger.debug("Playing %.2fs on a new output stream", audio.duration)

    def _release(self, source: _OneShotSource) -> None:
        with self._lock:
            if source in self._sources:
                self._sources.discard(source)
                self._finished.append(source)

    def _close_finished(self) -> None:
        with self._lock:
            finished, self._finished = self._finished, []
        for source in finished:
            source.close()

    def close(self) -> None:
        with self._lock:
            sources, self._sources = list(self._sources), set()
        for source in sources:
            source.stream.abort()
            source.close()
        self._close_finished()
        logger.debug("Output engine closed (%d active sources)", len(sources))


class SoundDeviceRuntime:
    """AudioRuntime backed by the host's PortAudio devices."""

    def __init__(self, device: DeviceSpec = None, sample_rate: int | None = None):
        self._device = device
        self._sample_rate = sample_rate

    def is_format_supported(self, fmt: AudioFormat) -> bool:
        return sf.check_format(fmt.container, fmt.subtype)

    async def open_input(self, constraints: CaptureConstraints) -> SoundDeviceInput:
        logger.debug(
            "PortAudio has no DSP switches; ignoring hints echo_cancellation=%s "
            "noise_suppression=%s auto_gain_control=%s",
            constraints.echo_cancellation,
            constraints.noise_suppression,
            constraints.auto_gain_control,
        )
        try:
            if self._sample_rate is not None:
                sample_rate = self._sample_rate
            else:
                info = sd.query_devices(self._device, kind="input")
                sample_rate = int(info["default_samplerate"])
            constraints = replace(constraints, sample_rate=sample_rate)
            return SoundDeviceInput(constraints, device=self._device)
        except (sd.PortAudioError, ValueError) as exc:
            raise CaptureAccessDenied(f"Microphone access denied: {exc}") from exc

    def create_encoder(
        self,
        device: SoundDeviceInput,
        fmt: AudioFormat,
        notify: Notify,
    ) -> SoundFileEncoder:
        return SoundFileEncoder(device, fmt, notify)

    def create_output(self) -> SoundDeviceOutput:
        return SoundDeviceOutput()
