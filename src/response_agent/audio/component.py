"""Audio capture and playback component.

AudioComponent owns, per instance:

- zero or one open capture session (input device + encoder + chunk buffer)
- zero or one output engine, created lazily on first playback/waveform use

Usage:
    async with AudioComponent() as audio:
        await audio.begin_capture()
        ...
        recording = await audio.end_capture()
        await audio.play_audio(encode_base64(recording.data))

All methods must be called from the same event loop. Encoder notifications
may originate on a device thread; they are marshalled onto the loop and
appended to the session in delivery order by a single pump task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from response_agent.audio.codec import decode_base64
from response_agent.audio.errors import (
    AudioError,
    CaptureAccessDenied,
    CaptureAlreadyActive,
    CaptureFailed,
    CaptureNotStarted,
)
from response_agent.audio.formats import (
    FORMAT_PREFERENCES,
    AudioFormat,
    negotiate_format,
)
from response_agent.audio.runtime import (
    AudioRuntime,
    CaptureConstraints,
    ChunkAvailable,
    Encoder,
    EncoderEvent,
    EncoderFailed,
    EncoderStopped,
    InputDevice,
    Notify,
    OutputEngine,
)
from response_agent.audio.waveform import envelope_from_base64

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapturedAudio:
    """A finished recording tagged with its negotiated format."""

    data: bytes
    format: AudioFormat

    @property
    def mime_type(self) -> str:
        return self.format.mime_type


@dataclass
class CaptureSession:
    """Live state of one recording attempt."""

    device: InputDevice
    format: AudioFormat
    events: asyncio.Queue[EncoderEvent] = field(default_factory=asyncio.Queue)
    chunks: list[bytes] = field(default_factory=list)
    encoder: Encoder | None = None
    pump: asyncio.Task | None = None

    async def run_pump(self) -> None:
        """Append delivered chunks in order until the encoder stops."""
        while True:
            event = await self.events.get()
            if isinstance(event, ChunkAvailable):
                if event.data:
                    self.chunks.append(event.data)
            elif isinstance(event, EncoderStopped):
                return
            elif isinstance(event, EncoderFailed):
                raise CaptureFailed(f"Recording failed: {event.error}") from event.error

    def release(self) -> None:
        """Close the input device; never raises."""
        try:
            self.device.close()
        except Exception:
            logger.warning("Failed to release input device", exc_info=True)


def threadsafe_notifier(queue: asyncio.Queue[EncoderEvent]) -> Notify:
    """Return a notify callable that posts into ``queue`` from any thread."""
    loop = asyncio.get_running_loop()

    def notify(event: EncoderEvent) -> None:
        if loop.is_closed():
            logger.debug("Dropping encoder event after loop close: %r", event)
            return
        loop.call_soon_threadsafe(queue.put_nowait, event)

    return notify


class AudioComponent:
    """Microphone capture, decoded playback and waveform analysis."""

    def __init__(
        self,
        runtime: AudioRuntime | None = None,
        preferences: Sequence[AudioFormat] = FORMAT_PREFERENCES,
        constraints: CaptureConstraints | None = None,
    ) -> None:
        if runtime is None:
            from response_agent.audio.devices import SoundDeviceRuntime

            runtime = SoundDeviceRuntime()
        self._runtime = runtime
        self._preferences = tuple(preferences)
        self._constraints = constraints or CaptureConstraints()
        self._session: CaptureSession | None = None
        # Set while begin_capture waits on the device, so a second call fails fast
        self._starting = False
        self._output: OutputEngine | None = None

    async def __aenter__(self) -> AudioComponent:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def is_capturing(self) -> bool:
        return self._session is not None or self._starting

    @property
    def has_output(self) -> bool:
        return self._output is not None

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def begin_capture(self) -> AudioFormat:
        """Open the microphone and start encoding.

        Returns:
            The negotiated output format.

        Raises:
            CaptureAlreadyActive: A session is already open.
            CaptureUnsupported: No preferred format is supported.
            CaptureAccessDenied: The microphone could not be opened.
        """
        if self.is_capturing:
            raise CaptureAlreadyActive("Recording is already in progress")

        fmt = negotiate_format(self._runtime, self._preferences)

        self._starting = True
        try:
            session = await self._open_session(fmt)
        finally:
            self._starting = False

        self._session = session
        logger.info("Recording started (%s)", fmt.mime_type)
        return fmt

    async def _open_session(self, fmt: AudioFormat) -> CaptureSession:
        try:
            device = await self._runtime.open_input(self._constraints)
        except CaptureAccessDenied:
            raise
        except Exception as exc:
            logger.error("Recording failed: %s", exc)
            raise CaptureAccessDenied(f"Microphone access denied: {exc}") from exc

        session = CaptureSession(device=device, format=fmt)
        try:
            notify = threadsafe_notifier(session.events)
            session.encoder = self._runtime.create_encoder(device, fmt, notify)
            session.encoder.start()
        except Exception:
            session.release()
            raise

        session.pump = asyncio.create_task(session.run_pump())
        return session

    async def end_capture(self) -> CapturedAudio:
        """Stop the encoder, flush it and return the recording.

        The device is released on every exit path.

        Raises:
            CaptureNotStarted: No session is open.
            CaptureFailed: The encoder failed while flushing.
        """
        session = self._session
        if session is None:
            raise CaptureNotStarted("Recording not started")
        self._session = None

        try:
            # Stopping flushes and encodes the whole recording; keep it off the loop
            try:
                await asyncio.to_thread(session.encoder.stop)
            except Exception as exc:
                raise CaptureFailed(f"Recording failed: {exc}") from exc
            await session.pump
        finally:
            if not session.pump.done():
                session.pump.cancel()
            session.release()

        data = b"".join(session.chunks)
        logger.info(
            "Recording stopped. Audio data size: %d bytes (%d chunks)",
            len(data),
            len(session.chunks),
        )
        return CapturedAudio(data=data, format=session.format)

    async def _discard_capture(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        try:
            await asyncio.to_thread(session.encoder.stop)
        except Exception:
            logger.warning("Failed to stop encoder on discard", exc_info=True)
        if session.pump is not None:
            session.pump.cancel()
            try:
                await session.pump
            except (asyncio.CancelledError, AudioError):
                pass
        session.release()
        logger.info("Recording discarded")

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def _ensure_output(self) -> OutputEngine:
        if self._output is None:
            self._output = self._runtime.create_output()
            logger.debug("Output engine created")
        return self._output

    async def play_audio(self, audio_base64: str) -> None:
        """Decode a base64 audio blob and start playing it.

        Returns as soon as playback has started.

        Raises:
            Base64Error: The text is not valid base64.
            DecodeError: The bytes are not a decodable audio container.
        """
        data = decode_base64(audio_base64)
        output = self._ensure_output()
        try:
            decoded = output.decode(data)
        except AudioError as exc:
            logger.error("Audio playback failed: %s", exc)
            raise
        output.play(decoded)
        logger.info("Audio playback started")

    def stop_audio(self) -> None:
        """Close the output engine, stopping all playback. Idempotent."""
        if not self.has_output:
            return
        output, self._output = self._output, None
        output.close()
        logger.info("Audio output closed")

    async def compute_waveform(self, audio_base64: str, columns: int) -> list[float]:
        """Return the RMS envelope of the first channel, or [] on decode failure."""
        return envelope_from_base64(
            audio_base64, columns, decode=self._ensure_output().decode
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Discard any open recording and release the output engine."""
        await self._discard_capture()
        self.stop_audio()
