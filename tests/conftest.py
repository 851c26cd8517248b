"""Shared test fixtures for the response agent."""

import threading
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import FastAPI

from response_agent.agents.foundry import AgentService
from response_agent.api.agents import router as agents_router
from response_agent.api.files import router as files_router
from response_agent.api.health import router as health_router
from response_agent.api.voice import router as voice_router
from response_agent.audio.codec import decode_audio
from response_agent.audio.formats import FORMAT_PREFERENCES, AudioFormat
from response_agent.audio.runtime import (
    CaptureConstraints,
    ChunkAvailable,
    DecodedAudio,
    EncoderFailed,
    EncoderStopped,
    Notify,
)
from response_agent.config import Settings
from response_agent.voice.service import VoiceChatService

# ---------------------------------------------------------------------------
# Fake audio runtime
# ---------------------------------------------------------------------------


class FakeInputDevice:
    """Input handle that records whether it was released."""

    def __init__(self, constraints: CaptureConstraints) -> None:
        self.constraints = constraints
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def close(self) -> None:
        self.close_count += 1


class FakeEncoder:
    """Encoder driven by the test.

    ``emit`` delivers a chunk immediately. On ``stop`` the chunks in
    ``final_chunks`` are delivered, followed by EncoderStopped, or by
    EncoderFailed when ``fail_on_stop`` is set.
    """

    def __init__(self, device: FakeInputDevice, fmt: AudioFormat, notify: Notify):
        self.device = device
        self.format = fmt
        self.notify = notify
        self.started = False
        self.stopped = False
        self.start_error: Exception | None = None
        self.final_chunks: list[bytes] = []
        self.fail_on_stop: Exception | None = None
        self.stop_thread: int | None = None

    def emit(self, data: bytes) -> None:
        self.notify(ChunkAvailable(data))

    def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    def stop(self) -> None:
        self.stopped = True
        self.stop_thread = threading.get_ident()
        for chunk in self.final_chunks:
            self.emit(chunk)
        if self.fail_on_stop is not None:
            self.notify(EncoderFailed(self.fail_on_stop))
        else:
            self.notify(EncoderStopped())


class FakeOutputEngine:
    """Output engine that decodes for real but only records playback."""

    def __init__(self) -> None:
        self.decoded: list[bytes] = []
        self.played: list[DecodedAudio] = []
        self.closed = False

    def decode(self, data: bytes) -> DecodedAudio:
        self.decoded.append(data)
        return decode_audio(data)

    def play(self, audio: DecodedAudio) -> None:
        self.played.append(audio)

    def close(self) -> None:
        self.closed = True


class FakeRuntime:
    """In-memory AudioRuntime.

    Args:
        supported: Formats the encoder accepts. Defaults to all of them.
        open_error: Raised from open_input when set.
        start_error: Raised from the encoder's start() when set.
        final_chunks: Chunks every encoder delivers when stopped.
    """

    def __init__(
        self,
        supported: tuple[AudioFormat, ...] = FORMAT_PREFERENCES,
        open_error: Exception | None = None,
        start_error: Exception | None = None,
        final_chunks: list[bytes] | None = None,
    ) -> None:
        self.supported = set(supported)
        self.open_error = open_error
        self.start_error = start_error
        self.final_chunks = final_chunks or []
        self.checked: list[AudioFormat] = []
        self.devices: list[FakeInputDevice] = []
        self.encoders: list[FakeEncoder] = []
        self.outputs: list[FakeOutputEngine] = []

    def is_format_supported(self, fmt: AudioFormat) -> bool:
        self.checked.append(fmt)
        return fmt in self.supported

    async def open_input(self, constraints: CaptureConstraints) -> FakeInputDevice:
        if self.open_error is not None:
            raise self.open_error
        device = FakeInputDevice(constraints)
        self.devices.append(device)
        return device

    def create_encoder(
        self, device: FakeInputDevice, fmt: AudioFormat, notify: Notify
    ) -> FakeEncoder:
        encoder = FakeEncoder(device, fmt, notify)
        encoder.start_error = self.start_error
        encoder.final_chunks = list(self.final_chunks)
        self.encoders.append(encoder)
        return encoder

    def create_output(self) -> FakeOutputEngine:
        output = FakeOutputEngine()
        self.outputs.append(output)
        return output


@pytest.fixture
def runtime() -> FakeRuntime:
    """A fake runtime that supports every preferred format."""
    return FakeRuntime()


# ---------------------------------------------------------------------------
# Settings and app
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Provide test-safe settings with placeholder values."""
    return Settings(
        _env_file=None,
        foundry_endpoint="https://test.services.ai.azure.com/api/projects/test",
        foundry_agent_id="asst_generate",
        foundry_review_agent_id="asst_review",
        foundry_rewrite_agent_id="asst_rewrite",
        foundry_chat_agent_id="asst_chat",
        voice_endpoint="https://test.openai.azure.com/",
    )


@pytest.fixture
def mock_agent_service() -> MagicMock:
    """Return a mock AgentService whose calls echo their purpose."""
    service = MagicMock(spec=AgentService)
    service.is_configured = True
    service.generate_response.return_value = "generated answer"
    service.review_response.return_value = "review notes"
    service.rewrite_response.return_value = "rewritten answer"
    service.chat.return_value = "chat reply"
    return service


@pytest.fixture
def mock_voice_service() -> MagicMock:
    """Return an initialized mock VoiceChatService."""
    service = MagicMock(spec=VoiceChatService)
    service.is_initialized = True
    return service


@pytest.fixture
def app_with_mocks(
    mock_agent_service: MagicMock, mock_voice_service: MagicMock
) -> FastAPI:
    """Create a FastAPI app with every router and mocked services on app.state.

    No lifespan runs, so no Azure clients are created.
    """
    app = FastAPI()
    app.include_router(health_router)
    app.include_router(agents_router)
    app.include_router(files_router)
    app.include_router(voice_router)
    app.state.agent_service = mock_agent_service
    app.state.voice_service = mock_voice_service
    return app


@pytest.fixture
def async_client(app_with_mocks: FastAPI) -> httpx.AsyncClient:
    """Create an httpx.AsyncClient bound to the app_with_mocks fixture."""
    transport = httpx.ASGITransport(app=app_with_mocks)
    return httpx.AsyncClient(transport=transport, base_url="http://test")
