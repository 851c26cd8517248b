"""FastAPI app exposing Foundry agents, voice, file extraction and waveform."""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load .env BEFORE any other imports that read env vars
load_dotenv()

from agent_framework.observability import configure_otel_providers  # noqa: E402

# Configure OpenTelemetry immediately after load_dotenv
configure_otel_providers()

from fastapi import FastAPI  # noqa: E402

from response_agent.agents.foundry import AgentService  # noqa: E402
from response_agent.api.agents import router as agents_router  # noqa: E402
from response_agent.api.files import router as files_router  # noqa: E402
from response_agent.api.health import router as health_router  # noqa: E402
from response_agent.api.voice import router as voice_router  # noqa: E402
from response_agent.config import get_settings  # noqa: E402
from response_agent.voice.service import VoiceChatService  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services at startup, disconnect them at shutdown."""
    settings = get_settings()

    app.state.agent_service = AgentService(settings)
    if not app.state.agent_service.is_configured:
        logger.warning(
            "Foundry endpoint is not configured. "
            "Agent endpoints will return configuration errors."
        )

    voice_service = VoiceChatService(settings)
    if await voice_service.initialize():
        logger.info("Voice service initialized")
    else:
        logger.warning(
            "Could not initialize voice service. "
            "Voice endpoints will return 503 until it is configured."
        )
    app.state.voice_service = voice_service

    yield

    await app.state.voice_service.disconnect()


app = FastAPI(title="Response Agent", lifespan=lifespan)

app.include_router(health_router)
app.include_router(agents_router)
app.include_router(files_router)
app.include_router(voice_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8003)
