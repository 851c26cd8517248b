"""Voice endpoints: transcription, synthesis, spoken chat and waveform.

Audio travels as multipart uploads on the way in and as base64 text on the
way out, which is what the browser player decodes and plays.
"""

import logging

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from response_agent.audio.codec import decode_audio, encode_base64
from response_agent.audio.formats import WAV_PCM16, format_for_filename
from response_agent.audio.waveform import envelope_from_base64
from response_agent.config import get_settings
from response_agent.voice.service import VoiceChatService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Voice"])


class SynthesizeBody(BaseModel):
    """Text to speak."""

    text: str


class TranscriptResponse(BaseModel):
    """Recognized speech."""

    text: str


class AudioResponse(BaseModel):
    """Base64 audio blob and its MIME type."""

    audio: str
    mimeType: str = WAV_PCM16.mime_type  # noqa: N815


class VoiceChatResponse(BaseModel):
    """Transcript of the question plus the agent's reply as text and audio."""

    transcript: str
    text: str
    audio: str
    mimeType: str = WAV_PCM16.mime_type  # noqa: N815


class WaveformBody(BaseModel):
    """Base64 audio blob and the pixel width of the drawing surface.

    ``columns`` defaults to the WAVEFORM_COLUMNS setting.
    """

    audio: str
    columns: int | None = Field(default=None, ge=1)


class WaveformResponse(BaseModel):
    """One RMS value per drawn column (empty when the audio is unreadable)."""

    envelope: list[float]


def _voice_service(request: Request) -> VoiceChatService:
    service = getattr(request.app.state, "voice_service", None)
    if service is None or not service.is_initialized:
        raise HTTPException(
            status_code=503,
            detail="Voice service not configured. Voice features are unavailable.",
        )
    return service


def _content_type(upload: UploadFile) -> str:
    if upload.content_type and upload.content_type.startswith("audio/"):
        return upload.content_type
    fmt = format_for_filename(upload.filename or "")
    return fmt.mime_type if fmt else "application/octet-stream"


@router.post("/api/voice/transcribe", response_model=TranscriptResponse)
async def transcribe(
    request: Request,
    file: UploadFile = File(...),  # noqa: B008
) -> TranscriptResponse:
    """Transcribe an uploaded recording."""
    service = _voice_service(request)
    audio = await file.read()

    try:
        text = await service.transcribe(
            audio, file.filename or "recording.wav", _content_type(file)
        )
    except Exception as exc:
        raise HTTPException(
            status_code=502, detail=f"Transcription error: {exc}"
        ) from exc

    return TranscriptResponse(text=text)


@router.post("/api/voice/synthesize", response_model=AudioResponse)
async def synthesize(request: Request, body: SynthesizeBody) -> AudioResponse:
    """Speak text and return the WAV audio as base64."""
    service = _voice_service(request)

    try:
        audio = await service.synthesize(body.text)
    except Exception as exc:
        raise HTTPException(
            status_code=502, detail=f"Speech synthesis error: {exc}"
        ) from exc

    return AudioResponse(audio=encode_base64(audio))


@router.post("/api/voice/chat", response_model=VoiceChatResponse)
async def voice_chat(
    request: Request,
    file: UploadFile = File(...),  # noqa: B008
    context: str | None = Form(None),  # noqa: B008
) -> VoiceChatResponse:
    """Transcribe a spoken question, ask the chat agent, and speak the reply."""
    service = _voice_service(request)
    agent_service = getattr(request.app.state, "agent_service", None)
    if agent_service is None:
        raise HTTPException(status_code=503, detail="Agent service not available.")

    audio = await file.read()
    try:
        turn = await service.voice_chat(
            agent_service,
            audio,
            file.filename or "recording.wav",
            _content_type(file),
            context,
        )
    except Exception as exc:
        raise HTTPException(status_code=502, detail=f"Voice chat error: {exc}") from exc

    return VoiceChatResponse(
        transcript=turn.transcript,
        text=turn.reply_text,
        audio=encode_base64(turn.reply_audio),
    )


# Plain def: FastAPI runs it in the threadpool, keeping the decode off the loop.
@router.post("/api/audio/waveform", response_model=WaveformResponse)
def waveform(body: WaveformBody) -> WaveformResponse:
    """Compute the RMS envelope used to draw a recording's waveform."""
    columns = body.columns or get_settings().waveform_columns
    envelope = envelope_from_base64(body.audio, columns, decode=decode_audio)
    return WaveformResponse(envelope=envelope)
