"""Hosted voice service: speech-to-text and text-to-speech.

VoiceChatService wraps AsyncAzureOpenAI audio deployments
(gpt-4o-transcribe for transcription, gpt-4o-mini-tts for synthesis). It
follows the same lifecycle as the other stateful clients: construct,
initialize() at startup, disconnect() at shutdown.

Synthesis asks for raw PCM and wraps it in a canonical WAV header locally,
so callers always receive a self-describing WAV blob.
"""

import logging
from dataclasses import dataclass

from azure.identity.aio import DefaultAzureCredential, get_bearer_token_provider
from openai import AsyncAzureOpenAI
from opentelemetry import trace

from response_agent.agents.foundry import AgentService
from response_agent.audio.wav import pcm_to_wav, silent_wav
from response_agent.config import Settings

logger = logging.getLogger(__name__)
tracer = trace.get_tracer("response_agent.voice")

COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"

# Format of response_format="pcm" from the speech API.
TTS_SAMPLE_RATE = 24000
TTS_CHANNELS = 1
TTS_BITS_PER_SAMPLE = 16

# Length of the clip returned for blank text; the speech API rejects empty input.
SILENT_REPLY_MS = 2000


@dataclass(frozen=True)
class VoiceChatTurn:
    """One spoken round trip: what was heard, the reply, and the spoken reply."""

    transcript: str
    reply_text: str
    reply_audio: bytes


class VoiceChatService:
    """Speech-to-text and text-to-speech against Azure OpenAI.

    Usage:
        service = VoiceChatService(settings)
        await service.initialize()
        text = await service.transcribe(audio_bytes, "recording.ogg", "audio/ogg")
        wav = await service.synthesize("こんにちは")
        await service.disconnect()
    """

    def __init__(self, settings: Settings) -> None:
        """Store config. Client is not yet created -- call initialize()."""
        self._settings = settings
        self._credential: DefaultAzureCredential | None = None
        self._client: AsyncAzureOpenAI | None = None

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def initialize(self) -> bool:
        """Create the audio client with Entra ID auth.

        Returns False (and logs) instead of raising so the app can start
        without voice support.
        """
        endpoint = self._settings.resolved_voice_endpoint
        if not endpoint.strip():
            logger.error("Voice endpoint is not configured")
            return False

        try:
            logger.info("Initializing voice client...")
            self._credential = DefaultAzureCredential()
            token_provider = get_bearer_token_provider(
                self._credential, COGNITIVE_SERVICES_SCOPE
            )
            self._client = AsyncAzureOpenAI(
                azure_endpoint=endpoint,
                azure_ad_token_provider=token_provider,
                api_version=self._settings.voice_api_version,
            )
            logger.info("Voice client initialized: endpoint=%s", endpoint)
            return True
        except Exception as exc:
            logger.error("Voice client initialization failed: %s", exc)
            self._client = None
            return False

    def _require_client(self) -> AsyncAzureOpenAI:
        if self._client is None:
            logger.error("Voice client is not initialized")
            msg = "Voice client is not initialized -- call initialize() first"
            raise RuntimeError(msg)
        return self._client

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "recording.wav",
        content_type: str = "audio/wav",
    ) -> str:
        """Transcribe recorded audio to text."""
        client = self._require_client()

        with tracer.start_as_current_span("voice_transcribe") as span:
            span.set_attribute("voice.audio_bytes", len(audio))
            try:
                logger.info("Transcribing voice message (%d bytes)", len(audio))
                result = await client.audio.transcriptions.create(
                    model=self._settings.voice_transcription_deployment,
                    file=(filename, audio, content_type),
                )
                logger.info("Transcribed text: %s", result.text[:80])
                return result.text
            except Exception as exc:
                span.record_exception(exc)
                logger.error("Voice transcription failed: %s", exc)
                raise

    async def synthesize(self, text: str) -> bytes:
        """Synthesize speech for text and return it as a WAV blob."""
        client = self._require_client()

        if not text.strip():
            logger.info(
                "Nothing to synthesize, returning %d ms of silence", SILENT_REPLY_MS
            )
            return silent_wav(
                SILENT_REPLY_MS, TTS_SAMPLE_RATE, TTS_CHANNELS, TTS_BITS_PER_SAMPLE
            )

        with tracer.start_as_current_span("voice_synthesize") as span:
            span.set_attribute("voice.text_length", len(text))
            try:
                logger.info("Synthesizing speech (text length %d)", len(text))
                response = await client.audio.speech.create(
                    model=self._settings.voice_tts_deployment,
                    voice=self._settings.voice_name,
                    input=text,
                    instructions=self._settings.voice_instructions,
                    response_format="pcm",
                )
                audio = pcm_to_wav(
                    response.content,
                    TTS_SAMPLE_RATE,
                    TTS_CHANNELS,
                    TTS_BITS_PER_SAMPLE,
                )
                logger.info("Synthesized speech (%d bytes)", len(audio))
                return audio
            except Exception as exc:
                span.record_exception(exc)
                logger.error("Speech synthesis failed: %s", exc)
                raise

    async def voice_chat(
        self,
        agents: AgentService,
        audio: bytes,
        filename: str,
        content_type: str,
        context: str | None = None,
    ) -> VoiceChatTurn:
        """Transcribe a spoken question, ask the chat agent, and speak the reply."""
        transcript = await self.transcribe(audio, filename, content_type)
        reply_text = await agents.chat(transcript, context)
        reply_audio = await self.synthesize(reply_text)
        return VoiceChatTurn(
            transcript=transcript,
            reply_text=reply_text,
            reply_audio=reply_audio,
        )

    async def disconnect(self) -> None:
        """Close the client and credential. Errors are logged, not raised."""
        try:
            if self._client is not None:
                await self._client.close()
                self._client = None
                logger.info("Voice client disconnected")
            if self._credential is not None:
                await self._credential.close()
                self._credential = None
        except Exception as exc:
            logger.error("Voice client disconnect failed: %s", exc)
