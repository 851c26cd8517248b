"""Command-line interface: run the API server or use the local audio device.

    response-agent serve
    response-agent record question.ogg --duration 5
    response-agent play answer.wav
    response-agent waveform answer.wav --columns 80
    response-agent voice-chat --context "We sell bicycles."
"""

import asyncio
import logging
import sys
from pathlib import Path

import typer
from azure.core.exceptions import AzureError
from openai import OpenAIError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

from response_agent.audio.codec import decode_audio, encode_base64
from response_agent.audio.component import AudioComponent, CapturedAudio
from response_agent.audio.errors import AudioError
from response_agent.audio.waveform import WAVEFORM_GAIN, envelope_from_base64
from response_agent.config import get_settings

app = typer.Typer(help="Foundry agent and voice tools")

console = Console(
    theme=Theme(
        {
            "info": "cyan",
            "success": "green",
            "warning": "yellow",
            "error": "bold red",
        }
    )
)

_BARS = " ▁▂▃▄▅▆▇█"
# Height in pixels of the reference canvas the gain is tuned for.
_CANVAS_HEIGHT = 100.0


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _make_component(device: str | None) -> AudioComponent:
    from response_agent.audio.devices import SoundDeviceRuntime

    selected = device if device is not None else get_settings().audio_input_device
    if selected is not None and selected.isdigit():
        return AudioComponent(runtime=SoundDeviceRuntime(device=int(selected)))
    return AudioComponent(runtime=SoundDeviceRuntime(device=selected))


def render_strip(envelope: list[float]) -> str:
    """Render an envelope as a one-line bar strip."""
    top = len(_BARS) - 1
    cells = []
    for rms in envelope:
        level = min(1.0, rms * WAVEFORM_GAIN / 2 / _CANVAS_HEIGHT)
        cells.append(_BARS[round(level * top)])
    return "".join(cells)


async def _capture(audio: AudioComponent, duration: float | None) -> CapturedAudio:
    fmt = await audio.begin_capture()
    if duration is None:
        console.print(f"[info]Recording ({fmt.mime_type}). Press Enter to stop.[/info]")
        await asyncio.to_thread(input)
    else:
        console.print(f"[info]Recording ({fmt.mime_type}) for {duration:g}s...[/info]")
        await asyncio.sleep(duration)
    return await audio.end_capture()


async def _play_and_wait(audio: AudioComponent, data: bytes) -> None:
    duration = decode_audio(data).duration
    await audio.play_audio(encode_base64(data))
    await asyncio.sleep(duration)
    audio.stop_audio()


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8003, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the HTTP API server."""
    import uvicorn

    uvicorn.run("response_agent.main:app", host=host, port=port, reload=reload)


@app.command()
def record(
    output: Path = typer.Argument(..., help="Where to write the recording"),
    duration: float | None = typer.Option(
        None, help="Seconds to record. Leave empty to stop with Enter."
    ),
    device: str | None = typer.Option(None, help="Input device index or name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Record from the microphone in the best supported format."""
    _configure_logging(verbose)

    async def run() -> CapturedAudio:
        async with _make_component(device) as audio:
            return await _capture(audio, duration)

    try:
        recording = asyncio.run(run())
    except AudioError as exc:
        console.print(f"[error]{escape(str(exc))}[/error]")
        sys.exit(1)

    if not output.suffix:
        output = output.with_suffix(f".{recording.format.extension}")
    output.write_bytes(recording.data)
    console.print(
        f"[success]Saved {len(recording.data)} bytes "
        f"({recording.mime_type}) to {output}[/success]"
    )


@app.command()
def play(
    path: Path = typer.Argument(..., exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Play an audio file through the default output device."""
    _configure_logging(verbose)

    async def run() -> None:
        async with _make_component(None) as audio:
            await _play_and_wait(audio, path.read_bytes())

    try:
        asyncio.run(run())
    except AudioError as exc:
        console.print(f"[error]{escape(str(exc))}[/error]")
        sys.exit(1)


@app.command()
def waveform(
    path: Path = typer.Argument(..., exists=True, dir_okay=False),
    columns: int = typer.Option(80, min=1, help="Number of columns to draw"),
):
    """Print the RMS waveform of an audio file."""
    envelope = envelope_from_base64(
        encode_base64(path.read_bytes()), columns, decode=decode_audio
    )
    if not envelope:
        console.print("[warning]No waveform available for this file.[/warning]")
        sys.exit(1)
    console.print(render_strip(envelope))


@app.command("voice-chat")
def voice_chat(
    context: str | None = typer.Option(None, help="Background for the chat agent"),
    duration: float | None = typer.Option(
        None, help="Seconds to record. Leave empty to stop with Enter."
    ),
    device: str | None = typer.Option(None, help="Input device index or name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Ask the chat agent a spoken question and hear the answer."""
    from response_agent.agents.foundry import AgentService
    from response_agent.voice.service import VoiceChatService

    _configure_logging(verbose)
    settings = get_settings()

    async def run() -> bool:
        voice = VoiceChatService(settings)
        if not await voice.initialize():
            return False
        try:
            async with _make_component(device) as audio:
                recording = await _capture(audio, duration)
                turn = await voice.voice_chat(
                    AgentService(settings),
                    recording.data,
                    f"recording.{recording.format.extension}",
                    recording.format.mime_type,
                    context,
                )
                console.print(f"[info]You:[/info] {escape(turn.transcript)}")
                console.print(f"[success]Agent:[/success] {escape(turn.reply_text)}")
                await _play_and_wait(audio, turn.reply_audio)
        finally:
            await voice.disconnect()
        return True

    try:
        configured = asyncio.run(run())
    except (AudioError, AzureError, OpenAIError) as exc:
        console.print(f"[error]{escape(str(exc))}[/error]")
        sys.exit(1)

    if not configured:
        console.print("[error]Voice service is not configured.[/error]")
        sys.exit(1)


if __name__ == "__main__":
    app()
