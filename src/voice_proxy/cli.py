from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from voice_proxy.config import AppSettings
from voice_proxy.core.errors import SynthesisError
from voice_proxy.core.logging import configure_logging, get_logger
from voice_proxy.core.types import SynthesisRequest, VoiceSettings
from voice_proxy.integrations.voices import PREVIEW_SAMPLE_TEXT, VOICES, find_voice
from voice_proxy.main import main
from voice_proxy.proxy import build_proxy
from voice_proxy.startup.checks import CheckStatus, run_startup_checks

app = typer.Typer(no_args_is_help=True)


@app.command()
def serve() -> None:
    """Run the voice generation HTTP API."""
    raise SystemExit(main())


@app.command()
def check() -> None:
    """Run startup checks against the current configuration."""
    settings = AppSettings()
    configure_logging(settings.log_level)
    results = run_startup_checks(settings)
    raise SystemExit(1 if any(r.status == CheckStatus.FAIL for r in results) else 0)


@app.command()
def voices() -> None:
    """List the voices the UI can offer."""
    t = Table(title="Voices", expand=False, pad_edge=False)
    t.add_column("id", no_wrap=True)
    t.add_column("name")
    t.add_column("gender")
    t.add_column("accent")
    t.add_column("description", overflow="fold")
    for v in VOICES:
        t.add_row(v.id, v.name, v.gender, v.accent, v.description)
    Console().print(t)


@app.command()
def synthesize(
    text: Optional[str] = typer.Argument(None, help="Text to speak (defaults to the preview sample)"),
    out: Path = typer.Option(Path("voice.mp3"), "--out", help="Where to write the audio"),
    voice: Optional[str] = typer.Option(None, "--voice", help="Voice id (see `voices`)"),
    stability: Optional[float] = typer.Option(None, "--stability", min=0.0, max=1.0),
    clarity: Optional[float] = typer.Option(None, "--clarity", min=0.0, max=1.0),
    preview: bool = typer.Option(False, "--preview", help="Short preview (first 100 chars)"),
) -> None:
    """
    End-to-end test: send one synthesis through the proxy and write the audio to a file.
    """
    settings = AppSettings()
    configure_logging(settings.log_level)
    log = get_logger(app=settings.name, component="cli")

    if voice and find_voice(voice) is None:
        log.warning("unknown_voice", voice=voice, hint="Forwarding as-is")

    request = SynthesisRequest(
        text=text or PREVIEW_SAMPLE_TEXT,
        voice_settings=VoiceSettings(voice_id=voice, stability=stability, similarity_boost=clarity),
        is_preview=preview,
    )
    proxy = build_proxy(settings)
    try:
        audio = asyncio.run(proxy.synthesize(request))
    except SynthesisError as e:
        typer.echo("%s: %s" % (e.kind.value, e.message), err=True)
        raise SystemExit(1)

    out.write_bytes(audio.data)
    typer.echo("Wrote %d bytes (%s) to %s" % (audio.content_length, audio.content_type, out))
