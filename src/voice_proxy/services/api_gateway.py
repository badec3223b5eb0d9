from __future__ import annotations

from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from voice_proxy.config import AppSettings
from voice_proxy.core.errors import InvalidInput, SynthesisError
from voice_proxy.core.logging import configure_logging, get_logger
from voice_proxy.core.types import SynthesisRequest, VoiceSettings
from voice_proxy.integrations.voices import catalog, supported_voice_ids
from voice_proxy.proxy import SynthesisProxy, build_proxy
from voice_proxy.startup.checks import CheckStatus, run_startup_checks


class VoiceSettingsBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    voice: Optional[str] = None
    # Accepted for UI compatibility; the provider has no knobs for these.
    speed: Optional[float] = None
    pitch: Optional[float] = None
    stability: Optional[float] = Field(default=None, ge=0, le=1)
    clarity: Optional[float] = Field(default=None, ge=0, le=1)


class GenerateVoiceBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None
    settings: Optional[VoiceSettingsBody] = None
    preview: Optional[bool] = False

    def to_synthesis_request(self) -> SynthesisRequest:
        s = self.settings or VoiceSettingsBody()
        return SynthesisRequest(
            text=self.text or "",
            voice_settings=VoiceSettings(
                voice_id=(s.voice or "").strip() or None,
                stability=s.stability,
                similarity_boost=s.clarity,
            ),
            is_preview=bool(self.preview),
        )


def _error_response(err: SynthesisError) -> JSONResponse:
    return JSONResponse(err.to_dict(), status_code=err.http_status)


def create_app(settings: AppSettings, proxy: Optional[SynthesisProxy] = None) -> FastAPI:
    """
    HTTP surface for the voice UI: one synthesis endpoint plus read-only voice info.
    """
    log = get_logger(component="api_gateway")
    synth = proxy or build_proxy(settings)

    app = FastAPI(title="Voice Generation API")

    @app.post("/api/generate-voice")
    async def generate_voice(request: Request) -> Response:
        try:
            raw = await request.json()
        except ValueError:
            return _error_response(InvalidInput("Invalid JSON body"))

        try:
            body = GenerateVoiceBody.model_validate(raw)
        except ValidationError as e:
            log.warning("invalid_body", errors=e.error_count())
            return _error_response(InvalidInput("Invalid request body"))

        try:
            audio = await synth.synthesize(body.to_synthesis_request())
        except SynthesisError as e:
            log.warning("synthesis_failed", kind=e.kind.value, status=e.http_status)
            return _error_response(e)

        return Response(
            content=audio.data,
            media_type=audio.content_type,
            headers={
                "Content-Length": str(audio.content_length),
                "Cache-Control": "no-cache",
            },
        )

    @app.get("/api/generate-voice")
    async def status() -> Dict[str, Any]:
        return {
            "message": "Voice Generation API",
            "status": "ready",
            "supportedVoices": supported_voice_ids(),
        }

    @app.get("/api/voices")
    async def voices() -> Dict[str, Any]:
        return {"voices": catalog()}

    return app


async def run_api_gateway() -> int:
    """
    Serve the synthesis API with uvicorn after the startup checks pass.
    """
    settings = AppSettings()
    configure_logging(settings.log_level)
    log = get_logger(app=settings.name, component="api_gateway")

    results = run_startup_checks(settings)
    if any(r.status == CheckStatus.FAIL for r in results):
        log.error("startup_checks_failed")
        return 1

    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=str(settings.server.bind_host),
        port=int(settings.server.port),
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    log.info("server_listening", host=settings.server.bind_host, port=settings.server.port)
    await server.serve()
    return 0
