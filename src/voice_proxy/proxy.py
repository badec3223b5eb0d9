from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx

from voice_proxy.config import AppSettings, SynthesisSettings
from voice_proxy.core.errors import (
    EmptyAudio,
    InternalError,
    InvalidInput,
    SynthesisError,
    UnexpectedFormat,
)
from voice_proxy.core.logging import get_logger
from voice_proxy.core.types import DEFAULT_AUDIO_CONTENT_TYPE, NormalizedAudio, SynthesisRequest
from voice_proxy.integrations.upstream import UpstreamClient, build_upstream_payload


# Upstream reply shapes, decided from the content-type alone.
@dataclass(frozen=True)
class JsonEnvelope:
    body: bytes


@dataclass(frozen=True)
class AudioBody:
    data: bytes
    content_type: str


@dataclass(frozen=True)
class RawBody:
    data: bytes


UpstreamReply = Union[JsonEnvelope, AudioBody, RawBody]


# What the generated message of a JSON envelope carries.
@dataclass(frozen=True)
class DataUriAudio:
    uri: str


@dataclass(frozen=True)
class RemoteAudioUrl:
    url: str


@dataclass(frozen=True)
class UnrecognizedContent:
    content: Any


MessageContent = Union[DataUriAudio, RemoteAudioUrl, UnrecognizedContent]


def classify_response(response: httpx.Response) -> UpstreamReply:
    content_type = response.headers.get("content-type", "")
    lowered = content_type.lower()
    if "json" in lowered:
        return JsonEnvelope(body=response.content)
    if "audio" in lowered:
        return AudioBody(data=response.content, content_type=content_type)
    # Upstream sometimes mislabels audio; take the bytes anyway.
    return RawBody(data=response.content)


def extract_message_content(envelope: Any) -> Any:
    """
    Pull choices[0].message.content out of a completion-style envelope, or None.
    """
    if not isinstance(envelope, dict):
        return None
    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    return message.get("content")


def interpret_message(content: Any) -> MessageContent:
    if isinstance(content, str):
        if content.startswith("data:audio"):
            return DataUriAudio(uri=content)
        if content.startswith(("http://", "https://")):
            return RemoteAudioUrl(url=content)
    return UnrecognizedContent(content=content)


def decode_data_uri(uri: str) -> bytes:
    """
    Decode "data:audio/...;base64,<payload>" by splitting at the first comma.
    """
    _, sep, payload = uri.partition(",")
    if not sep:
        raise UnexpectedFormat()
    # Line breaks and padding spaces are tolerated; any other non-alphabet byte is not.
    compact = "".join(payload.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UnexpectedFormat() from e


class SynthesisProxy:
    """
    Validate a synthesis request, forward it upstream and normalize whatever comes
    back into audio bytes.
    """

    def __init__(self, *, upstream: UpstreamClient, settings: SynthesisSettings, model: str) -> None:
        self._upstream = upstream
        self._settings = settings
        self._model = model
        self._log = get_logger(component="synthesis_proxy")

    async def synthesize(self, request: SynthesisRequest) -> NormalizedAudio:
        """
        Every failure leaves as a SynthesisError; anything unexpected becomes InternalError.
        """
        try:
            return await self._synthesize(request)
        except SynthesisError:
            raise
        except Exception as e:
            self._log.exception("synthesis_internal_error", error=type(e).__name__)
            raise InternalError() from e

    def prepare_text(self, request: SynthesisRequest) -> str:
        text = request.text or ""
        if not text.strip():
            raise InvalidInput("Text is required")
        if request.is_preview:
            return text[: self._settings.preview_max_chars]
        if len(text) > self._settings.max_text_chars:
            raise InvalidInput(
                "Text too long. Maximum %d characters allowed." % (self._settings.max_text_chars,)
            )
        return text

    async def _synthesize(self, request: SynthesisRequest) -> NormalizedAudio:
        text = self.prepare_text(request)
        payload = build_upstream_payload(
            text=text,
            voice_settings=request.voice_settings,
            model=self._model,
            defaults=self._settings,
        )
        self._log.info(
            "synthesis_request",
            voice=request.voice_settings.voice_id or self._settings.default_voice,
            preview=request.is_preview,
            chars=len(text),
        )

        response = await self._upstream.post_payload(payload)
        audio = await self._normalize(classify_response(response))
        if not audio.data:
            self._log.error("empty_audio", content_type=audio.content_type)
            raise EmptyAudio()

        self._log.info("synthesis_ok", bytes=audio.content_length, content_type=audio.content_type)
        return audio

    async def _normalize(self, reply: UpstreamReply) -> NormalizedAudio:
        if isinstance(reply, AudioBody):
            return NormalizedAudio(data=reply.data, content_type=reply.content_type)
        if isinstance(reply, RawBody):
            return NormalizedAudio(data=reply.data, content_type=DEFAULT_AUDIO_CONTENT_TYPE)
        return await self._from_envelope(reply)

    async def _from_envelope(self, reply: JsonEnvelope) -> NormalizedAudio:
        try:
            envelope = json.loads(reply.body)
        except ValueError as e:
            self._log.error("unexpected_format", reason="invalid_json", body=_preview(reply.body))
            raise UnexpectedFormat() from e

        content = interpret_message(extract_message_content(envelope))
        if isinstance(content, DataUriAudio):
            return NormalizedAudio(data=decode_data_uri(content.uri), content_type=DEFAULT_AUDIO_CONTENT_TYPE)
        if isinstance(content, RemoteAudioUrl):
            self._log.info("audio_url_fetch", url=content.url)
            resp = await self._upstream.fetch_audio_url(content.url)
            content_type = resp.headers.get("content-type") or DEFAULT_AUDIO_CONTENT_TYPE
            return NormalizedAudio(data=resp.content, content_type=content_type)

        self._log.error("unexpected_format", reason="no_audio_in_envelope", body=_preview(reply.body))
        raise UnexpectedFormat()


def _preview(body: Optional[bytes], limit: int = 300) -> str:
    if not body:
        return ""
    return body[:limit].decode("utf-8", errors="replace")


def build_proxy(settings: AppSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> SynthesisProxy:
    upstream = UpstreamClient(
        url=settings.upstream.url,
        api_key=settings.upstream.api_key,
        customer_id=settings.upstream.customer_id,
        timeout_seconds=settings.upstream.timeout_seconds,
        transport=transport,
    )
    return SynthesisProxy(upstream=upstream, settings=settings.synthesis, model=settings.upstream.model)
