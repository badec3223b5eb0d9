from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx

from voice_proxy.config import SynthesisSettings
from voice_proxy.core.errors import UnexpectedFormat, UpstreamError
from voice_proxy.core.logging import get_logger
from voice_proxy.core.types import VoiceSettings

PROVIDER_MODEL_ID = "eleven_multilingual_v2"


def build_upstream_payload(
    *,
    text: str,
    voice_settings: VoiceSettings,
    model: str,
    defaults: SynthesisSettings,
) -> Dict[str, Any]:
    """
    Wrap the synthesis parameters in the chat-completions envelope the provider expects.

    Defaults apply only when a field is absent (None); an explicit 0 is forwarded.
    """
    voice = voice_settings.voice_id or defaults.default_voice
    stability = voice_settings.stability
    if stability is None:
        stability = defaults.default_stability
    similarity_boost = voice_settings.similarity_boost
    if similarity_boost is None:
        similarity_boost = defaults.default_similarity_boost

    synthesis_params: Dict[str, Any] = {
        "text": text,
        "voice": voice,
        "model_id": PROVIDER_MODEL_ID,
        "voice_settings": {
            "stability": stability,
            "similarity_boost": similarity_boost,
            "style": 0.0,
            "use_speaker_boost": True,
        },
        "pronunciation_dictionary_locators": [],
        "seed": None,
        "previous_text": None,
        "next_text": None,
        "previous_request_ids": [],
        "next_request_ids": [],
    }
    return {
        "model": model,
        "messages": [
            {"role": "user", "content": json.dumps(synthesis_params)},
        ],
        # Low randomness: the completion interface is repurposed for audio.
        "max_tokens": 1000,
        "temperature": 0.1,
    }


class UpstreamClient:
    """
    Outbound HTTP to the speech provider: one POST per synthesis, plus an optional
    GET when the provider answers with a link to the audio instead of the audio.
    """

    def __init__(
        self,
        *,
        url: str,
        api_key: Optional[str],
        customer_id: Optional[str],
        timeout_seconds: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._customer_id = customer_id
        self._timeout = timeout_seconds
        self._transport = transport
        self._log = get_logger(component="upstream")

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    @property
    def url(self) -> str:
        return self._url

    async def post_payload(self, payload: Dict[str, Any]) -> httpx.Response:
        if not self._api_key:
            self._log.error("upstream_not_configured", hint="Set VOICE_UPSTREAM_API_KEY")
            raise UpstreamError(None, "upstream not configured")

        headers: Dict[str, str] = {
            "Authorization": "Bearer %s" % (self._api_key,),
            "content-type": "application/json",
        }
        if self._customer_id:
            headers["CustomerId"] = self._customer_id

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, follow_redirects=True
        ) as client:
            try:
                resp = await client.post(self._url, json=payload, headers=headers)
            except httpx.TimeoutException as e:
                self._log.error("upstream_transport_error", error=type(e).__name__, url=self._url)
                raise UpstreamError(None, "upstream timed out") from e
            except httpx.RequestError as e:
                # DNS/TLS/connect errors
                self._log.error("upstream_transport_error", error="%s: %s" % (type(e).__name__, e), url=self._url)
                raise UpstreamError(None, "upstream unreachable") from e

        if resp.is_success:
            return resp

        # Keep the provider's error body in the logs only.
        body = ""
        try:
            body = resp.text
        except Exception:
            body = ""
        self._log.error(
            "upstream_error",
            status_code=resp.status_code,
            reason=resp.reason_phrase,
            body=body[:500],
        )
        raise UpstreamError(resp.status_code, resp.reason_phrase)

    async def fetch_audio_url(self, url: str) -> httpx.Response:
        """
        GET a provider-hosted audio file. A timeout is an upstream failure; any other
        failure means the link did not lead to audio.
        """
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, follow_redirects=True
        ) as client:
            try:
                resp = await client.get(url)
            except httpx.TimeoutException as e:
                self._log.error("audio_url_fetch_failed", error=type(e).__name__, url=url)
                raise UpstreamError(None, "upstream timed out") from e
            except httpx.RequestError as e:
                self._log.error("audio_url_fetch_failed", error="%s: %s" % (type(e).__name__, e), url=url)
                raise UnexpectedFormat() from e

        if not resp.is_success:
            self._log.error("audio_url_fetch_failed", status_code=resp.status_code, url=url)
            raise UnexpectedFormat()
        return resp
