import base64
import json
from typing import Callable, List

import httpx
import pytest

from voice_proxy.config import SynthesisSettings
from voice_proxy.core.errors import (
    EmptyAudio,
    ErrorKind,
    InternalError,
    InvalidInput,
    UnexpectedFormat,
    UpstreamError,
)
from voice_proxy.core.types import SynthesisRequest, VoiceSettings
from voice_proxy.integrations.upstream import UpstreamClient
from voice_proxy.proxy import SynthesisProxy

UPSTREAM_URL = "https://upstream.test/chat/completions"


def _proxy(handler: Callable[[httpx.Request], httpx.Response], *, api_key: str = "test-key") -> SynthesisProxy:
    upstream = UpstreamClient(
        url=UPSTREAM_URL,
        api_key=api_key,
        customer_id="cus_test",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )
    return SynthesisProxy(
        upstream=upstream,
        settings=SynthesisSettings(),
        model="elevenlabs/eleven-multilingual-v2",
    )


def _completion(content: object) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _sent_params(request: httpx.Request) -> dict:
    payload = json.loads(request.content)
    return json.loads(payload["messages"][0]["content"])


@pytest.mark.asyncio
async def test_audio_response_is_passed_through_unchanged() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=b"\x01\x02\x03")

    req = SynthesisRequest(
        text="Hello",
        voice_settings=VoiceSettings(voice_id="rachel", stability=0, similarity_boost=0),
    )
    audio = await _proxy(handler).synthesize(req)

    assert audio.data == b"\x01\x02\x03"
    assert audio.content_type == "audio/mpeg"
    assert audio.content_length == 3

    assert len(seen) == 1
    sent = seen[0]
    assert sent.method == "POST"
    assert str(sent.url) == UPSTREAM_URL
    assert sent.headers["authorization"] == "Bearer test-key"
    assert sent.headers["customerid"] == "cus_test"

    # Explicit zeros are forwarded, not replaced by defaults.
    params = _sent_params(sent)
    assert params["text"] == "Hello"
    assert params["voice"] == "rachel"
    assert params["voice_settings"]["stability"] == 0
    assert params["voice_settings"]["similarity_boost"] == 0


@pytest.mark.asyncio
async def test_declared_audio_content_type_is_kept() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "audio/wav"}, content=b"RIFF")

    audio = await _proxy(handler).synthesize(SynthesisRequest(text="Hi"))
    assert audio.content_type == "audio/wav"
    assert audio.data == b"RIFF"


@pytest.mark.asyncio
async def test_absent_settings_use_defaults() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=b"x")

    await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))

    payload = json.loads(seen[0].content)
    assert payload["model"] == "elevenlabs/eleven-multilingual-v2"
    assert payload["temperature"] == 0.1
    assert payload["max_tokens"] == 1000
    assert payload["messages"][0]["role"] == "user"

    params = _sent_params(seen[0])
    assert params["voice"] == "rachel"
    assert params["model_id"] == "eleven_multilingual_v2"
    assert params["voice_settings"] == {
        "stability": 0.75,
        "similarity_boost": 0.75,
        "style": 0.0,
        "use_speaker_boost": True,
    }


@pytest.mark.asyncio
async def test_data_uri_content_is_base64_decoded() -> None:
    raw = bytes(range(256))
    encoded = base64.b64encode(raw).decode("ascii")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("data:audio/mpeg;base64," + encoded))

    audio = await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert audio.data == raw
    assert audio.content_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_audio_url_content_is_fetched() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "cdn.test":
            assert request.method == "GET"
            return httpx.Response(200, headers={"content-type": "audio/ogg"}, content=b"OggS")
        return httpx.Response(200, json=_completion("https://cdn.test/a.ogg"))

    audio = await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert audio.data == b"OggS"
    assert audio.content_type == "audio/ogg"


@pytest.mark.asyncio
async def test_audio_url_without_content_type_defaults_to_mpeg() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "cdn.test":
            return httpx.Response(200, content=b"ID3")
        return httpx.Response(200, json=_completion("https://cdn.test/a.mp3"))

    audio = await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert audio.data == b"ID3"
    assert audio.content_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_failed_audio_url_fetch_is_unexpected_format() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "example.com":
            return httpx.Response(404, text="not found")
        return httpx.Response(200, json=_completion("https://example.com/a.mp3"))

    with pytest.raises(UnexpectedFormat) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert exc.value.kind == ErrorKind.UNEXPECTED_FORMAT
    assert exc.value.http_status == 500


@pytest.mark.asyncio
async def test_audio_url_timeout_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "cdn.test":
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json=_completion("https://cdn.test/a.mp3"))

    with pytest.raises(UpstreamError):
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))


@pytest.mark.asyncio
async def test_json_without_audio_is_unexpected_format() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("Sorry, I can't do that."))

    with pytest.raises(UnexpectedFormat) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert exc.value.message == "Unexpected response format from voice API"


@pytest.mark.asyncio
async def test_json_without_choices_is_unexpected_format() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": {"message": "internal detail"}})

    with pytest.raises(UnexpectedFormat) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert "internal detail" not in exc.value.message


@pytest.mark.asyncio
async def test_unparsable_json_is_unexpected_format() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "application/json"}, content=b"{not json")

    with pytest.raises(UnexpectedFormat):
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))


@pytest.mark.asyncio
async def test_data_uri_without_comma_is_unexpected_format() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("data:audio/mpeg;base64"))

    with pytest.raises(UnexpectedFormat):
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))


@pytest.mark.asyncio
async def test_unknown_content_type_with_empty_body_is_empty_audio() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "application/octet-stream"}, content=b"")

    with pytest.raises(EmptyAudio) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert exc.value.kind == ErrorKind.EMPTY_AUDIO


@pytest.mark.asyncio
async def test_unknown_content_type_with_body_is_treated_as_mpeg() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "text/plain"}, content=b"\xff\xfb\x90")

    audio = await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert audio.data == b"\xff\xfb\x90"
    assert audio.content_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_non_success_status_is_upstream_error_without_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="secret stack trace")

    with pytest.raises(UpstreamError) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    err = exc.value
    assert err.status_code == 503
    assert err.status_text == "Service Unavailable"
    assert err.message == "Voice generation failed: 503 Service Unavailable"
    assert "secret" not in err.message


@pytest.mark.asyncio
async def test_timeout_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(UpstreamError) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert exc.value.status_code is None


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_request() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=b"x")

    with pytest.raises(UpstreamError):
        await _proxy(handler, api_key="").synthesize(SynthesisRequest(text="Hello"))
    assert seen == []


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("boom")

    with pytest.raises(InternalError) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))
    assert exc.value.message == "Internal server error during voice generation"


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
async def test_blank_text_is_invalid_input(text: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("upstream must not be called")

    with pytest.raises(InvalidInput) as exc:
        await _proxy(handler).synthesize(SynthesisRequest(text=text, is_preview=True))
    assert exc.value.http_status == 400
    assert exc.value.message == "Text is required"


@pytest.mark.asyncio
async def test_long_text_is_rejected_unless_preview() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=b"x")

    proxy = _proxy(handler)
    text = "abcdefghij" * 501

    with pytest.raises(InvalidInput) as exc:
        await proxy.synthesize(SynthesisRequest(text=text))
    assert exc.value.message == "Text too long. Maximum 5000 characters allowed."
    assert seen == []

    await proxy.synthesize(SynthesisRequest(text=text, is_preview=True))
    assert _sent_params(seen[0])["text"] == text[:100]


def test_prepare_text_limits() -> None:
    proxy = _proxy(lambda request: httpx.Response(500))

    exact = "a" * 5000
    assert proxy.prepare_text(SynthesisRequest(text=exact)) == exact
    assert proxy.prepare_text(SynthesisRequest(text="short", is_preview=True)) == "short"
    with pytest.raises(InvalidInput):
        proxy.prepare_text(SynthesisRequest(text=exact + "a"))


@pytest.mark.asyncio
async def test_data_uri_with_non_base64_characters_is_unexpected_format() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("data:audio/mpeg;base64,AA-AA*"))

    with pytest.raises(UnexpectedFormat):
        await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))


@pytest.mark.asyncio
async def test_upstream_redirect_is_followed() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/chat/completions":
            return httpx.Response(307, headers={"location": "https://upstream.test/v2/chat/completions"})
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=b"\x01\x02")

    audio = await _proxy(handler).synthesize(SynthesisRequest(text="Hello"))

    assert audio.data == b"\x01\x02"
    assert [r.url.path for r in seen] == ["/chat/completions", "/v2/chat/completions"]
    # 307 keeps the method and body.
    assert seen[1].method == "POST"
    assert _sent_params(seen[1])["text"] == "Hello"
