from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_quotes(s: str) -> str:
    s = (s or "").strip()
    if len(s) >= 2 and ((s[0] == s[-1]) and s[0] in ("'", '"')):
        s = s[1:-1].strip()
    return s


def _env_files() -> tuple[str, str]:
    """
    Allow running CLI commands from subdirectories (e.g. /workspace/scripts).
    We first check for a local .env, then fall back to the repo-root .env.
    """
    repo_root_env = str(Path(__file__).resolve().parents[2] / ".env")
    return (".env", repo_root_env)


class UpstreamSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Chat-completions style endpoint that answers with audio in one of several shapes.
    url: str = Field(default="https://oi-server.onrender.com/chat/completions", alias="VOICE_UPSTREAM_URL")
    api_key: Optional[str] = Field(default=None, alias="VOICE_UPSTREAM_API_KEY")
    customer_id: Optional[str] = Field(default=None, alias="VOICE_UPSTREAM_CUSTOMER_ID")
    model: str = Field(default="elevenlabs/eleven-multilingual-v2", alias="VOICE_UPSTREAM_MODEL")
    timeout_seconds: float = Field(default=60, alias="VOICE_UPSTREAM_TIMEOUT_SECONDS")

    @field_validator("url", mode="before")
    @classmethod
    def _normalize_url(cls, v: object) -> str:
        return _strip_quotes(str(v)).rstrip("/")

    @field_validator("model", mode="before")
    @classmethod
    def _norm_str(cls, v: object) -> str:
        return _strip_quotes(str(v)).strip()

    @field_validator("api_key", "customer_id", mode="before")
    @classmethod
    def _norm_opt(cls, v: object) -> Optional[str]:
        if v is None:
            return None
        s = _strip_quotes(str(v)).strip()
        return s or None


class SynthesisSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    max_text_chars: int = Field(default=5000, alias="VOICE_MAX_TEXT_CHARS")
    preview_max_chars: int = Field(default=100, alias="VOICE_PREVIEW_MAX_CHARS")
    default_voice: str = Field(default="rachel", alias="VOICE_DEFAULT_VOICE")
    default_stability: float = Field(default=0.75, alias="VOICE_DEFAULT_STABILITY")
    default_similarity_boost: float = Field(default=0.75, alias="VOICE_DEFAULT_SIMILARITY_BOOST")

    @field_validator("default_voice", mode="before")
    @classmethod
    def _norm_voice(cls, v: object) -> str:
        return _strip_quotes(str(v)).strip()


class ServerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    bind_host: str = Field(default="127.0.0.1", alias="VOICE_SERVER_BIND_HOST")
    port: int = Field(default=8001, alias="VOICE_SERVER_PORT")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    name: str = Field(default="voice-proxy", alias="VOICE_PROXY_NAME")
    log_level: str = Field(default="INFO", alias="VOICE_PROXY_LOG_LEVEL")

    upstream: UpstreamSettings = UpstreamSettings()
    synthesis: SynthesisSettings = SynthesisSettings()
    server: ServerSettings = ServerSettings()
