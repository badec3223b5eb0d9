from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_AUDIO_CONTENT_TYPE = "audio/mpeg"


@dataclass(frozen=True)
class VoiceSettings:
    # None means "not provided"; defaults are applied when building the upstream payload.
    voice_id: Optional[str] = None
    stability: Optional[float] = None
    similarity_boost: Optional[float] = None


@dataclass(frozen=True)
class SynthesisRequest:
    text: str
    voice_settings: VoiceSettings = field(default_factory=VoiceSettings)
    is_preview: bool = False


@dataclass(frozen=True)
class NormalizedAudio:
    data: bytes
    content_type: str = DEFAULT_AUDIO_CONTENT_TYPE

    @property
    def content_length(self) -> int:
        return len(self.data)
