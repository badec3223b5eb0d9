from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    gender: str
    accent: str
    description: str


# Voices the upstream provider accepts by id.
VOICES: tuple[Voice, ...] = (
    Voice("rachel", "Rachel", "female", "American", "Warm, professional voice perfect for narrations"),
    Voice("domi", "Domi", "female", "American", "Strong, confident voice with clear articulation"),
    Voice("bella", "Bella", "female", "American", "Soft, gentle voice ideal for storytelling"),
    Voice("antoni", "Antoni", "male", "American", "Deep, authoritative voice for professional content"),
    Voice("elli", "Elli", "female", "American", "Young, energetic voice with natural flow"),
    Voice("josh", "Josh", "male", "American", "Friendly, conversational voice for casual content"),
    Voice("arnold", "Arnold", "male", "American", "Mature, distinguished voice for formal presentations"),
    Voice("adam", "Adam", "male", "American", "Clear, reliable voice for educational content"),
    Voice("sam", "Sam", "male", "American", "Versatile voice suitable for various content types"),
)

PREVIEW_SAMPLE_TEXT = "Hello! This is a voice preview sample."


def supported_voice_ids() -> List[str]:
    return [v.id for v in VOICES]


def find_voice(voice_id: str) -> Optional[Voice]:
    for v in VOICES:
        if v.id == voice_id:
            return v
    return None


def catalog() -> List[Dict[str, Any]]:
    return [asdict(v) for v in VOICES]
