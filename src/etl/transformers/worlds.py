from typing import Any

from src.etl.interfaces import RawRecord
from src.etl.transformers.base import (
    Entity,
    Transformer,
    attachment_url,
    require,
    require_text,
    text_or_none,
)
from src.etl.transformers.fields import WORLD_FIELDS, WORLD_KEYWORD_FIELDS

ASSET_BASE = "https://cdn-world.ahhaohho.com"

OVERVIEW_BG_IMAGE = f"{ASSET_BASE}/sampleAsset/world-map-bg.jpeg"
OVERVIEW_BG_GALLERY = f"{ASSET_BASE}/sampleAsset/world-postit.png"

DEFAULT_MAIN_ASSETS: dict[str, str] = {
    "back": f"{ASSET_BASE}/worldData/xUuW1JkPWi2OQJkA4U2UZHtSYWTKguS6edGzxp2nBeo",
    "middle": f"{ASSET_BASE}/worldData/1gzoMeI5n6E9JOdO3gTXhpl4sIljYkhTBMTq8_mUEjs",
    "front": f"{ASSET_BASE}/worldData/lKRvavWxKdwL7njs9WAzyY1bIJqtGTuKNkDrV3_V-MQ",
}

ANIMATION_ASSETS: list[str] = [
    f"{ASSET_BASE}/sampleAsset/BlowingLeaf.png",
    f"{ASSET_BASE}/sampleAsset/CloudSmall.png",
    f"{ASSET_BASE}/sampleAsset/CloudLarge.png",
    f"{ASSET_BASE}/sampleAsset/Tree.png",
]


def _creator_names(value: Any) -> list[str]:
    if isinstance(value, list):
        return [name.strip() for name in value if isinstance(name, str) and name.strip()]
    name = text_or_none(value)
    return [name] if name else []


class WorldTransformer(Transformer):
    """월드 레코드 변환기. 필수: 월드명"""

    name = "worlds"

    def build(self, raw: RawRecord) -> Entity:
        f = WORLD_FIELDS
        groups = raw.get(f["groups"])

        return {
            "worldIdx": require(raw, "id"),
            "title": require_text(raw, f["title"], "title"),
            "description": text_or_none(raw.get(f["description"])),
            "keywords": [
                raw[column] for column in WORLD_KEYWORD_FIELDS if raw.get(column)
            ],
            "creatorName": _creator_names(raw.get(f["creators"])),
            "groupIdxs": groups if isinstance(groups, list) else [],
            "overview": {
                "leadSentence": text_or_none(raw.get(f["lead_sentence"])),
                "bgImage": OVERVIEW_BG_IMAGE,
                "bgGallery": OVERVIEW_BG_GALLERY,
            },
            "worldImage": {
                "type": "image",
                "defaultUrl": attachment_url(raw.get(f["intro_media"])),
                "sound": None,
                "mainAssets": {
                    slot: attachment_url(raw.get(f[f"asset_{slot}"])) or default
                    for slot, default in DEFAULT_MAIN_ASSETS.items()
                },
                "animationAssets": list(ANIMATION_ASSETS),
            },
        }
