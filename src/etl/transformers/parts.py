from typing import Any

from src.etl.interfaces import RawRecord
from src.etl.transformers.base import Entity, Transformer, attachment_url, require_value
from src.etl.transformers.fields import PARTS_FIELDS

PARTS_GROUPS = ("spatial", "creative", "social")


def _pick(raw: RawRecord, canonical: str, default: Any = None) -> Any:
    """한글 컬럼을 우선하고, 없으면 이미 변환된 영문 키를 사용합니다."""
    value = raw.get(PARTS_FIELDS[canonical])
    if value in (None, ""):
        value = raw.get(canonical)
    return default if value in (None, "") else value


class PartsTransformer(Transformer):
    """
    아바타 파츠 레코드를 문서 저장소 스키마로 변환합니다.

    assetUrl 우선순위: 이미지 > Assets > assetUrl > url
    """

    name = "parts"

    def build(self, raw: RawRecord) -> Entity:
        group = _pick(raw, "group", "spatial")
        if group not in PARTS_GROUPS:
            group = "spatial"

        try:
            sequence = int(float(_pick(raw, "sequence", 0)))
        except (TypeError, ValueError):
            sequence = 0

        return {
            "name": require_value(_pick(raw, "name", ""), "name", raw),
            "spec": {
                "group": group,
                "type": _pick(raw, "type", "object"),
                "color": _pick(raw, "color"),
                "category": _pick(raw, "category"),
            },
            "sequence": sequence,
            "tracking": bool(_pick(raw, "tracking", False)),
            "assetUrl": self._asset_url(raw),
        }

    @staticmethod
    def _asset_url(raw: RawRecord) -> str:
        return (
            attachment_url(raw.get(PARTS_FIELDS["image"]))
            or attachment_url(raw.get(PARTS_FIELDS["assets"]))
            or raw.get("assetUrl")
            or raw.get("url")
            or ""
        )
