from src.etl.exceptions import RequiredFieldError
from src.etl.interfaces import RawRecord
from src.etl.transformers.base import Entity, Transformer, first_attachment, require
from src.etl.transformers.fields import (
    MATERIAL_FIELDS,
    MATERIAL_TIP_COUNT,
    MATERIAL_TIP_FIELDS,
)


class MaterialsTransformer(Transformer):
    """준비물(재료) 레코드 변환기. 필수: id, 재료명"""

    name = "materials"

    def build(self, raw: RawRecord) -> Entity:
        material = require(raw, MATERIAL_FIELDS["material"], "material")
        if not isinstance(material, str):
            raise RequiredFieldError("material", raw.get("id"))

        image = first_attachment(raw.get(MATERIAL_FIELDS["image"]))
        large = ((image or {}).get("thumbnails") or {}).get("large") or {}

        return {
            "id": require(raw, "id"),
            "material": material.strip(),
            "materialImage": large.get("url"),
            "materialTips": self._tips(raw),
        }

    @staticmethod
    def _tips(raw: RawRecord) -> list[Entity]:
        """설명이 있는 팁만 포함합니다. 이미지가 여러 장이면 이미지마다 항목을 만듭니다."""
        tips: list[Entity] = []
        for i in range(1, MATERIAL_TIP_COUNT + 1):
            tip = raw.get(MATERIAL_TIP_FIELDS["tip"].format(i=i))
            if not tip:
                continue
            images = raw.get(MATERIAL_TIP_FIELDS["images"].format(i=i))
            urls = [
                attachment["url"]
                for attachment in images or []
                if isinstance(attachment, dict) and attachment.get("url")
            ]
            if urls:
                tips.extend({"imageUrl": url, "tip": tip} for url in urls)
            else:
                tips.append({"imageUrl": None, "tip": tip})
        return tips
