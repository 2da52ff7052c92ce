from src.etl.interfaces import RawRecord
from src.etl.transformers.base import (
    Entity,
    Transformer,
    first_attachment,
    media_block,
    normalize_level,
    require,
    require_text,
    text_or_none,
)
from src.etl.transformers.fields import CHALLENGE_CHECKLIST_FIELDS, CHALLENGE_FIELDS


class ChallengeTransformer(Transformer):
    """월드 챌린지 소개 레코드 변환기. 필수: 챌린지명, 챌린지 소개 텍스트"""

    name = "challenges"

    def build(self, raw: RawRecord) -> Entity:
        f = CHALLENGE_FIELDS
        guides = raw.get(f["activity_guides"])

        return {
            "title": require_text(raw, f["title"], "title"),
            "challengeIdx": require(raw, "id"),
            "description": require_text(raw, f["description"], "description"),
            "level": normalize_level(raw.get(f["level"]), raw.get("id")),
            "media": media_block(first_attachment(raw.get(f["thumbnail"]))),
            "categoryMain": text_or_none(raw.get(f["category_main"])),
            "categorySub": text_or_none(raw.get(f["category_sub"])),
            "checklist": [
                raw[column] for column in CHALLENGE_CHECKLIST_FIELDS if raw.get(column)
            ],
            "activityGuideIdxs": guides if isinstance(guides, list) else [],
        }
