from src.etl.interfaces import RawRecord
from src.etl.transformers.base import (
    Entity,
    Transformer,
    require,
    require_value,
    text_or_none,
)
from src.etl.transformers.fields import POSTING_GUIDE_FIELDS, WORLD_POST_GUIDE_FIELDS

# 콘텐츠가 연결되지 않은 포스팅에 쓰이는 기본 가이드
NO_CONTENTS_GUIDE: Entity = {
    "_id": "nocontents",
    "guides": {
        "mediaGuide": "생김새나 작동하는 모습이 잘 보이는 사진이나 영상을 올려줘.",
        "titleGuide": "핵심 키워드나 특징을 담은 제목을 지어줘. 간결할 수록 좋아.",
        "descGuide": "생김새나 작동법, 작업하면서 든 고민이나 새롭게 알게된 것을 적어줘.",
    },
}


class PostingGuideTransformer(Transformer):
    """챌린지 포스팅 가이드 변환기. 결과 목록 끝에 `nocontents` 기본 가이드를 추가합니다."""

    name = "posting_guides"

    def build(self, raw: RawRecord) -> Entity:
        f = POSTING_GUIDE_FIELDS
        return {
            "_id": require(raw, "id"),
            "guides": {
                "mediaGuide": raw.get(f["media_guide"]),
                "titleGuide": raw.get(f["title_guide"]),
                "descGuide": raw.get(f["desc_guide"]),
            },
        }

    def transform_many(self, records: list[RawRecord]) -> list[Entity]:
        entities = super().transform_many(records)
        entities.append(
            {"_id": NO_CONTENTS_GUIDE["_id"], "guides": dict(NO_CONTENTS_GUIDE["guides"])}
        )
        return entities


class WorldPostGuideTransformer(Transformer):
    """
    월드 포스트 가이드 변환기.

    aiPrompt는 값이 있을 때만, guides는 mediaGuide/descGuide 중 하나라도 있을 때만 포함합니다.
    """

    name = "world_post_guides"

    def build(self, raw: RawRecord) -> Entity:
        f = WORLD_POST_GUIDE_FIELDS
        require(raw, "id")

        challenge = raw.get(f["challenge"])
        if isinstance(challenge, list):
            challenge = challenge[0] if challenge else None

        entity: Entity = {"challengeId": require_value(challenge, "challengeId", raw)}

        ai_prompt = text_or_none(raw.get(f["ai_prompt"]))
        if ai_prompt:
            entity["aiPrompt"] = ai_prompt

        media_guide = text_or_none(raw.get(f["media_guide"]))
        desc_guide = text_or_none(raw.get(f["desc_guide"]))
        if media_guide or desc_guide:
            entity["guides"] = {"mediaGuide": media_guide, "descGuide": desc_guide}

        return entity
