from src.etl.interfaces import RawRecord
from src.etl.transformers.base import Entity, Transformer, first_item, require, require_text
from src.etl.transformers.fields import GROUP_FIELDS

GROUP_BADGE = "https://cdn-world.ahhaohho.com/sampleAsset/world-badge.svg"


class GroupTransformer(Transformer):
    """월드 그룹 레코드 변환기. 필수: 그룹명"""

    name = "groups"

    def build(self, raw: RawRecord) -> Entity:
        f = GROUP_FIELDS
        challenges = raw.get(f["challenges"])

        return {
            "title": require_text(raw, f["title"], "title"),
            "groupIdx": require(raw, "id"),
            "order": raw.get(f["order"]),
            "openChatIdxs": first_item(raw.get(f["open_chats"])),
            "badge": GROUP_BADGE,
            "challengeIdxs": [c for c in challenges if c] if isinstance(challenges, list) else [],
        }
