from typing import Any

from loguru import logger

from src.etl.exceptions import RequiredFieldError
from src.etl.interfaces import RawRecord
from src.etl.transformers.base import (
    Entity,
    Transformer,
    fold_thumbnails,
    first_item,
    is_blank,
    media_block,
    normalize_level,
    require,
    require_value,
)
from src.etl.transformers.fields import (
    CONTENTS_FIELDS,
    CONTENTS_FIRST_GUIDE_FIELDS,
    CONTENTS_GUIDE_COUNT,
    CONTENTS_GUIDE_FIELDS,
    CONTENTS_TIP_COUNT,
    CONTENTS_TIP_FIELDS,
)

DEFAULT_ACTIVE_PLAN = "이 활동에 대한 설명이 곧 제공될 예정입니다. 기대해 주세요!"
DEFAULT_ESSENTIAL_INFO = "기본 필수 정보"


def _platform(attachment: dict[str, Any]) -> str | None:
    """파일명에 aos/ios가 포함되면 해당 플랫폼 슬롯으로 보냅니다."""
    filename = (attachment.get("filename") or "").lower()
    if "aos" in filename:
        return "aos"
    if "ios" in filename:
        return "ios"
    return None


def _list_or_empty(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _playtime(value: Any, raw: RawRecord) -> float:
    """예상 소요시간(분). 비어있으면 0, 숫자가 아니면 레코드를 제외합니다."""
    if is_blank(value):
        return 0
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise RequiredFieldError("playtime", raw.get("id")) from e


def guide_column(key: str, index: int) -> str:
    if index == 1 and key in CONTENTS_FIRST_GUIDE_FIELDS:
        return CONTENTS_FIRST_GUIDE_FIELDS[key]
    return CONTENTS_GUIDE_FIELDS[key].format(i=index)


class ContentsTransformer(Transformer):
    """
    챌린지 콘텐츠(액티비티) 레코드를 크리에이터 등록 API 스키마로 변환합니다.

    필수: title, createrName, thumbnail, categoryMain, categorySub, leadSentence,
    aiPrompt, postingGuide, activeGuide(1개 이상)
    """

    name = "contents"

    def build(self, raw: RawRecord) -> Entity:
        f = CONTENTS_FIELDS
        record_id = raw.get("id")
        sound = raw.get(f["thumbnail_sound"]) or False

        thumbnail = media_block(
            first_item(raw.get(f["thumbnail"])), sound=sound, keep_mime=True
        )

        return {
            "title": require(raw, f["title"], "title"),
            "index": require(raw, "id", "index"),
            "level": normalize_level(raw.get(f["level"]), record_id),
            "sound": sound,
            "createrName": require_value(
                first_item(raw.get(f["creator"])), "createrName", raw
            ),
            "thumbnail": require_value(thumbnail, "thumbnail", raw),
            "categoryMain": require_value(
                first_item(raw.get(f["category_main"])), "categoryMain", raw
            ),
            "categorySub": require_value(
                first_item(raw.get(f["category_sub"])), "categorySub", raw
            ),
            "activePlan": raw.get(f["active_plan"]) or DEFAULT_ACTIVE_PLAN,
            "essentialInfo": raw.get(f["essential_info"]) or DEFAULT_ESSENTIAL_INFO,
            "leadSentence": require(raw, f["lead_sentence"], "leadSentence"),
            "aiPrompt": require(raw, f["ai_prompt"], "aiPrompt"),
            "playtime": _playtime(raw.get(f["playtime"]), raw),
            "materials": _list_or_empty(raw.get(f["materials"])),
            "preparationTip": self._preparation_tips(raw),
            "postingGuide": require_value(
                first_item(raw.get(f["posting_guide"])), "postingGuide", raw
            ),
            "recommendation": _list_or_empty(raw.get(f["recommendation"])),
            "activeGuide": require_value(self._active_guides(raw), "activeGuide", raw),
        }

    @staticmethod
    def _preparation_tips(raw: RawRecord) -> list[Entity]:
        tips: list[Entity] = []
        for i in range(1, CONTENTS_TIP_COUNT + 1):
            attachment = first_item(raw.get(CONTENTS_TIP_FIELDS["media"].format(i=i)))
            if not attachment:
                continue
            tips.append(
                {
                    "mediaUrl": media_block(attachment, keep_mime=True),
                    "comment": raw.get(CONTENTS_TIP_FIELDS["comment"].format(i=i)) or None,
                }
            )
        return tips

    @staticmethod
    def _active_guides(raw: RawRecord) -> list[Entity]:
        """
        활동 가이드 1~9를 순서대로 펼칩니다. 이미지가 있는 그룹만 포함됩니다.

        aos/ios 파일명은 플랫폼 슬롯으로, 나머지는 defaultUrl로 들어가며
        defaultUrl이 비면 aos → ios 순으로 채웁니다.
        """
        portrait = raw.get(CONTENTS_FIELDS["guide_portrait"])
        guides: list[Entity] = []

        for i in range(1, CONTENTS_GUIDE_COUNT + 1):
            column = _list_or_empty(raw.get(guide_column("media", i)))
            medias = [m for m in column if isinstance(m, dict)]
            if not medias:
                continue

            media_url: Entity = {
                "aos": None,
                "ios": None,
                "defaultUrl": None,
                "type": medias[0].get("type"),
                "portrait": portrait,
                "sound": raw.get(guide_column("sound", i)),
                "thumbnail": fold_thumbnails(None),
            }
            for attachment in medias:
                if not attachment.get("url"):
                    continue
                slot = _platform(attachment) or "defaultUrl"
                media_url[slot] = attachment["url"]
                if attachment.get("thumbnails"):
                    media_url["thumbnail"] = fold_thumbnails(attachment["thumbnails"])

            media_url["defaultUrl"] = (
                media_url["defaultUrl"] or media_url["aos"] or media_url["ios"]
            )
            if not media_url["defaultUrl"]:
                logger.warning(f"레코드 {raw.get('id')}의 활동 가이드 {i}에 유효한 URL 없음")
                continue

            guides.append(
                {
                    "mediaUrl": media_url,
                    "guide": raw.get(guide_column("guide", i)) or "",
                    "tip": raw.get(guide_column("tip", i)) or None,
                }
            )
        return guides
