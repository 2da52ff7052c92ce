import re
from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from src.etl.constants import (
    AIRTABLE_THUMBNAIL_TIERS,
    MESSAGE_DELIMITERS,
    THUMBNAIL_TIERS,
    TIER_FALLBACK,
)
from src.etl.exceptions import RequiredFieldError
from src.etl.interfaces import RawRecord

Entity = dict[str, Any]

_DELIMITER_PATTERN = re.compile("|".join(re.escape(d) for d in MESSAGE_DELIMITERS))


class Transformer(ABC):
    """
    목적지별 레코드 변환기 베이스 클래스.

    서브클래스는 `build()`만 구현합니다. 필수 필드가 없으면 `RequiredFieldError`를
    던지고, `transform()`이 이를 잡아 경고 로그 후 None을 반환합니다.
    컬럼 타입이 바뀌어 값의 형태가 예상과 다른 레코드도 로그 후 제외됩니다.
    """

    name: str = "entity"

    @abstractmethod
    def build(self, raw: RawRecord) -> Entity:
        """
        레코드 하나를 목적지 스키마로 변환합니다.

        Args:
            raw (RawRecord): 스냅샷의 원본 레코드.

        Returns:
            Entity: 변환된 엔티티.

        Raises:
            RequiredFieldError: 필수 필드가 없을 때.
        """
        raise NotImplementedError
        return {}

    def transform(self, raw: RawRecord) -> Entity | None:
        try:
            return self.build(raw)
        except RequiredFieldError as e:
            logger.warning(f"[{self.name}] 레코드 {raw.get('id')} 제외: {e}")
            return None
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            logger.error(
                f"[{self.name}] 레코드 {raw.get('id')} 값 형식 오류로 제외: "
                f"{type(e).__name__}: {e}"
            )
            return None

    def transform_many(self, records: list[RawRecord]) -> list[Entity]:
        """변환에 실패한 레코드를 제외한 엔티티 목록을 입력 순서대로 반환합니다."""
        entities = [
            entity for entity in (self.transform(r) for r in records) if entity is not None
        ]
        logger.info(f"[{self.name}] {len(entities)}/{len(records)}개 레코드 변환 완료")
        return entities


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def require(raw: RawRecord, column: str, canonical: str | None = None) -> Any:
    """
    필수 컬럼 값을 반환합니다.

    Raises:
        RequiredFieldError: 값이 없거나 비어있을 때.
    """
    value = raw.get(column)
    if is_blank(value):
        raise RequiredFieldError(canonical or column, raw.get("id"))
    return value


def require_text(raw: RawRecord, column: str, canonical: str | None = None) -> str:
    """필수 텍스트 컬럼 값을 공백 제거하여 반환합니다."""
    value = require(raw, column, canonical)
    if not isinstance(value, str):
        raise RequiredFieldError(canonical or column, raw.get("id"))
    return value.strip()


def require_value(value: Any, canonical: str, raw: RawRecord) -> Any:
    """이미 계산된 값에 대한 필수 검사."""
    if is_blank(value):
        raise RequiredFieldError(canonical, raw.get("id"))
    return value


def text_or_none(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def first_item(value: Any) -> Any:
    """Airtable 링크/다중선택 필드의 첫 값. 리스트가 아니면 None."""
    if isinstance(value, list) and value:
        return value[0]
    return None


def first_attachment(value: Any) -> dict[str, Any] | None:
    """첨부파일 필드에서 URL이 있는 첫 번째 첨부파일을 반환합니다."""
    if not isinstance(value, list):
        return None
    for attachment in value:
        if isinstance(attachment, dict) and attachment.get("url"):
            return attachment
    return None


def attachment_url(value: Any) -> str | None:
    attachment = first_attachment(value)
    return attachment["url"] if attachment else None


def media_type(mime: str | None) -> str | None:
    """MIME 타입을 "video" / "image"로 단순화합니다."""
    if not mime:
        return None
    if "video" in mime:
        return "video"
    if "image" in mime:
        return "image"
    return None


def normalize_level(value: Any, record_id: str | None = None) -> int:
    """
    1~5 난이도를 1~3 단계로 압축합니다. (1-2 → 1, 3 → 2, 4-5 → 3)

    숫자가 아니거나 범위를 벗어난 값은 경고 후 1로 처리합니다.

    Args:
        value: 원본 난이도 값
        record_id: 경고 로그에 남길 레코드 id

    Returns:
        int: 1, 2, 3 중 하나
    """
    if isinstance(value, list):
        value = value[0] if value else None

    try:
        level = int(value)
    except (TypeError, ValueError):
        logger.warning(f"레코드 {record_id}의 난이도 값이 올바르지 않아 1로 처리: {value!r}")
        return 1

    if isinstance(value, bool) or not 1 <= level <= 5:
        logger.warning(f"레코드 {record_id}의 난이도 값이 범위를 벗어나 1로 처리: {value!r}")
        return 1

    if level <= 2:
        return 1
    if level == 3:
        return 2
    return 3


def _thumbnail_url(thumbnails: dict[str, Any], key: str) -> str | None:
    entry = thumbnails.get(key)
    if isinstance(entry, dict):
        return entry.get("url") or None
    return None


def fold_thumbnails(thumbnails: dict[str, Any] | None) -> dict[str, str | None]:
    """
    Airtable 썸네일(small/large/full)을 tiny/small/medium/large 4단계로 접습니다.

    비어있는 티어는 인접 티어 순서(TIER_FALLBACK)대로 대체합니다.

    Args:
        thumbnails: Airtable 첨부파일의 `thumbnails` 객체

    Returns:
        dict[str, str | None]: 티어 → URL (대체할 것이 없으면 None)
    """
    thumbnails = thumbnails or {}
    direct: dict[str, str | None] = {}
    for tier in THUMBNAIL_TIERS:
        direct[tier] = next(
            (
                url
                for key in AIRTABLE_THUMBNAIL_TIERS[tier]
                if (url := _thumbnail_url(thumbnails, key))
            ),
            None,
        )

    folded: dict[str, str | None] = {}
    for tier in THUMBNAIL_TIERS:
        folded[tier] = direct[tier] or next(
            (direct[alt] for alt in TIER_FALLBACK[tier] if direct[alt]), None
        )
    return folded


def media_block(
    attachment: dict[str, Any] | None,
    sound: Any = None,
    keep_mime: bool = False,
) -> Entity | None:
    """
    첨부파일을 `{type, defaultUrl, sound, thumbnail}` 미디어 객체로 변환합니다.

    Args:
        attachment: Airtable 첨부파일 객체
        sound: 소리 출력 여부
        keep_mime: True면 type에 MIME 타입을 그대로 사용

    Returns:
        Entity | None: 미디어 객체 (첨부파일이 없으면 None)
    """
    if not attachment or not attachment.get("url"):
        return None
    mime = attachment.get("type")
    return {
        "type": mime if keep_mime else media_type(mime),
        "defaultUrl": attachment["url"],
        "sound": sound,
        "thumbnail": fold_thumbnails(attachment.get("thumbnails")),
    }


def has_delimiter(text: str | None) -> bool:
    return bool(text) and _DELIMITER_PATTERN.search(text) is not None


def split_message_text(text: str | None) -> list[str]:
    """
    백슬래시(일반/전각)로 구분된 텍스트를 연속 메시지로 나눕니다.

    각 조각은 공백을 제거하며, 빈 조각은 버립니다.
    """
    if not text:
        return []
    return [part.strip() for part in _DELIMITER_PATTERN.split(text) if part.strip()]
