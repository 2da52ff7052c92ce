import posixpath
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from loguru import logger

from src.etl.interfaces import RawRecord
from src.etl.media import MediaOptions, MediaRehoster, UploadResult


@dataclass
class RehostStats:
    """레코드 하나의 재호스팅 통계."""

    total: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0

    def count(self, result: UploadResult) -> None:
        self.total += 1
        if result.skipped:
            self.skipped += 1
        elif result.failed:
            self.failed += 1
        else:
            self.success += 1


def _basename(url: str) -> str:
    return posixpath.basename(urlparse(url).path)


def variant_thumbnails(variants: dict[str, str]) -> dict[str, dict[str, str]]:
    """
    재호스팅 중 생성한 티어 썸네일을 Airtable `thumbnails` 형태로 바꿉니다.

    medium/large는 Airtable의 large/full 키로 들어가 변환기의 티어 매핑과 맞춰집니다.
    """
    keys = {"tiny": "tiny", "small": "small", "medium": "large", "large": "full"}
    return {keys[tier]: {"url": url} for tier, url in variants.items() if tier in keys}


class RecordRehoster:
    """
    레코드의 모든 첨부파일 필드를 재호스팅하고 URL을 제자리에서 교체합니다.

    원본은 `{mainKey}/{filename}`, 썸네일은 `{mainKey}/thumbnails/{size}/{filename}`에 올라갑니다.
    변환 옵션이 티어 썸네일을 만들어낸 경우 Airtable 썸네일 대신 그것으로 교체합니다.
    """

    def __init__(self, media: MediaRehoster) -> None:
        self._media = media

    async def rehost(
        self,
        record: RawRecord,
        main_key: str,
        options: MediaOptions | None = None,
    ) -> RehostStats:
        """
        Args:
            record: 원본 레코드 (첨부파일 URL이 제자리에서 교체됨)
            main_key: 객체 키 접두사 (테이블 prefix)
            options: 원본 파일에 적용할 변환 옵션 (`options.fields` 밖의 컬럼에는 적용하지 않음)

        Returns:
            RehostStats: 처리/성공/건너뜀/실패 수
        """
        stats = RehostStats()

        for column, value in record.items():
            if not isinstance(value, list):
                continue
            column_options = options
            if options is not None and options.fields and column not in options.fields:
                column_options = None
            for attachment in value:
                if isinstance(attachment, dict) and attachment.get("url"):
                    await self._rehost_attachment(attachment, main_key, column_options, stats)

        logger.debug(
            f"레코드 {record.get('id')} 재호스팅 - 전체: {stats.total}, 성공: {stats.success}, "
            f"건너뜀: {stats.skipped}, 실패: {stats.failed}"
        )
        return stats

    async def _rehost_attachment(
        self,
        attachment: dict[str, Any],
        main_key: str,
        options: MediaOptions | None,
        stats: RehostStats,
    ) -> None:
        url = attachment["url"]
        result = await self._safe_upload(url, f"{main_key}/{_basename(url)}", options)
        stats.count(result)

        if result.skipped or result.failed:
            return
        attachment["url"] = result.location

        if result.variants:
            attachment["thumbnails"] = variant_thumbnails(result.variants)
            return

        for size, thumbnail in (attachment.get("thumbnails") or {}).items():
            thumb_url = thumbnail.get("url") if isinstance(thumbnail, dict) else None
            if not thumb_url:
                continue
            thumb_key = f"{main_key}/thumbnails/{size}/{_basename(thumb_url)}"
            thumb_result = await self._safe_upload(thumb_url, thumb_key, None)
            stats.count(thumb_result)
            if not (thumb_result.skipped or thumb_result.failed):
                thumbnail["url"] = thumb_result.location

    async def _safe_upload(
        self, url: str, key: str, options: MediaOptions | None
    ) -> UploadResult:
        """재시도를 모두 소진한 실패를 로그로 남기고 원본 URL을 유지합니다."""
        try:
            return await self._media.upload_from_url(url, key, options)
        except Exception as e:
            logger.error(f"파일 재호스팅 실패, 원본 URL 유지: {url} - {e}")
            return UploadResult(location=url, failed=True)
