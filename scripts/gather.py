import argparse
import asyncio
import sys

from loguru import logger

from src.config import settings
from src.etl.airtable import AirtableTableClient
from src.etl.batch import GatheringDriver
from src.etl.constants import TABLES_BY_BASE
from src.etl.log_setup import setup_logging
from src.etl.media import MediaRehoster
from src.etl.rate_limiter import ApiRateLimiter
from src.etl.rehoster import RecordRehoster
from src.etl.snapshot import SnapshotStore
from src.etl.storage import ObjectStorage, create_clients


def resolve_base(base: str) -> tuple[str | None, str | None, str]:
    """Base 이름으로 (Base ID, 버킷, CDN 도메인)을 찾습니다."""
    return {
        "challenge": (
            settings.challenge_base_id,
            settings.challenge_bucket_name,
            settings.challenge_cdn_domain,
        ),
        "world": (
            settings.world_base_id,
            settings.world_bucket_name,
            settings.world_cdn_domain,
        ),
        "parts": (
            settings.parts_base_id,
            settings.parts_bucket_name,
            settings.parts_cdn_domain,
        ),
    }[base]


async def main(base: str, only: str | None = None) -> int:
    """
    Airtable Base 하나를 수집하여 신규 레코드의 미디어를 재호스팅하고 스냅샷을 저장합니다.

    Returns:
        int: 프로세스 종료 코드
    """
    setup_logging("gather")
    logger.info(f"=== '{base}' Base 수집 시작 ===")

    base_id, bucket_name, cdn_domain = resolve_base(base)
    if not base_id or not bucket_name:
        logger.error(f"'{base}' Base ID 또는 버킷 환경 변수가 설정되지 않았습니다. .env 파일을 확인하세요.")
        return 1

    table_specs = TABLES_BY_BASE[base]
    if only:
        table_specs = [spec for spec in table_specs if spec.prefix == only]
        if not table_specs:
            logger.error(f"'{base}' Base에 prefix '{only}' 테이블이 없습니다.")
            return 1

    async with create_clients() as (http_client, s3_client):
        table_client = AirtableTableClient(
            client=http_client,
            api_key=settings.airtable_api_key,
            base_id=base_id,
            endpoint_url=settings.airtable_endpoint_url,
            rate_limiter=ApiRateLimiter.for_airtable_base(base_id),
        )
        media = MediaRehoster(
            client=http_client,
            storage=ObjectStorage(s3_client, bucket_name, cdn_domain),
            max_bytes=settings.max_media_bytes,
        )
        driver = GatheringDriver(
            table_client=table_client,
            rehoster=RecordRehoster(media),
            snapshot_store=SnapshotStore(settings.data_dir),
        )
        results = await driver.run(table_specs)

    failed = [r for r in results if not r.ok]
    total_new = sum(r.new_count for r in results)
    total_time = sum(r.elapsed_seconds for r in results)
    logger.success(f"=== '{base}' Base 수집 완료 ===")
    logger.success(f"총 신규 레코드 수: {total_new}")
    logger.success(f"총 소요 시간: {total_time:.2f}초")

    if failed:
        logger.warning(f"실패한 테이블: {', '.join(r.prefix for r in failed)}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Airtable 데이터 수집 및 미디어 재호스팅")
    parser.add_argument(
        "--base",
        choices=sorted(TABLES_BY_BASE),
        required=True,
        help="수집할 Airtable Base",
    )
    parser.add_argument(
        "--only",
        type=str,
        help="지정한 prefix의 테이블만 수집합니다 (예: contentsData).",
    )
    args = parser.parse_args()

    try:
        exit_code = asyncio.run(main(base=args.base, only=args.only))
    except Exception as e:
        logger.exception(f"수집 중 치명적 오류: {e}")
        exit_code = 1
    sys.exit(exit_code)
