import argparse
import asyncio
import sys

from loguru import logger

from src.config import settings
from src.etl.log_setup import setup_logging
from src.etl.storage import ObjectStorage, create_clients

BUCKETS = {
    "challenge": lambda: (settings.challenge_bucket_name, settings.challenge_cdn_domain),
    "world": lambda: (settings.world_bucket_name, settings.world_cdn_domain),
    "parts": lambda: (settings.parts_bucket_name, settings.parts_cdn_domain),
}


async def main(bucket: str, days: int = 30, prefix: str = "") -> int:
    """
    보존 기간이 지난 미디어 객체를 삭제합니다.

    Returns:
        int: 프로세스 종료 코드
    """
    setup_logging("cleanup_storage")

    bucket_name, cdn_domain = BUCKETS[bucket]()
    if not bucket_name:
        logger.error(f"'{bucket}' 버킷 환경 변수가 설정되지 않았습니다. .env 파일을 확인하세요.")
        return 1

    logger.info(f"=== s3://{bucket_name}/{prefix} {days}일 이전 객체 정리 시작 ===")
    async with create_clients() as (_, s3_client):
        storage = ObjectStorage(s3_client, bucket_name, cdn_domain)
        deleted = await storage.cleanup_prefix(prefix, days)

    logger.success(f"=== 정리 완료: {deleted}개 삭제 ===")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="오래된 S3 미디어 객체 정리")
    parser.add_argument("--bucket", choices=sorted(BUCKETS), required=True, help="대상 버킷")
    parser.add_argument("--days", type=int, default=30, help="보존 기간(일)")
    parser.add_argument("--prefix", type=str, default="", help="객체 키 접두사")
    args = parser.parse_args()

    try:
        exit_code = asyncio.run(main(bucket=args.bucket, days=args.days, prefix=args.prefix))
    except Exception as e:
        logger.exception(f"정리 중 치명적 오류: {e}")
        exit_code = 1
    sys.exit(exit_code)
