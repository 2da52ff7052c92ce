import argparse
import asyncio
import sys
from datetime import datetime

from loguru import logger

from src.config import settings
from src.etl.constants import SNAPSHOT_DATE_FORMAT
from src.etl.exceptions import SnapshotNotFoundError
from src.etl.log_setup import setup_logging
from src.etl.rate_limiter import ApiRateLimiter
from src.etl.registry import DESTINATIONS, build_service
from src.etl.snapshot import SnapshotStore
from src.etl.storage import create_api_client
from src.etl.uploaders import ApiUploadService, UploadSummary


async def main(destination_name: str, mode: str = "create", target_date: str | None = None) -> int:
    """
    스냅샷을 읽어 변환한 뒤 다운스트림 API로 업로드합니다.

    Args:
        destination_name: 업로드 대상 이름 (예: "challenges")
        mode: "create" 또는 "update" (월드 API 대상에만 의미가 있음)
        target_date: 스냅샷 날짜 (YYYYMMDD, 기본값: 최신)

    Returns:
        int: 프로세스 종료 코드
    """
    setup_logging("upload")
    destination = DESTINATIONS[destination_name]
    day = datetime.strptime(target_date, SNAPSHOT_DATE_FORMAT).date() if target_date else None

    logger.info(f"=== '{destination.name}' 업로드 시작 (mode={mode}) ===")

    try:
        records = SnapshotStore(settings.data_dir).load_latest(destination.prefix, day)
    except SnapshotNotFoundError as e:
        logger.error(str(e))
        return 1

    rate_limiter = ApiRateLimiter.for_downstream_api()

    async with create_api_client() as client:
        service = build_service(destination, client, rate_limiter)
        summary: UploadSummary
        if isinstance(service, ApiUploadService):
            if mode == "update":
                summary = await service.update_many(records)
            else:
                summary = await service.create_many(records)
        else:
            summary = await service.register(records)

    logger.success(f"=== '{destination.name}' 업로드 완료 ===")
    logger.success(f"성공: {summary.success}, 실패: {summary.failed}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="스냅샷 데이터를 다운스트림 API로 업로드")
    parser.add_argument("destination", choices=sorted(DESTINATIONS), help="업로드 대상")
    parser.add_argument(
        "--mode",
        choices=["create", "update"],
        default="create",
        help="create: 신규 생성 (이미 있으면 수정), update: 자연 키 필수, 조회 후 수정 (없으면 생성)",
    )
    parser.add_argument(
        "--date",
        type=str,
        help="사용할 스냅샷 날짜 (형식: YYYYMMDD). 지정하지 않으면 최신 스냅샷을 사용합니다.",
    )
    args = parser.parse_args()

    try:
        exit_code = asyncio.run(
            main(destination_name=args.destination, mode=args.mode, target_date=args.date)
        )
    except Exception as e:
        logger.exception(f"업로드 중 치명적 오류: {e}")
        exit_code = 1
    sys.exit(exit_code)
