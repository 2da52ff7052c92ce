import argparse
import asyncio
import json
import sys

import httpx
from loguru import logger

from src.config import settings
from src.etl.airtable import AirtableTableClient
from src.etl.log_setup import setup_logging
from src.etl.rate_limiter import ApiRateLimiter

BASE_IDS = {
    "challenge": lambda: settings.challenge_base_id,
    "world": lambda: settings.world_base_id,
    "parts": lambda: settings.parts_base_id,
}


async def main(base: str, table_id: str) -> int:
    """
    테이블의 필드 메타데이터(이름/타입/ID)를 JSON으로 출력합니다.

    Returns:
        int: 프로세스 종료 코드
    """
    setup_logging("table_fields")

    base_id = BASE_IDS[base]()
    if not base_id:
        logger.error(f"'{base}' Base ID 환경 변수가 설정되지 않았습니다.")
        return 1

    async with httpx.AsyncClient(timeout=30.0) as client:
        table_client = AirtableTableClient(
            client=client,
            api_key=settings.airtable_api_key,
            base_id=base_id,
            endpoint_url=settings.airtable_endpoint_url,
            rate_limiter=ApiRateLimiter.for_airtable_base(base_id),
        )
        fields = await table_client.fetch_field_metadata(table_id)

    if not fields:
        return 1

    print(json.dumps(fields, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Airtable 테이블 필드 메타데이터 조회")
    parser.add_argument("table_id", help="테이블 ID (tbl...)")
    parser.add_argument("--base", choices=sorted(BASE_IDS), default="challenge", help="대상 Base")
    args = parser.parse_args()

    try:
        exit_code = asyncio.run(main(base=args.base, table_id=args.table_id))
    except Exception as e:
        logger.exception(f"메타데이터 조회 중 치명적 오류: {e}")
        exit_code = 1
    sys.exit(exit_code)
