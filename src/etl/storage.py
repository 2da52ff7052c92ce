from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

import aioboto3
import httpx
from botocore.exceptions import ClientError
from loguru import logger

from src.config import settings
from src.etl.constants import CACHE_CONTROL, S3_DELETE_BATCH_SIZE


@asynccontextmanager
async def create_clients() -> AsyncGenerator[tuple[httpx.AsyncClient, Any], None]:
    """
    ETL에 필요한 비동기 클라이언트를 생성하고 세션을 관리합니다.

    프로세스 시작 시 한 번 생성하여 각 컴포넌트에 주입합니다.

    Yields:
        tuple[httpx.AsyncClient, Any]: 다운로드/Airtable용 HTTP 클라이언트와 S3 클라이언트
    """
    logger.info("HTTPX AsyncClient / S3 세션 생성...")
    region = settings.aws_default_region
    session = aioboto3.Session(
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=region,
    )
    timeout = httpx.Timeout(
        connect=15.0, read=settings.download_timeout_seconds, write=60.0, pool=15.0
    )

    async with (
        httpx.AsyncClient(timeout=timeout, follow_redirects=True) as http_client,
        session.client("s3", region_name=region) as s3_client,
    ):
        try:
            yield http_client, s3_client
        finally:
            logger.info("클라이언트 세션 종료...")


def create_api_client() -> httpx.AsyncClient:
    """
    다운스트림 API 전용 HTTP 클라이언트를 생성합니다.

    TLS 검증 예외(`api_verify_tls=False`)는 이 클라이언트에만 적용됩니다.
    """
    if not settings.api_verify_tls:
        logger.warning("다운스트림 API 인증서 검증이 비활성화되었습니다 (API_VERIFY_TLS=false).")
    return httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=15.0),
        verify=settings.api_verify_tls,
        headers={"Content-Type": "application/json"},
    )


class ObjectStorage:
    """S3 버킷 + CDN 도메인 단위의 객체 저장소 래퍼."""

    def __init__(self, s3_client: Any, bucket_name: str, cdn_domain: str) -> None:
        """
        Args:
            s3_client: 비동기 S3 클라이언트 (aioboto3.client 등)
            bucket_name: 미디어를 적재할 S3 버킷 이름
            cdn_domain: 버킷 앞단의 CDN 도메인
        """
        self._s3_client = s3_client
        self._bucket_name = bucket_name
        self._cdn_domain = cdn_domain

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def cdn_url(self, key: str) -> str:
        return f"https://{self._cdn_domain}/{key}"

    async def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str,
        extra_metadata: dict[str, str] | None = None,
    ) -> str:
        """
        객체를 업로드하고 CDN URL을 반환합니다.

        Args:
            key (str): S3 객체 키.
            body (bytes): 업로드할 내용.
            content_type (str): Content-Type 헤더 값.
            extra_metadata (dict[str, str] | None): 사용자 메타데이터 (예: width/height).

        Returns:
            str: `https://{cdn_domain}/{key}` 형태의 공개 URL.
        """
        params: dict[str, Any] = {
            "Bucket": self._bucket_name,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
            "CacheControl": CACHE_CONTROL,
            "ContentDisposition": "inline",
        }
        if extra_metadata:
            params["Metadata"] = extra_metadata

        await self._s3_client.put_object(**params)
        logger.debug(f"업로드 완료: s3://{self._bucket_name}/{key} ({len(body)} bytes)")
        return self.cdn_url(key)

    async def list_objects_older_than(
        self, prefix: str, days: int, now: datetime | None = None
    ) -> list[dict[str, Any]]:
        """
        `days`일보다 오래된 객체 목록을 페이지네이션하여 반환합니다.

        Args:
            prefix (str): 객체 키 접두사 (빈 문자열이면 버킷 전체).
            days (int): 보존 기간(일).
            now (datetime | None): 기준 시각 (기본값: 현재 UTC).

        Returns:
            list[dict[str, Any]]: `Key`, `LastModified`를 가진 객체 목록.
        """
        cutoff = (now or datetime.now(UTC)) - timedelta(days=days)
        old_objects: list[dict[str, Any]] = []
        paginator = self._s3_client.get_paginator("list_objects_v2")

        async for page in paginator.paginate(Bucket=self._bucket_name, Prefix=prefix):
            for obj in page.get("Contents", []):
                if obj["LastModified"] < cutoff:
                    old_objects.append(obj)

        logger.info(
            f"s3://{self._bucket_name}/{prefix} 에서 {days}일 이전 객체 "
            f"{len(old_objects)}개 발견"
        )
        return old_objects

    async def delete_objects(self, keys: list[str]) -> int:
        """
        객체들을 1000개 단위로 삭제합니다.

        Args:
            keys (list[str]): 삭제할 객체 키 목록.

        Returns:
            int: 삭제에 성공한 객체 수.
        """
        if not keys:
            logger.info("삭제할 객체가 없습니다. 작업을 건너뜁니다.")
            return 0

        deleted = 0
        for start in range(0, len(keys), S3_DELETE_BATCH_SIZE):
            chunk = keys[start : start + S3_DELETE_BATCH_SIZE]
            try:
                response = await self._s3_client.delete_objects(
                    Bucket=self._bucket_name,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": False},
                )
            except ClientError as e:
                logger.error(f"객체 삭제 요청 실패 (batch start={start}): {e}")
                continue

            deleted += len(response.get("Deleted", []))
            for error in response.get("Errors", []):
                logger.error(
                    f"객체 삭제 실패: s3://{self._bucket_name}/{error.get('Key')} "
                    f"- {error.get('Code')}: {error.get('Message')}"
                )

        logger.info(f"객체 삭제 완료: {deleted}/{len(keys)}개")
        return deleted

    async def cleanup_prefix(self, prefix: str, days: int) -> int:
        """
        접두사 아래의 오래된 객체를 찾아 삭제합니다.

        Args:
            prefix (str): 객체 키 접두사.
            days (int): 보존 기간(일).

        Returns:
            int: 삭제된 객체 수.
        """
        old_objects = await self.list_objects_older_than(prefix, days)
        return await self.delete_objects([obj["Key"] for obj in old_objects])
