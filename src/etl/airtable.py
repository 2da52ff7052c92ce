from typing import Any

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.etl.interfaces import RawRecord, TableClient
from src.etl.rate_limiter import (
    AIRTABLE_THROTTLE_SECONDS,
    ApiRateLimiter,
    optional_rate_limiter,
    retry_after_seconds,
)


def is_transient_http_error(exc: BaseException) -> bool:
    """429/5xx 응답과 타임아웃/연결 오류만 재시도합니다."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


class AirtableTableClient(TableClient):
    """
    Airtable REST API 기반 TableClient 구현체.

    한 Base에 묶여 동작하며, 뷰 단위로 모든 레코드를 페이지네이션하여 가져옵니다.
    """

    page_size = 100

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        base_id: str,
        endpoint_url: str = "https://api.airtable.com",
        rate_limiter: ApiRateLimiter | None = None,
    ) -> None:
        """
        Args:
            client: HTTP 클라이언트 (httpx.AsyncClient)
            api_key: Airtable API 키
            base_id: 대상 Base ID
            endpoint_url: Airtable API 엔드포인트
            rate_limiter: 요청 속도 제한기 (기본값: None)
        """
        self._client = client
        self._base_id = base_id
        self._endpoint_url = endpoint_url.rstrip("/")
        self._rate_limiter = rate_limiter
        self._headers = {"Authorization": f"Bearer {api_key}"}

    def _throttle_on_429(self, response: httpx.Response) -> None:
        """429를 받으면 Base 전체 요청을 Retry-After(기본 30초) 동안 멈춥니다."""
        if response.status_code == 429 and self._rate_limiter is not None:
            self._rate_limiter.pause(
                retry_after_seconds(response, AIRTABLE_THROTTLE_SECONDS)
            )

    async def fetch_table_data(self, table_name: str, view_name: str) -> list[RawRecord]:
        """
        테이블/뷰의 모든 레코드를 가져와 평탄화합니다.

        Args:
            table_name: 테이블 이름 또는 ID
            view_name: 뷰 이름

        Returns:
            list[RawRecord]: `{"id": ..., **fields}` 형태의 레코드 목록
        """
        logger.info(f"Airtable '{table_name}' ({view_name}) 레코드 조회 시작...")

        records: list[RawRecord] = []
        offset: str | None = None

        while True:
            page = await self._fetch_page(table_name, view_name, offset)
            for record in page.get("records", []):
                records.append({"id": record["id"], **record.get("fields", {})})

            offset = page.get("offset")
            if not offset:
                break

        logger.info(f"Airtable '{table_name}' 레코드 {len(records)}개 조회 완료")
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        retry=retry_if_exception(is_transient_http_error),
        reraise=True,
    )
    async def _fetch_page(
        self, table_name: str, view_name: str, offset: str | None
    ) -> dict[str, Any]:
        """
        단일 페이지를 조회합니다.

        Args:
            table_name: 테이블 이름 또는 ID
            view_name: 뷰 이름
            offset: 이전 페이지 응답의 offset (첫 페이지는 None)

        Returns:
            dict[str, Any]: `records`와 선택적 `offset`을 가진 응답 본문
        """
        params: dict[str, Any] = {"view": view_name, "pageSize": self.page_size}
        if offset:
            params["offset"] = offset

        url = f"{self._endpoint_url}/v0/{self._base_id}/{table_name}"
        async with optional_rate_limiter(self._rate_limiter):
            response = await self._client.get(url, params=params, headers=self._headers)
            self._throttle_on_429(response)
            response.raise_for_status()

        data: dict[str, Any] = response.json()
        logger.debug(
            f"Fetched table={table_name}, offset={offset}, "
            f"records={len(data.get('records', []))}"
        )
        return data

    async def fetch_field_metadata(self, table_id: str) -> list[dict[str, str]]:
        """
        테이블의 필드 메타데이터(이름/타입/ID)를 조회합니다.

        Args:
            table_id: 테이블 ID

        Returns:
            list[dict[str, str]]: `{"name", "type", "id"}` 목록
        """
        url = f"{self._endpoint_url}/v0/meta/bases/{self._base_id}/tables"
        async with optional_rate_limiter(self._rate_limiter):
            response = await self._client.get(url, headers=self._headers)
            self._throttle_on_429(response)
            response.raise_for_status()

        for table in response.json().get("tables", []):
            if table.get("id") == table_id:
                return [
                    {"name": f["name"], "type": f["type"], "id": f["id"]}
                    for f in table.get("fields", [])
                ]

        logger.warning(f"Base {self._base_id}에서 테이블 {table_id}를 찾을 수 없습니다.")
        return []
