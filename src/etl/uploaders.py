import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger
from more_itertools import chunked
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.etl.airtable import is_transient_http_error
from src.etl.exceptions import UploadError
from src.etl.interfaces import EntityUploader, RawRecord
from src.etl.rate_limiter import ApiRateLimiter, optional_rate_limiter, retry_after_seconds
from src.etl.transformers.base import Entity, Transformer


@dataclass
class UploadSummary:
    """배치 업로드 결과 집계."""

    success: int = 0
    failed: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)

    def record_success(self, key: Any, count: int = 1) -> None:
        self.success += count
        self.details.append({"key": key, "status": "success"})

    def record_failure(self, key: Any, error: str, count: int = 1) -> None:
        self.failed += count
        self.details.append({"key": key, "status": "failed", "error": error})


class _JsonApiClient:
    """다운스트림 JSON API 호출 공통부. 일시적 오류(429/5xx/타임아웃)만 재시도합니다."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        rate_limiter: ApiRateLimiter | None = None,
    ) -> None:
        self._client = client
        self._rate_limiter = rate_limiter

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        retry=retry_if_exception(is_transient_http_error),
        reraise=True,
    )
    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        async with optional_rate_limiter(self._rate_limiter):
            response = await self._client.request(method, url, **kwargs)
        if response.status_code == 429 and self._rate_limiter is not None:
            self._rate_limiter.pause(retry_after_seconds(response, 1.0))
        if response.status_code != 404:
            response.raise_for_status()
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        return response.json()


class ApiUploadService(_JsonApiClient, EntityUploader):
    """
    월드 API 엔티티 업로드 서비스.

    `create`와 `update` 모두 자연 키로 원격 레코드를 먼저 조회하여, 있으면 PATCH, 없으면 POST 합니다.
    `update`는 자연 키가 없는 엔티티를 거부하고, `create`는 조회 없이 바로 생성합니다.

    Example:
        ```python
        service = ApiUploadService(
            client, "https://world.ahhaohho.com", "world/challenges",
            ChallengeTransformer(), lookup_param="challengeIdx", natural_key="challengeIdx",
        )
        summary = await service.update_many(records)
        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        resource: str,
        transformer: Transformer,
        lookup_param: str,
        natural_key: str,
        rate_limiter: ApiRateLimiter | None = None,
        chunk_size: int = 10,
        chunk_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            client: 다운스트림 API용 HTTP 클라이언트
            base_url: API Base URL
            resource: 리소스 경로 (예: "world/challenges")
            transformer: 레코드 변환기
            lookup_param: 조회 쿼리 파라미터 이름
            natural_key: 변환된 엔티티에서 자연 키로 쓰는 필드
            rate_limiter: 요청 속도 제한기 (기본값: None)
            chunk_size: 배치 업로드 청크 크기
            chunk_delay: 청크 간 대기 시간(초)
            sleep: 청크 간 대기 함수 (테스트에서 교체 가능)
        """
        super().__init__(client, rate_limiter)
        self._url = f"{base_url.rstrip('/')}/{resource.strip('/')}"
        self._transformer = transformer
        self._lookup_param = lookup_param
        self._natural_key = natural_key
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self._sleep = sleep

    def _entity(self, raw: RawRecord) -> Entity:
        entity = self._transformer.transform(raw)
        if entity is None:
            raise UploadError(f"변환 실패로 업로드 제외: record={raw.get('id')}")
        return entity

    async def find_existing(self, key: str) -> dict[str, Any] | None:
        """
        자연 키로 원격 레코드를 조회합니다.

        Args:
            key: 자연 키 값

        Returns:
            dict[str, Any] | None: 일치하는 원격 레코드 (없으면 None)
        """
        response = await self._request(
            "GET", self._url, params={self._lookup_param: key}
        )
        if response.status_code == 404:
            return None

        body = self._json(response)
        data = body.get("data", body) if isinstance(body, dict) else body

        if isinstance(data, list):
            return next(
                (
                    item
                    for item in data
                    if isinstance(item, dict)
                    and key in (item.get(self._natural_key), item.get("id"))
                ),
                None,
            )
        if isinstance(data, dict) and data:
            return data
        return None

    async def _post(self, entity: Entity) -> dict[str, Any]:
        response = await self._request("POST", self._url, json=entity)
        if response.status_code == 404:
            raise UploadError(f"생성 엔드포인트 없음: {self._url}")
        result: dict[str, Any] = self._json(response)
        return result

    async def _patch(self, entity: Entity, existing: dict[str, Any], key: str) -> dict[str, Any]:
        remote_id = existing.get("_id") or existing.get("id") or key
        response = await self._request("PATCH", f"{self._url}/{remote_id}", json=entity)
        if response.status_code == 404:
            raise UploadError(f"원격 레코드가 사라짐: {remote_id}")
        result: dict[str, Any] = self._json(response)
        return result

    async def create(self, raw: RawRecord) -> dict[str, Any]:
        """
        엔티티를 생성합니다. 같은 자연 키의 원격 레코드가 이미 있으면 수정으로 전환하여
        재실행해도 중복 생성되지 않습니다.
        """
        entity = self._entity(raw)
        key = entity.get(self._natural_key)

        existing = await self.find_existing(key) if key else None
        if existing is not None:
            logger.info(f"[CREATE] {self._natural_key}={key} 이미 존재, 수정으로 전환")
            return await self._patch(entity, existing, key)

        logger.info(f"[CREATE] {self._natural_key}={key}")
        return await self._post(entity)

    async def update(self, raw: RawRecord) -> dict[str, Any]:
        entity = self._entity(raw)
        key = entity.get(self._natural_key)
        if not key:
            raise UploadError(f"자연 키({self._natural_key}) 없음: record={raw.get('id')}")

        existing = await self.find_existing(key)
        if existing is None:
            logger.info(f"[UPDATE] {self._natural_key}={key} 원격에 없음, 생성으로 전환")
            return await self._post(entity)

        logger.info(f"[UPDATE] {self._natural_key}={key} → PATCH")
        return await self._patch(entity, existing, key)

    async def create_many(self, records: list[RawRecord]) -> UploadSummary:
        return await self._run_chunks(records, self.create, "생성")

    async def update_many(self, records: list[RawRecord]) -> UploadSummary:
        return await self._run_chunks(records, self.update, "업데이트")

    async def _run_chunks(
        self,
        records: list[RawRecord],
        operation: Callable[[RawRecord], Awaitable[dict[str, Any]]],
        label: str,
    ) -> UploadSummary:
        """청크 안에서는 병렬로, 청크 사이에는 지연을 두고 실행합니다. 한 항목의 실패는 다른 항목에 영향을 주지 않습니다."""
        summary = UploadSummary()
        chunks = list(chunked(records, self._chunk_size))

        for index, chunk in enumerate(chunks, start=1):
            logger.info(f"{label} 청크 {index}/{len(chunks)} ({len(chunk)}개)")
            outcomes = await asyncio.gather(
                *(operation(raw) for raw in chunk), return_exceptions=True
            )
            for raw, outcome in zip(chunk, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    logger.error(f"{label} 실패: record={raw.get('id')} - {outcome}")
                    summary.record_failure(raw.get("id"), str(outcome))
                else:
                    summary.record_success(raw.get("id"))

            if index < len(chunks) and self._chunk_delay > 0:
                await self._sleep(self._chunk_delay)

        logger.success(f"{label} 완료 - 성공: {summary.success}, 실패: {summary.failed}")
        return summary


class RegisterService(_JsonApiClient):
    """
    크리에이터 등록 API 서비스 (콘텐츠/준비물/포스팅 가이드).

    변환된 엔티티를 청크 단위로 `{wrap_key: [...]}` 형태로 POST 합니다.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        wrap_key: str,
        transformer: Transformer,
        rate_limiter: ApiRateLimiter | None = None,
        chunk_size: int = 10,
        chunk_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            client: 다운스트림 API용 HTTP 클라이언트
            url: 등록 엔드포인트 URL
            wrap_key: 요청 본문에서 엔티티 배열을 감싸는 키 (예: "contents")
            transformer: 레코드 변환기
            rate_limiter: 요청 속도 제한기 (기본값: None)
            chunk_size: 청크 크기
            chunk_delay: 청크 간 대기 시간(초)
            sleep: 청크 간 대기 함수 (테스트에서 교체 가능)
        """
        super().__init__(client, rate_limiter)
        self._url = url
        self._wrap_key = wrap_key
        self._transformer = transformer
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self._sleep = sleep

    async def register(self, records: list[RawRecord]) -> UploadSummary:
        """
        레코드를 변환하여 청크 단위로 등록합니다. 실패한 청크는 기록 후 다음 청크를 계속 보냅니다.

        Args:
            records: 스냅샷 레코드 목록

        Returns:
            UploadSummary: 엔티티 단위 성공/실패 수
        """
        entities = self._transformer.transform_many(records)
        summary = UploadSummary()
        chunks = list(chunked(entities, self._chunk_size))

        for index, chunk in enumerate(chunks, start=1):
            label = f"chunk-{index}"
            try:
                response = await self._request(
                    "POST", self._url, json={self._wrap_key: chunk}
                )
                if response.status_code == 404:
                    raise UploadError(f"등록 엔드포인트 없음: {self._url}")
            except (httpx.HTTPError, UploadError) as e:
                logger.error(f"{self._wrap_key} 청크 {index}/{len(chunks)} 전송 실패: {e}")
                summary.record_failure(label, str(e), count=len(chunk))
            else:
                logger.info(f"{self._wrap_key} 청크 {index}/{len(chunks)} 전송 완료 ({len(chunk)}개)")
                summary.record_success(label, count=len(chunk))

            if index < len(chunks) and self._chunk_delay > 0:
                await self._sleep(self._chunk_delay)

        logger.success(
            f"{self._wrap_key} 등록 완료 - 성공: {summary.success}, 실패: {summary.failed}"
        )
        return summary
