import asyncio
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Self

import httpx
from aiolimiter import AsyncLimiter
from loguru import logger

from src.config import settings

# Airtable은 Base당 초당 5회를 넘기면 30초 동안 429를 반환합니다.
AIRTABLE_THROTTLE_SECONDS = 30.0


def retry_after_seconds(response: httpx.Response, default: float) -> float:
    """429 응답의 Retry-After(초)를 읽습니다. 없거나 숫자가 아니면 default."""
    value = response.headers.get("retry-after", "")
    try:
        return max(float(value), 0.0)
    except ValueError:
        return default


class ApiRateLimiter:
    """
    Airtable Base / 다운스트림 API 단위의 요청 속도 제한기.

    AsyncLimiter(토큰 버킷)로 초당 요청 수를, Semaphore로 동시 요청 수를 제한합니다.
    429를 받은 호출자는 `pause()`로 대상 전체를 일정 시간 멈출 수 있고,
    그동안 새로 진입하는 요청은 재개 시각까지 기다립니다.

    Airtable 제한은 Base 단위이므로 Base마다 `for_airtable_base()`로 따로 만듭니다.

    Example:
        >>> limiter = ApiRateLimiter.for_airtable_base("appXXXX")
        >>> async with limiter:
        ...     response = await client.get(url, ...)
        >>> if response.status_code == 429:
        ...     limiter.pause(AIRTABLE_THROTTLE_SECONDS)
    """

    def __init__(
        self,
        name: str,
        requests_per_second: float,
        max_concurrency: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            name: 로그에 표시할 제한 대상 이름 (예: "airtable:appXXXX")
            requests_per_second: 초당 허용되는 최대 요청 수
            max_concurrency: 동시에 처리할 수 있는 최대 요청 수
            clock: 단조 시계 (테스트에서 교체 가능)
            sleep: 일시 정지 대기 함수 (테스트에서 교체 가능)
        """
        self.name = name
        self._rate_limiter = AsyncLimiter(requests_per_second, time_period=1.0)
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._clock = clock
        self._sleep = sleep
        self._resume_at = 0.0

    @classmethod
    def for_airtable_base(cls, base_id: str) -> Self:
        """설정값(airtable_requests_per_second, airtable_max_concurrency)으로 Base 전용 limiter를 만듭니다."""
        return cls(
            name=f"airtable:{base_id}",
            requests_per_second=settings.airtable_requests_per_second,
            max_concurrency=settings.airtable_max_concurrency,
        )

    @classmethod
    def for_downstream_api(cls) -> Self:
        """설정값(api_requests_per_second, api_max_concurrency)으로 다운스트림 API limiter를 만듭니다."""
        return cls(
            name="downstream-api",
            requests_per_second=settings.api_requests_per_second,
            max_concurrency=settings.api_max_concurrency,
        )

    def pause(self, seconds: float) -> None:
        """지금부터 seconds 동안 새 요청 진입을 막습니다. 더 늦은 재개 시각이 있으면 유지합니다."""
        resume_at = self._clock() + seconds
        if resume_at > self._resume_at:
            self._resume_at = resume_at
            logger.warning(f"[{self.name}] 요청 제한 응답, {seconds:.0f}초 동안 요청 중지")

    async def __aenter__(self) -> Self:
        """
        동시 연결 슬롯 확보 → 일시 정지 해제 대기 → 토큰 버킷 순으로 획득합니다.
        """
        await self._semaphore.acquire()
        try:
            delay = self._resume_at - self._clock()
            if delay > 0:
                logger.debug(f"[{self.name}] 재개까지 {delay:.1f}초 대기")
                await self._sleep(delay)
            await self._rate_limiter.acquire()
        except BaseException:
            self._semaphore.release()
            raise
        return self

    async def __aexit__(self, *args: object) -> None:
        self._semaphore.release()


@asynccontextmanager
async def optional_rate_limiter(
    limiter: ApiRateLimiter | None,
) -> AsyncGenerator[None, None]:
    """limiter가 None이면 제한 없이 진입합니다."""
    if limiter is not None:
        async with limiter:
            yield
    else:
        yield
