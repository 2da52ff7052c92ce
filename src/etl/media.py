import asyncio
import mimetypes
import posixpath
import tempfile
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import httpx
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.etl import images, video
from src.etl.constants import VIDEO_TIER_SIZES, TableSpec
from src.etl.exceptions import MediaProcessingError
from src.etl.storage import ObjectStorage

# 재시도 대상: 네트워크 / 트랜스코딩 / 스토리지 / 로컬 파일 오류
RETRYABLE_ERRORS = (
    httpx.HTTPError,
    MediaProcessingError,
    BotoCoreError,
    ClientError,
    OSError,
)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
USER_AGENT = "Mozilla/5.0 (compatible; FileTransferBot/1.0)"


@dataclass(frozen=True)
class MediaOptions:
    """
    미디어 재호스팅 옵션. 테이블 단위로 설정됩니다.

    `fields`는 옵션을 적용할 첨부파일 컬럼이며, 비어있으면 모든 컬럼에 적용됩니다.
    """

    video_target: tuple[int, int] | None = None
    video_frames: bool = False
    image_tiers: bool = False
    probe_dimensions: bool = False
    fields: tuple[str, ...] = ()

    @classmethod
    def for_table(cls, spec: TableSpec) -> "MediaOptions":
        return cls(
            video_target=spec.video_target,
            video_frames=spec.video_frames,
            image_tiers=spec.image_tiers,
            probe_dimensions=spec.probe_dimensions,
            fields=spec.media_fields,
        )


@dataclass
class UploadResult:
    """
    미디어 재호스팅 결과.

    `skipped`/`failed`인 경우 `location`은 원본 URL입니다.
    """

    location: str
    width: int | None = None
    height: int | None = None
    skipped: bool = False
    failed: bool = False
    variants: dict[str, str] = field(default_factory=dict)


def with_dimensions(url: str, width: int, height: int) -> str:
    """URL에 `w`, `h` 쿼리 파라미터를 붙입니다."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}w={width}&h={height}"


def _normalize_content_type(header: str | None, filename: str) -> str:
    if header:
        content_type = header.split(";")[0].strip().lower()
        if content_type and content_type != DEFAULT_CONTENT_TYPE:
            return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or DEFAULT_CONTENT_TYPE


class MediaRehoster:
    """
    원격 미디어를 내려받아(선택적으로 변환 후) 객체 저장소에 다시 올리는 컴포넌트.

    - HEAD 요청으로 크기를 먼저 확인하고, 임계값을 넘으면 원본 URL을 그대로 반환합니다.
    - 다운로드/변환/업로드 한 사이클을 최대 3회 지수 백오프(1s, 2s, ... 최대 30s)로 재시도합니다.
    - 임시 파일은 호출 단위의 임시 디렉토리에 만들어지고, 모든 종료 경로에서 삭제됩니다.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        storage: ObjectStorage,
        max_bytes: int = 150 * 1024 * 1024,
        max_attempts: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            client: 다운로드용 HTTP 클라이언트
            storage: 업로드 대상 객체 저장소
            max_bytes: 재호스팅하지 않을 파일 크기 임계값
            max_attempts: 최대 시도 횟수
            sleep: 백오프 대기 함수 (테스트에서 교체 가능)
        """
        self._client = client
        self._storage = storage
        self._max_bytes = max_bytes
        self._max_attempts = max_attempts
        self._sleep = sleep

    async def upload_from_url(
        self,
        source_url: str,
        destination_key: str,
        options: MediaOptions | None = None,
    ) -> UploadResult:
        """
        source_url의 미디어를 destination_key로 재호스팅합니다.

        Args:
            source_url: 원본 미디어 URL
            destination_key: 저장소 객체 키 (`{mainKey}/{filename}`)
            options: 변환 옵션 (기본값: 변환 없음)

        Returns:
            UploadResult: CDN URL과 부가 정보

        Raises:
            재시도를 모두 소진한 마지막 예외를 그대로 전파합니다.
        """
        options = options or MediaOptions()

        known_size = await self._head_content_length(source_url)
        if known_size is not None and known_size > self._max_bytes:
            logger.info(
                f"용량 초과로 건너뜀 ({known_size / 1024 / 1024:.2f}MB): {destination_key}"
            )
            return UploadResult(location=source_url, skipped=True)

        def log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            wait = state.next_action.sleep if state.next_action else 0
            logger.warning(
                f"미디어 처리 실패 ({state.attempt_number}/{self._max_attempts}), "
                f"{wait:.0f}초 후 재시도: {destination_key} - {exc}"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            sleep=self._sleep,
            before_sleep=log_retry,
            reraise=True,
        )

        result = UploadResult(location=source_url, failed=True)
        async for attempt in retrying:
            with attempt:
                result = await self._rehost_once(source_url, destination_key, options)
        return result

    async def _head_content_length(self, url: str) -> int | None:
        """HEAD 요청으로 Content-Length를 조회합니다. 실패하면 None."""
        try:
            response = await self._client.head(url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug(f"HEAD 요청 실패, 다운로드로 진행: {url} - {e}")
            return None

        length = response.headers.get("content-length")
        if length is None or not length.isdigit():
            return None
        return int(length)

    async def _download(self, url: str, local_path: Path) -> tuple[str, int]:
        """
        스트리밍으로 내려받습니다. 임계값을 넘는 순간 중단합니다.

        Returns:
            tuple[str, int]: (Content-Type, 내려받은 바이트 수)
        """
        size = 0
        async with self._client.stream(
            "GET", url, headers={"User-Agent": USER_AGENT}
        ) as response:
            response.raise_for_status()
            content_type = _normalize_content_type(
                response.headers.get("content-type"), local_path.name
            )
            with local_path.open("wb") as f:
                async for chunk in response.aiter_bytes():
                    size += len(chunk)
                    if size > self._max_bytes:
                        break
                    f.write(chunk)

        return content_type, size

    async def _rehost_once(
        self, source_url: str, destination_key: str, options: MediaOptions
    ) -> UploadResult:
        with tempfile.TemporaryDirectory(prefix="etl-media-") as tmp_dir:
            filename = posixpath.basename(urlparse(source_url).path) or "source"
            local_path = Path(tmp_dir) / filename

            content_type, size = await self._download(source_url, local_path)
            if size > self._max_bytes:
                logger.info(f"다운로드 후 용량 초과로 건너뜀: {destination_key}")
                return UploadResult(location=source_url, skipped=True)
            logger.debug(f"다운로드 완료: {destination_key} ({size / 1024 / 1024:.2f}MB)")

            width: int | None = None
            height: int | None = None
            metadata: dict[str, str] | None = None
            upload_path = local_path

            if options.video_target and content_type.startswith("video/"):
                width, height = options.video_target
                upload_path = Path(tmp_dir) / "transcoded.mp4"
                await video.transcode_with_fallback(
                    str(local_path), str(upload_path), width, height
                )
                content_type = "video/mp4"
                metadata = {"width": str(width), "height": str(height)}

            body = upload_path.read_bytes()
            location = await self._storage.put_object(
                destination_key, body, content_type, metadata
            )
            result = UploadResult(location=location, width=width, height=height)

            if options.image_tiers and content_type.startswith("image/"):
                result.variants = await self._upload_tiers(destination_key, body)

            if options.video_frames and content_type.startswith("video/"):
                result.variants = await self._upload_frames(
                    destination_key, upload_path, Path(tmp_dir)
                )

            if options.probe_dimensions:
                await self._enrich_dimensions(result, local_path, content_type)

            return result

    async def _upload_tiers(self, destination_key: str, body: bytes) -> dict[str, str]:
        """이미지를 티어별로 리사이즈하여 `{dir}/thumbnails/{tier}/{name}.jpg`에 올립니다."""
        key_dir = posixpath.dirname(destination_key)
        stem = posixpath.splitext(posixpath.basename(destination_key))[0]

        tiers = await asyncio.to_thread(images.resize_to_tiers, body)
        variants: dict[str, str] = {}
        for tier, data in tiers.items():
            tier_key = posixpath.join(key_dir, "thumbnails", tier, f"{stem}.jpg")
            variants[tier] = await self._storage.put_object(tier_key, data, "image/jpeg")
        return variants

    async def _upload_frames(
        self, destination_key: str, video_path: Path, tmp_dir: Path
    ) -> dict[str, str]:
        """
        동영상 1초 지점 프레임을 티어별 4:5 크기로 추출하여 `{dir}/thumbnails/{tier}/{name}.jpg`에 올립니다.

        한 티어의 추출 실패는 경고만 남기고 나머지 티어를 계속 처리합니다.
        """
        key_dir = posixpath.dirname(destination_key)
        stem = posixpath.splitext(posixpath.basename(destination_key))[0]

        variants: dict[str, str] = {}
        for tier, (width, height) in VIDEO_TIER_SIZES.items():
            frame_path = tmp_dir / f"frame_{tier}.jpg"
            try:
                await video.extract_frame(
                    str(video_path), str(frame_path), width=width, height=height
                )
            except MediaProcessingError as e:
                logger.warning(f"{tier} 프레임 썸네일 생성 실패: {destination_key} - {e}")
                continue
            tier_key = posixpath.join(key_dir, "thumbnails", tier, f"{stem}.jpg")
            variants[tier] = await self._storage.put_object(
                tier_key, frame_path.read_bytes(), "image/jpeg"
            )
        return variants

    async def _enrich_dimensions(
        self, result: UploadResult, local_path: Path, content_type: str
    ) -> None:
        """
        해상도를 조회하여 URL에 `?w=&h=`를 붙입니다. 실패해도 예외를 던지지 않습니다.

        순서: 원격 ffprobe → 로컬 파일 Pillow → 로컬 파일 ffprobe
        """
        dimensions: tuple[int, int] | None = None
        if result.width and result.height:
            dimensions = (result.width, result.height)

        if not dimensions:
            try:
                probed = await video.probe(result.location)
                if probed.width and probed.height:
                    dimensions = (probed.width, probed.height)
            except MediaProcessingError as e:
                logger.debug(f"원격 ffprobe 실패: {result.location} - {e}")

        if not dimensions and content_type.startswith("image/"):
            try:
                dimensions = images.read_dimensions(local_path.read_bytes())
            except (OSError, ValueError) as e:
                logger.debug(f"Pillow 해상도 조회 실패: {local_path.name} - {e}")

        if not dimensions:
            try:
                probed = await video.probe(str(local_path))
                if probed.width and probed.height:
                    dimensions = (probed.width, probed.height)
            except MediaProcessingError as e:
                logger.debug(f"로컬 ffprobe 실패: {local_path.name} - {e}")

        if not dimensions:
            logger.warning(f"해상도를 확인할 수 없어 원본 URL 유지: {result.location}")
            return

        result.width, result.height = dimensions
        result.location = with_dimensions(result.location, *dimensions)
