import io
import tempfile
from pathlib import Path

import httpx
import pytest
from PIL import Image

from src.etl.constants import VIDEO_TIER_SIZES
from src.etl.exceptions import MediaProcessingError
from src.etl.media import MediaOptions, MediaRehoster, with_dimensions
from src.etl.video import VideoProbe

SOURCE_URL = "https://dl.airtable.com/a/photo.png"


def png_bytes(width: int = 40, height: int = 20) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color="red").save(buffer, format="PNG")
    return buffer.getvalue()


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def serving(body: bytes, content_type: str = "image/png", head_length: int | None = None):
    """HEAD/GET 요청에 고정 응답을 돌려주는 핸들러. 호출된 메서드를 기록합니다."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "HEAD":
            length = len(body) if head_length is None else head_length
            return httpx.Response(200, headers={"content-length": str(length)})
        return httpx.Response(200, content=body, headers={"content-type": content_type})

    return handler, calls


def test_with_dimensions():
    assert with_dimensions("https://cdn/a.png", 40, 20) == "https://cdn/a.png?w=40&h=20"
    assert with_dimensions("https://cdn/a.png?v=1", 40, 20) == "https://cdn/a.png?v=1&w=40&h=20"


@pytest.mark.asyncio
async def test_upload_from_url_rehosts_file(mock_storage, no_sleep):
    """
    [GREEN]
    내려받은 파일이 Content-Type과 함께 대상 키로 업로드되는지 테스트합니다.
    """
    _, fake_sleep = no_sleep
    handler, _ = serving(b"data", content_type="image/png; charset=binary")

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage, sleep=fake_sleep)
        result = await rehoster.upload_from_url(SOURCE_URL, "contentsData/photo.png")

    assert result.location == "https://cdn.test/contentsData/photo.png"
    assert not result.skipped
    assert not result.failed
    mock_storage.put_object.assert_awaited_once_with(
        "contentsData/photo.png", b"data", "image/png", None
    )


@pytest.mark.asyncio
async def test_upload_skips_when_head_reports_large_file(mock_storage):
    """
    [GREEN]
    HEAD의 Content-Length가 임계값을 넘으면 내려받지 않고 원본 URL을 반환합니다.
    """
    handler, calls = serving(b"data", head_length=200 * 1024 * 1024)

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage)
        result = await rehoster.upload_from_url(SOURCE_URL, "contentsData/photo.png")

    assert result.skipped
    assert result.location == SOURCE_URL
    assert calls == ["HEAD"]
    mock_storage.put_object.assert_not_awaited()


@pytest.mark.asyncio
async def test_upload_skips_when_download_exceeds_limit(mock_storage):
    """
    [GREEN]
    크기를 모르는 파일도 내려받는 중 임계값을 넘으면 건너뜁니다.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(200, content=b"x" * 64, headers={"content-type": "video/mp4"})

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage, max_bytes=16)
        result = await rehoster.upload_from_url(SOURCE_URL, "contentsData/video.mp4")

    assert result.skipped
    assert result.location == SOURCE_URL
    mock_storage.put_object.assert_not_awaited()


@pytest.mark.asyncio
async def test_upload_retries_with_exponential_backoff(mock_storage, no_sleep):
    """
    [GREEN]
    두 번 실패 후 세 번째에 성공하면 1초, 2초를 기다린 뒤 결과를 반환합니다.
    """
    waits, fake_sleep = no_sleep
    attempts = {"GET": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(200)
        attempts["GET"] += 1
        if attempts["GET"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, content=b"ok", headers={"content-type": "image/png"})

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage, sleep=fake_sleep)
        result = await rehoster.upload_from_url(SOURCE_URL, "contentsData/photo.png")

    assert attempts["GET"] == 3
    assert waits == [1, 2]
    assert result.location == "https://cdn.test/contentsData/photo.png"


@pytest.mark.asyncio
async def test_upload_reraises_after_exhausting_retries(mock_storage, no_sleep):
    """
    [GREEN]
    3회 모두 실패하면 마지막 예외가 호출자에게 전파됩니다.
    """
    waits, fake_sleep = no_sleep

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage, sleep=fake_sleep)
        with pytest.raises(httpx.HTTPStatusError):
            await rehoster.upload_from_url(SOURCE_URL, "contentsData/photo.png")

    assert waits == [1, 2]
    mock_storage.put_object.assert_not_awaited()


@pytest.mark.asyncio
async def test_upload_retries_storage_errors(mock_storage, no_sleep):
    waits, fake_sleep = no_sleep
    handler, _ = serving(b"data")
    mock_storage.put_object.side_effect = [OSError("disk"), "https://cdn.test/contentsData/photo.png"]

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage, sleep=fake_sleep)
        result = await rehoster.upload_from_url(SOURCE_URL, "contentsData/photo.png")

    assert waits == [1]
    assert result.location == "https://cdn.test/contentsData/photo.png"


@pytest.mark.asyncio
async def test_video_is_transcoded_to_target(mocker, mock_storage):
    """
    [GREEN]
    video_target이 있으면 트랜스코딩된 mp4가 업로드되고 크기 메타데이터가 붙습니다.
    """

    async def fake_transcode(input_path, output_path, width, height):
        Path(output_path).write_bytes(b"transcoded")

    transcode = mocker.patch(
        "src.etl.media.video.transcode_with_fallback", side_effect=fake_transcode
    )
    handler, _ = serving(b"raw-video", content_type="video/quicktime")

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage)
        result = await rehoster.upload_from_url(
            "https://dl.airtable.com/a/clip.mov",
            "contentsData/clip.mov",
            MediaOptions(video_target=(568, 709)),
        )

    transcode.assert_awaited_once()
    assert transcode.await_args.args[2:] == (568, 709)
    mock_storage.put_object.assert_awaited_once_with(
        "contentsData/clip.mov",
        b"transcoded",
        "video/mp4",
        {"width": "568", "height": "709"},
    )
    assert (result.width, result.height) == (568, 709)


@pytest.mark.asyncio
async def test_image_tiers_are_uploaded(mock_storage):
    """
    [GREEN]
    image_tiers 옵션이면 4개 티어 JPEG가 `thumbnails/{tier}/` 아래에 올라갑니다.
    """
    handler, _ = serving(png_bytes(2000, 1000))

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage)
        result = await rehoster.upload_from_url(
            SOURCE_URL, "partsData/photo.png", MediaOptions(image_tiers=True)
        )

    assert result.variants == {
        tier: f"https://cdn.test/partsData/thumbnails/{tier}/photo.jpg"
        for tier in ("tiny", "small", "medium", "large")
    }
    assert mock_storage.put_object.await_count == 5


@pytest.mark.asyncio
async def test_probe_dimensions_prefers_remote_ffprobe(mocker, mock_storage):
    probe = mocker.patch(
        "src.etl.media.video.probe", return_value=VideoProbe(width=640, height=360)
    )
    handler, _ = serving(png_bytes())

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage)
        result = await rehoster.upload_from_url(
            SOURCE_URL, "worldData/photo.png", MediaOptions(probe_dimensions=True)
        )

    probe.assert_awaited_once_with("https://cdn.test/worldData/photo.png")
    assert result.location == "https://cdn.test/worldData/photo.png?w=640&h=360"


@pytest.mark.asyncio
async def test_probe_dimensions_falls_back_to_pillow(mocker, mock_storage):
    """
    [GREEN]
    ffprobe가 실패하면 내려받은 이미지를 Pillow로 읽어 해상도를 붙입니다.
    """
    mocker.patch("src.etl.media.video.probe", side_effect=MediaProcessingError("no ffprobe"))
    handler, _ = serving(png_bytes(40, 20))

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage)
        result = await rehoster.upload_from_url(
            SOURCE_URL, "worldData/photo.png", MediaOptions(probe_dimensions=True)
        )

    assert (result.width, result.height) == (40, 20)
    assert result.location == "https://cdn.test/worldData/photo.png?w=40&h=20"


@pytest.mark.asyncio
async def test_probe_dimensions_failure_is_not_fatal(mocker, mock_storage):
    mocker.patch("src.etl.media.video.probe", side_effect=MediaProcessingError("no ffprobe"))
    handler, _ = serving(b"not-an-image", content_type="application/pdf")

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage)
        result = await rehoster.upload_from_url(
            "https://dl.airtable.com/a/doc.pdf",
            "worldData/doc.pdf",
            MediaOptions(probe_dimensions=True),
        )

    assert result.location == "https://cdn.test/worldData/doc.pdf"
    assert result.width is None


@pytest.mark.asyncio
async def test_video_frames_are_extracted_per_tier(mocker, mock_storage):
    """
    [GREEN]
    video_frames 옵션이면 변환된 동영상에서 티어별 4:5 프레임 썸네일을 만들어 올립니다.

    Verifies:
        - 티어마다 VIDEO_TIER_SIZES 크기로 프레임 추출
        - 한 티어의 추출 실패는 나머지 티어에 영향을 주지 않음
    """

    async def fake_transcode(input_path, output_path, width, height):
        Path(output_path).write_bytes(b"transcoded")

    async def fake_extract(input_path, output_path, timestamp="00:00:01", width=None, height=None):
        if width == VIDEO_TIER_SIZES["medium"][0]:
            raise MediaProcessingError("frame")
        Path(output_path).write_bytes(f"frame-{width}".encode())

    mocker.patch("src.etl.media.video.transcode_with_fallback", side_effect=fake_transcode)
    extract = mocker.patch("src.etl.media.video.extract_frame", side_effect=fake_extract)
    handler, _ = serving(b"raw-video", content_type="video/mp4")

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage)
        result = await rehoster.upload_from_url(
            "https://dl.airtable.com/a/clip.mp4",
            "contentsData/clip.mp4",
            MediaOptions(video_target=VIDEO_TIER_SIZES["small"], video_frames=True),
        )

    assert extract.await_count == 4
    assert [
        (call.kwargs["width"], call.kwargs["height"]) for call in extract.await_args_list
    ] == list(VIDEO_TIER_SIZES.values())
    assert result.variants == {
        tier: f"https://cdn.test/contentsData/thumbnails/{tier}/clip.jpg"
        for tier in ("tiny", "small", "large")
    }
    mock_storage.put_object.assert_any_await(
        "contentsData/thumbnails/tiny/clip.jpg", b"frame-284", "image/jpeg"
    )


@pytest.fixture
def tracked_tmp_dirs(mocker, tmp_path):
    """미디어 임시 디렉토리를 tmp_path 아래에 만들고, 생성된 경로를 기록합니다."""
    real_temporary_directory = tempfile.TemporaryDirectory
    created: list[Path] = []

    def make_dir(prefix=None):
        tmp = real_temporary_directory(prefix=prefix, dir=tmp_path)
        created.append(Path(tmp.name))
        return tmp

    mocker.patch("src.etl.media.tempfile.TemporaryDirectory", side_effect=make_dir)
    return tmp_path, created


@pytest.mark.asyncio
async def test_temp_dir_removed_after_failed_download(mock_storage, no_sleep, tracked_tmp_dirs):
    """
    [GREEN]
    다운로드가 매번 실패해도 시도마다 만든 임시 디렉토리가 모두 삭제됩니다.
    """
    _, fake_sleep = no_sleep
    root, created = tracked_tmp_dirs

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage, sleep=fake_sleep)
        with pytest.raises(httpx.HTTPStatusError):
            await rehoster.upload_from_url(SOURCE_URL, "contentsData/photo.png")

    assert len(created) == 3
    assert all(p.name.startswith("etl-media-") for p in created)
    assert list(root.iterdir()) == []


@pytest.mark.asyncio
async def test_temp_dir_removed_after_failed_transcode(
    mocker, mock_storage, no_sleep, tracked_tmp_dirs
):
    """
    [GREEN]
    트랜스코딩 실패로 재시도를 모두 소진해도 내려받은 파일이 남지 않습니다.
    """
    _, fake_sleep = no_sleep
    root, created = tracked_tmp_dirs
    mocker.patch(
        "src.etl.media.video.transcode_with_fallback",
        side_effect=MediaProcessingError("ffmpeg 실패"),
    )
    handler, _ = serving(b"raw-video", content_type="video/quicktime")

    async with make_client(handler) as client:
        rehoster = MediaRehoster(client, mock_storage, sleep=fake_sleep)
        with pytest.raises(MediaProcessingError):
            await rehoster.upload_from_url(
                "https://dl.airtable.com/a/clip.mov",
                "contentsData/clip.mov",
                MediaOptions(video_target=(568, 709)),
            )

    assert len(created) == 3
    assert list(root.iterdir()) == []
    mock_storage.put_object.assert_not_awaited()
