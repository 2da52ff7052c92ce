import pytest

from src.etl.media import MediaOptions, MediaRehoster, UploadResult
from src.etl.rehoster import RecordRehoster


@pytest.fixture
def media(mocker):
    mock = mocker.AsyncMock(spec=MediaRehoster)

    async def upload(url, key, options=None):
        return UploadResult(location=f"https://cdn.test/{key}")

    mock.upload_from_url.side_effect = upload
    return mock


@pytest.mark.asyncio
async def test_rehost_rewrites_attachment_and_thumbnail_urls(media, attachment):
    """
    [GREEN]
    첨부파일 원본과 썸네일 URL이 CDN URL로 제자리에서 교체되는지 테스트합니다.
    """
    original_url = attachment["url"]
    record = {"id": "rec1", "이미지": [attachment], "제목": "텍스트", "태그": ["a", "b"]}
    options = MediaOptions(probe_dimensions=True)

    stats = await RecordRehoster(media).rehost(record, "worldData", options)

    assert record["이미지"][0]["url"] == "https://cdn.test/worldData/photo.jpg"
    assert record["이미지"][0]["thumbnails"]["small"]["url"] == (
        "https://cdn.test/worldData/thumbnails/small/small.jpg"
    )
    assert record["이미지"][0]["thumbnails"]["full"]["url"] == (
        "https://cdn.test/worldData/thumbnails/full/full.jpg"
    )
    assert record["제목"] == "텍스트"
    assert (stats.total, stats.success, stats.failed, stats.skipped) == (4, 4, 0, 0)

    first_call = media.upload_from_url.await_args_list[0]
    assert first_call.args == (original_url, "worldData/photo.jpg", options)
    # 썸네일에는 변환 옵션을 적용하지 않음
    assert all(call.args[2] is None for call in media.upload_from_url.await_args_list[1:])


@pytest.mark.asyncio
async def test_rehost_skipped_main_file_keeps_thumbnails(media, attachment):
    """
    [GREEN]
    원본이 용량 초과로 건너뛰어지면 썸네일도 올리지 않고 URL을 유지합니다.
    """
    original_url = attachment["url"]

    async def upload(url, key, options=None):
        return UploadResult(location=url, skipped=True)

    media.upload_from_url.side_effect = upload
    record = {"id": "rec1", "영상": [attachment]}

    stats = await RecordRehoster(media).rehost(record, "contentsData")

    assert record["영상"][0]["url"] == original_url
    assert record["영상"][0]["thumbnails"]["small"]["url"] == "https://dl.airtable.com/t/small.jpg"
    assert stats.skipped == 1
    assert media.upload_from_url.await_count == 1


@pytest.mark.asyncio
async def test_rehost_failure_is_logged_and_counted(media, attachment):
    """
    [GREEN]
    재시도를 소진한 파일 실패는 레코드를 중단시키지 않고, 원본 URL을 유지합니다.
    """
    second = {**attachment, "url": "https://dl.airtable.com/a/second.jpg", "thumbnails": {}}

    async def upload(url, key, options=None):
        if url == attachment["url"]:
            raise RuntimeError("network down")
        return UploadResult(location=f"https://cdn.test/{key}")

    media.upload_from_url.side_effect = upload
    record = {"id": "rec1", "이미지": [attachment, second]}

    stats = await RecordRehoster(media).rehost(record, "contentsData")

    assert record["이미지"][0]["url"] == attachment["url"]
    assert record["이미지"][1]["url"] == "https://cdn.test/contentsData/second.jpg"
    assert (stats.total, stats.success, stats.failed) == (2, 1, 1)


@pytest.mark.asyncio
async def test_rehost_applies_options_only_to_listed_fields(media, attachment):
    """
    [GREEN]
    options.fields가 지정되면 해당 컬럼만 변환 옵션을 받고,
    생성된 티어 썸네일이 Airtable 썸네일을 대체합니다.

    Verifies:
        - 썸네일 컬럼: 변환 옵션 적용, thumbnails가 tiny/small/large/full로 교체
        - 다른 첨부파일 컬럼: 옵션 없이 재호스팅, Airtable 썸네일 유지
    """
    options = MediaOptions(video_target=(568, 709), video_frames=True, fields=("*액티비티 썸네일",))
    video = {**attachment, "url": "https://dl.airtable.com/a/clip.mov", "type": "video/quicktime"}
    guide = {**attachment, "thumbnails": dict(attachment["thumbnails"])}

    async def upload(url, key, opts=None):
        if opts is not None:
            return UploadResult(
                location=f"https://cdn.test/{key}",
                variants={t: f"https://cdn.test/frames/{t}.jpg" for t in ("tiny", "small", "medium", "large")},
            )
        return UploadResult(location=f"https://cdn.test/{key}")

    media.upload_from_url.side_effect = upload
    record = {"id": "rec1", "*액티비티 썸네일": [video], "활동 가이드 2_이미지": [guide]}

    stats = await RecordRehoster(media).rehost(record, "contentsData", options)

    assert record["*액티비티 썸네일"][0]["thumbnails"] == {
        "tiny": {"url": "https://cdn.test/frames/tiny.jpg"},
        "small": {"url": "https://cdn.test/frames/small.jpg"},
        "large": {"url": "https://cdn.test/frames/medium.jpg"},
        "full": {"url": "https://cdn.test/frames/large.jpg"},
    }
    assert record["활동 가이드 2_이미지"][0]["thumbnails"]["small"]["url"] == (
        "https://cdn.test/contentsData/thumbnails/small/small.jpg"
    )
    calls = {call.args[0]: call.args[2] for call in media.upload_from_url.await_args_list}
    assert calls["https://dl.airtable.com/a/clip.mov"] is options
    assert calls[attachment["url"]] is None
    # 영상 1 + 가이드 원본 1 + 가이드 썸네일 3
    assert stats.total == 5
