import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from dotenv import load_dotenv

# .env 파일을 먼저 로드하여 실제 환경 변수 설정
load_dotenv(override=False)

# .env에 값이 없는 경우에만 테스트용 기본값 설정
os.environ.setdefault("AIRTABLE_API_KEY", "test-airtable-key")
os.environ.setdefault("CHALLENGE_BASE_ID", "appTestChallenge")
os.environ.setdefault("WORLD_BASE_ID", "appTestWorld")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def mock_client(mocker) -> AsyncMock:
    """httpx.AsyncClient의 기본 Mock"""
    mock = mocker.AsyncMock()
    # raise_for_status가 에러를 내지 않도록 기본 설정
    mock_response = mocker.Mock(raise_for_status=lambda: None)
    mock.post.return_value = mock_response
    return mock


@pytest.fixture
def mock_s3_client(mocker) -> AsyncMock:
    """boto3 S3 클라이언트의 기본 Mock"""
    mock = mocker.AsyncMock()
    mock.get_paginator = mocker.MagicMock()
    return mock


@pytest.fixture
def mock_storage(mocker) -> AsyncMock:
    """ObjectStorage의 기본 Mock (키를 CDN URL로 변환)"""
    mock = mocker.AsyncMock()
    mock.put_object.side_effect = lambda key, *args, **kwargs: f"https://cdn.test/{key}"
    mock.cdn_url = mocker.Mock(side_effect=lambda key: f"https://cdn.test/{key}")
    return mock


@pytest.fixture
def attachment() -> dict:
    """Airtable 첨부파일 1개 (thumbnails 포함)"""
    return {
        "id": "att1",
        "url": "https://dl.airtable.com/a/photo.jpg",
        "filename": "photo.jpg",
        "type": "image/jpeg",
        "thumbnails": {
            "small": {"url": "https://dl.airtable.com/t/small.jpg", "width": 36, "height": 36},
            "large": {"url": "https://dl.airtable.com/t/large.jpg", "width": 512, "height": 512},
            "full": {"url": "https://dl.airtable.com/t/full.jpg", "width": 3000, "height": 3000},
        },
    }


@pytest.fixture
def no_sleep() -> tuple[list[float], object]:
    """대기 없이 호출 인자만 기록하는 sleep 대체 함수"""
    calls: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        calls.append(seconds)

    return calls, fake_sleep
