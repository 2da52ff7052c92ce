import httpx
import pytest

from src.etl.constants import TABLES_BY_BASE
from src.etl.registry import DESTINATIONS, Destination, build_service
from src.etl.transformers.contents import ContentsTransformer
from src.etl.transformers.worlds import WorldTransformer
from src.etl.uploaders import ApiUploadService, RegisterService


def test_every_destination_reads_a_gathered_prefix():
    """
    [GREEN]
    모든 업로드 대상의 스냅샷 prefix는 수집 대상 테이블 중 하나여야 합니다.
    """
    gathered = {spec.prefix for specs in TABLES_BY_BASE.values() for spec in specs}

    assert {d.prefix for d in DESTINATIONS.values()} <= gathered


def test_build_service_by_kind():
    client = httpx.AsyncClient()

    contents = build_service(DESTINATIONS["contents"], client)
    chats = build_service(DESTINATIONS["open_chats"], client)

    assert isinstance(contents, RegisterService)
    assert contents._wrap_key == "contents"
    assert contents._url.endswith("/creator/register/challenge")
    assert isinstance(chats, ApiUploadService)
    assert chats._url.endswith("/world/chats")
    assert chats._natural_key == "chatIdx"


@pytest.mark.parametrize(
    "destination",
    [
        Destination("broken_register", "contentsData", ContentsTransformer, "register", "x"),
        Destination(
            "broken_api", "worldData", WorldTransformer, "api", "world", lookup_param="worldIdx"
        ),
    ],
)
def test_build_service_rejects_incomplete_destination(destination):
    """
    [GREEN]
    kind에 필요한 키가 빠진 대상 정의는 ValueError로 거부됩니다.
    """
    with pytest.raises(ValueError, match=destination.name):
        build_service(destination, httpx.AsyncClient())
