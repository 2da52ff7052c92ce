from dataclasses import dataclass
from typing import Literal

import httpx

from src.config import settings
from src.etl.rate_limiter import ApiRateLimiter
from src.etl.transformers.base import Transformer
from src.etl.transformers.challenges import ChallengeTransformer
from src.etl.transformers.chats import ChatTransformer, OpenChatTransformer
from src.etl.transformers.contents import ContentsTransformer
from src.etl.transformers.groups import GroupTransformer
from src.etl.transformers.materials import MaterialsTransformer
from src.etl.transformers.posting_guides import (
    PostingGuideTransformer,
    WorldPostGuideTransformer,
)
from src.etl.transformers.worlds import WorldTransformer
from src.etl.uploaders import ApiUploadService, RegisterService


@dataclass(frozen=True)
class Destination:
    """
    업로드 대상 정의.

    kind="register"는 크리에이터 등록 API로 `{wrap_key: [...]}` 청크를 보내고,
    kind="api"는 월드 API에 엔티티 단위로 생성/수정합니다.
    """

    name: str
    prefix: str
    transformer: type[Transformer]
    kind: Literal["register", "api"]
    path: str
    wrap_key: str | None = None
    lookup_param: str | None = None
    natural_key: str | None = None


DESTINATIONS: dict[str, Destination] = {
    d.name: d
    for d in (
        Destination(
            "contents", "contentsData", ContentsTransformer, "register",
            "creator/register/challenge", wrap_key="contents",
        ),
        Destination(
            "materials", "materialsData", MaterialsTransformer, "register",
            "creator/register/material", wrap_key="materials",
        ),
        Destination(
            "posting_guides", "postingGuideData", PostingGuideTransformer, "register",
            "creator/register/postingGuide", wrap_key="guides",
        ),
        Destination(
            "worlds", "worldData", WorldTransformer, "api",
            "world", lookup_param="worldIdx", natural_key="worldIdx",
        ),
        Destination(
            "groups", "groupData", GroupTransformer, "api",
            "world/groups", lookup_param="groupIdx", natural_key="groupIdx",
        ),
        Destination(
            "challenges", "challengeData", ChallengeTransformer, "api",
            "world/challenges", lookup_param="challengeIdx", natural_key="challengeIdx",
        ),
        Destination(
            "chats", "chatData", ChatTransformer, "api",
            "world/chats", lookup_param="chatId", natural_key="chatId",
        ),
        Destination(
            "open_chats", "openChatData", OpenChatTransformer, "api",
            "world/chats", lookup_param="chatId", natural_key="chatIdx",
        ),
        Destination(
            "world_post_guides", "postGuideData", WorldPostGuideTransformer, "api",
            "world/challenges/postGuide", lookup_param="id", natural_key="challengeId",
        ),
    )
}


def build_service(
    destination: Destination,
    client: httpx.AsyncClient,
    rate_limiter: ApiRateLimiter | None = None,
) -> RegisterService | ApiUploadService:
    """
    업로드 대상에 맞는 서비스를 생성합니다.

    Args:
        destination: 업로드 대상 정의
        client: 다운스트림 API용 HTTP 클라이언트
        rate_limiter: 요청 속도 제한기 (기본값: None)

    Returns:
        RegisterService | ApiUploadService: kind에 따른 업로드 서비스

    Raises:
        ValueError: kind에 필요한 설정(wrap_key, lookup_param, natural_key)이 없을 때.
    """
    transformer = destination.transformer()

    if destination.kind == "register":
        if destination.wrap_key is None:
            raise ValueError(f"'{destination.name}': register 대상에는 wrap_key가 필요합니다")
        return RegisterService(
            client=client,
            url=f"{settings.creator_api_base_url.rstrip('/')}/{destination.path}",
            wrap_key=destination.wrap_key,
            transformer=transformer,
            rate_limiter=rate_limiter,
            chunk_size=settings.upload_chunk_size,
            chunk_delay=settings.upload_chunk_delay_seconds,
        )

    if destination.lookup_param is None or destination.natural_key is None:
        raise ValueError(
            f"'{destination.name}': api 대상에는 lookup_param과 natural_key가 필요합니다"
        )
    return ApiUploadService(
        client=client,
        base_url=settings.world_api_base_url,
        resource=destination.path,
        transformer=transformer,
        lookup_param=destination.lookup_param,
        natural_key=destination.natural_key,
        rate_limiter=rate_limiter,
        chunk_size=settings.upload_chunk_size,
        chunk_delay=settings.upload_chunk_delay_seconds,
    )
