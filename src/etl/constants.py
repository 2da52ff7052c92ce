from dataclasses import dataclass

from src.etl.transformers.fields import CONTENTS_FIELDS

# 세로형 동영상 썸네일 기준 크기 (4:5)
VIDEO_TIER_SIZES: dict[str, tuple[int, int]] = {
    "tiny": (284, 355),
    "small": (568, 709),
    "medium": (852, 1064),
    "large": (1136, 1418),
}


@dataclass(frozen=True)
class TableSpec:
    """
    수집 대상 테이블 정의. prefix는 스냅샷 파일명과 S3 키 접두사로 쓰입니다.

    media_fields가 비어있으면 변환 옵션을 모든 첨부파일 컬럼에 적용하고,
    지정되면 해당 컬럼에만 적용합니다 (나머지 컬럼은 그대로 재호스팅).
    """

    prefix: str
    table_name: str
    view_name: str = "Grid view"
    video_target: tuple[int, int] | None = None
    video_frames: bool = False
    image_tiers: bool = False
    probe_dimensions: bool = False
    media_fields: tuple[str, ...] = ()


# Base별 수집 테이블 (실행 순서 = 선언 순서)
CHALLENGE_TABLES: list[TableSpec] = [
    TableSpec(
        prefix="contentsData",
        table_name="챌린지 콘텐츠",
        view_name="업로드 대상",
        video_target=VIDEO_TIER_SIZES["small"],
        video_frames=True,
        media_fields=(CONTENTS_FIELDS["thumbnail"],),
    ),
    TableSpec(prefix="materialsData", table_name="준비물", view_name="Grid view"),
    TableSpec(prefix="postingGuideData", table_name="포스팅 가이드", view_name="Grid view"),
]

WORLD_TABLES: list[TableSpec] = [
    TableSpec(prefix="worldData", table_name="월드", probe_dimensions=True),
    TableSpec(prefix="groupData", table_name="그룹", probe_dimensions=True),
    TableSpec(prefix="challengeData", table_name="챌린지 소개", probe_dimensions=True),
    TableSpec(prefix="chatData", table_name="챌린지 대화", probe_dimensions=True),
    TableSpec(prefix="openChatData", table_name="매개자-유저 대화", probe_dimensions=True),
    TableSpec(prefix="postGuideData", table_name="포스트 가이드", probe_dimensions=True),
]

PARTS_TABLES: list[TableSpec] = [
    TableSpec(prefix="partsData", table_name="파츠", image_tiers=True),
]

TABLES_BY_BASE: dict[str, list[TableSpec]] = {
    "challenge": CHALLENGE_TABLES,
    "world": WORLD_TABLES,
    "parts": PARTS_TABLES,
}

# 스냅샷 파일명: {prefix}-updateAt{YYYYMMDD}.json
SNAPSHOT_NAME_TEMPLATE = "{prefix}-updateAt{date}.json"
SNAPSHOT_DATE_FORMAT = "%Y%m%d"

# 썸네일 티어 (작은 것부터)
THUMBNAIL_TIERS = ("tiny", "small", "medium", "large")

# 티어가 비어있을 때 대체할 티어의 우선순위
TIER_FALLBACK: dict[str, tuple[str, ...]] = {
    "tiny": ("small", "medium", "large"),
    "small": ("medium", "tiny", "large"),
    "medium": ("large", "small", "tiny"),
    "large": ("medium", "small", "tiny"),
}

# Airtable 첨부파일 썸네일 키 → 티어 (tiny 키는 재호스팅 중 생성한 썸네일에만 있음)
AIRTABLE_THUMBNAIL_TIERS: dict[str, tuple[str, ...]] = {
    "tiny": ("tiny", "small"),
    "small": ("small",),
    "medium": ("large",),
    "large": ("full",),
}

# 이미지 티어 리사이즈 기준 (긴 변 px)
IMAGE_TIER_SIZES: dict[str, int] = {
    "tiny": 100,
    "small": 300,
    "medium": 600,
    "large": 1200,
}

CACHE_CONTROL = "max-age=31536000"
S3_DELETE_BATCH_SIZE = 1000

# 본문 텍스트 안의 메시지 분리 문자 (일반/전각 백슬래시)
MESSAGE_DELIMITERS = ("\\", "＼")
