import io

from PIL import Image

from src.etl.constants import IMAGE_TIER_SIZES


def read_dimensions(data: bytes) -> tuple[int, int]:
    """이미지 바이트의 (너비, 높이)를 반환합니다. 이미지가 아니면 PIL 예외가 전파됩니다."""
    with Image.open(io.BytesIO(data)) as image:
        return image.size


def tier_size(width: int, height: int, long_edge: int) -> tuple[int, int]:
    """
    긴 변을 `long_edge`에 맞춘 크기를 계산합니다. 원본보다 키우지 않습니다.

    Args:
        width: 원본 너비
        height: 원본 높이
        long_edge: 목표 긴 변 길이(px)

    Returns:
        tuple[int, int]: (너비, 높이)
    """
    current = max(width, height)
    if current <= long_edge:
        return width, height

    ratio = long_edge / current
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def resize_to_tiers(data: bytes) -> dict[str, bytes]:
    """
    이미지를 tiny/small/medium/large 티어의 JPEG로 변환합니다.

    Args:
        data: 원본 이미지 바이트

    Returns:
        dict[str, bytes]: 티어 이름 → JPEG 바이트
    """
    variants: dict[str, bytes] = {}
    with Image.open(io.BytesIO(data)) as source:
        image = source.convert("RGB")

    for tier, long_edge in IMAGE_TIER_SIZES.items():
        size = tier_size(image.width, image.height, long_edge)
        resized = image if size == image.size else image.resize(size, Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        resized.save(buffer, format="JPEG", quality=85, optimize=True)
        variants[tier] = buffer.getvalue()

    return variants
