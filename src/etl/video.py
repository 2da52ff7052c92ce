import asyncio
import json
from dataclasses import dataclass

from loguru import logger

from src.etl.exceptions import MediaProcessingError


@dataclass
class VideoProbe:
    """ffprobe 결과 중 ETL에서 사용하는 정보."""

    width: int | None
    height: int | None
    codec: str | None = None
    duration: float | None = None


async def _run(*args: str) -> bytes:
    """
    외부 명령을 실행하고 stdout을 반환합니다.

    Raises:
        MediaProcessingError: 실행 파일이 없거나 종료 코드가 0이 아닐 때.
    """
    logger.debug(f"실행: {' '.join(args)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise MediaProcessingError(f"{args[0]} 실행 파일을 찾을 수 없습니다") from e

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        tail = stderr.decode("utf-8", errors="replace")[-500:]
        raise MediaProcessingError(f"{args[0]} 실패 (code={process.returncode}): {tail}")
    return stdout


async def probe(source: str) -> VideoProbe:
    """
    ffprobe로 첫 번째 비디오 스트림의 해상도/코덱을 조회합니다.

    Args:
        source: 로컬 경로 또는 원격 URL

    Returns:
        VideoProbe: 해상도/코덱/길이
    """
    output = await _run(
        "ffprobe",
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_streams",
        "-show_format",
        source,
    )
    metadata = json.loads(output or b"{}")
    stream = next(
        (s for s in metadata.get("streams", []) if s.get("codec_type") == "video"),
        None,
    )
    if stream is None:
        raise MediaProcessingError(f"비디오 스트림 없음: {source}")

    duration = metadata.get("format", {}).get("duration")
    return VideoProbe(
        width=stream.get("width"),
        height=stream.get("height"),
        codec=stream.get("codec_name"),
        duration=float(duration) if duration else None,
    )


def _scale_pad_filter(width: int, height: int) -> str:
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1"
    )


async def transcode(input_path: str, output_path: str, width: int, height: int) -> None:
    """
    모바일 재생용 H.264 baseline MP4로 변환합니다. 비율 유지 후 패딩으로 목표 크기를 맞춥니다.

    Args:
        input_path: 원본 동영상 경로
        output_path: 출력 경로 (.mp4)
        width: 목표 너비
        height: 목표 높이
    """
    await _run(
        "ffmpeg",
        "-y",
        "-i",
        input_path,
        "-vf",
        _scale_pad_filter(width, height),
        "-c:v",
        "libx264",
        "-preset",
        "slower",
        "-crf",
        "24",
        "-profile:v",
        "baseline",
        "-level:v",
        "3.0",
        "-pix_fmt",
        "yuv420p",
        "-movflags",
        "+faststart",
        "-max_muxing_queue_size",
        "9999",
        "-maxrate",
        "2M",
        "-bufsize",
        "4M",
        "-r",
        "24",
        "-g",
        "48",
        "-sc_threshold",
        "0",
        "-keyint_min",
        "48",
        "-err_detect",
        "ignore_err",
        "-c:a",
        "aac",
        "-threads",
        "0",
        output_path,
    )


async def transcode_simple(
    input_path: str, output_path: str, width: int, height: int
) -> None:
    """HEVC 등 기본 변환이 실패한 입력을 위한 단순 변환 (ultrafast, crf 28)."""
    await _run(
        "ffmpeg",
        "-y",
        "-i",
        input_path,
        "-vf",
        _scale_pad_filter(width, height),
        "-c:v",
        "libx264",
        "-preset",
        "ultrafast",
        "-crf",
        "28",
        "-pix_fmt",
        "yuv420p",
        "-movflags",
        "+faststart",
        "-c:a",
        "aac",
        output_path,
    )


async def transcode_with_fallback(
    input_path: str, output_path: str, width: int, height: int
) -> None:
    """
    기본 변환을 시도하고, 실패하면 단순 변환을 한 번 더 시도합니다.

    Raises:
        MediaProcessingError: 두 변환이 모두 실패했을 때.
    """
    try:
        await transcode(input_path, output_path, width, height)
    except MediaProcessingError as e:
        logger.warning(f"기본 변환 실패, 단순 변환으로 재시도: {e}")
        await transcode_simple(input_path, output_path, width, height)


async def extract_frame(
    input_path: str,
    output_path: str,
    timestamp: str = "00:00:01",
    width: int | None = None,
    height: int | None = None,
) -> None:
    """
    동영상의 한 프레임을 이미지로 추출합니다 (썸네일 생성용).

    Args:
        input_path: 동영상 경로
        output_path: 출력 이미지 경로 (.jpg)
        timestamp: 추출 시점
        width: 출력 너비 (height와 함께 지정 시 scale+pad 적용)
        height: 출력 높이
    """
    args = ["ffmpeg", "-y", "-ss", timestamp, "-i", input_path, "-frames:v", "1"]
    if width and height:
        args += ["-vf", _scale_pad_filter(width, height)]
    args += ["-q:v", "2", output_path]
    await _run(*args)
