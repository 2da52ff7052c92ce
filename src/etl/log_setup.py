import sys

from loguru import logger

from src.config import settings


def setup_logging(name: str = "etl") -> None:
    """
    로깅 설정을 초기화합니다.

    기본 sink를 제거하고 stderr와 회전 로그 파일(`logs/{name}_{time}.log`)을 추가합니다.

    Args:
        name: 로그 파일 이름 접두사
    """
    logger.remove()
    log_level = "DEBUG" if settings.debug else settings.log_level.upper()
    logger.add(sys.stderr, level=log_level)

    logger.add(
        f"logs/{name}_{{time:YYYY-MM-DD-HH-mm-ss}}.log",
        rotation="10 MB",
        compression="zip",
        level=log_level,
        encoding="utf-8",
    )
