import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from src.config import settings
from src.etl.exceptions import SnapshotNotFoundError
from src.etl.log_setup import setup_logging
from src.etl.snapshot import SnapshotStore
from src.etl.transformers.parts import PartsTransformer

PARTS_PREFIX = "partsData"


def main(output_dir: str | None = None) -> int:
    """
    최신 파츠 스냅샷을 문서 저장소 스키마로 변환하여 `mongo-{스냅샷 파일명}`으로 저장합니다.

    Returns:
        int: 프로세스 종료 코드
    """
    setup_logging("transform_parts")
    store = SnapshotStore(settings.data_dir)

    latest = store.find_latest(PARTS_PREFIX)
    if latest is None:
        logger.error(str(SnapshotNotFoundError(PARTS_PREFIX, str(store.data_dir))))
        return 1

    documents = PartsTransformer().transform_many(store.load_existing(PARTS_PREFIX))

    target_dir = Path(output_dir) if output_dir else store.data_dir
    target_dir.mkdir(parents=True, exist_ok=True)
    output_path = target_dir / f"mongo-{latest.name}"
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(documents, f, ensure_ascii=False, indent=2)

    logger.success(f"파츠 변환 완료: {output_path} ({len(documents)}개 문서)")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="파츠 스냅샷을 문서 저장소 형식 JSON으로 변환")
    parser.add_argument(
        "--output-dir",
        type=str,
        help="출력 디렉토리 (기본값: 스냅샷 디렉토리)",
    )
    args = parser.parse_args()

    try:
        exit_code = main(output_dir=args.output_dir)
    except Exception as e:
        logger.exception(f"파츠 변환 중 치명적 오류: {e}")
        exit_code = 1
    sys.exit(exit_code)
