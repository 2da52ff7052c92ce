import json
import os
import re
import tempfile
from datetime import date, datetime
from pathlib import Path

from loguru import logger

from src.etl.constants import SNAPSHOT_DATE_FORMAT, SNAPSHOT_NAME_TEMPLATE
from src.etl.exceptions import SnapshotNotFoundError
from src.etl.interfaces import RawRecord


class SnapshotStore:
    """
    `{prefix}-updateAt{YYYYMMDD}.json` 형태의 로컬 스냅샷 파일 관리자.

    prefix당 최신 스냅샷 하나만 유지합니다. 새 파일을 먼저 원자적으로 기록한 뒤
    이전 파일을 삭제하므로, 중간에 중단되어도 유효한 스냅샷이 최소 하나 남습니다.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @staticmethod
    def snapshot_name(prefix: str, day: date | None = None) -> str:
        day = day or datetime.now().date()
        return SNAPSHOT_NAME_TEMPLATE.format(
            prefix=prefix, date=day.strftime(SNAPSHOT_DATE_FORMAT)
        )

    def _pattern(self, prefix: str) -> re.Pattern[str]:
        return re.compile(rf"^{re.escape(prefix)}-updateAt(\d{{8}})\.json$")

    def list_snapshots(self, prefix: str) -> list[Path]:
        """
        prefix의 스냅샷 파일 목록을 날짜 내림차순으로 반환합니다.

        Args:
            prefix: 스냅샷 prefix (예: "contentsData")

        Returns:
            list[Path]: 최신 파일이 먼저 오는 경로 목록
        """
        if not self._data_dir.is_dir():
            return []

        pattern = self._pattern(prefix)
        matched: list[tuple[str, Path]] = []
        for path in self._data_dir.iterdir():
            match = pattern.match(path.name)
            if match:
                matched.append((match.group(1), path))

        matched.sort(key=lambda item: item[0], reverse=True)
        return [path for _, path in matched]

    def find_latest(self, prefix: str) -> Path | None:
        snapshots = self.list_snapshots(prefix)
        return snapshots[0] if snapshots else None

    def load_existing(self, prefix: str) -> list[RawRecord]:
        """가장 최근 스냅샷을 읽습니다. 없으면 빈 리스트를 반환합니다."""
        latest = self.find_latest(prefix)
        if latest is None:
            logger.info(f"'{prefix}' 기존 스냅샷 없음. 빈 상태로 시작합니다.")
            return []
        return self._read(latest)

    def load_latest(self, prefix: str, day: date | None = None) -> list[RawRecord]:
        """
        업로드용으로 스냅샷을 읽습니다.

        Args:
            prefix: 스냅샷 prefix
            day: 특정 날짜의 스냅샷을 요구할 때 지정 (기본값: 최신)

        Raises:
            SnapshotNotFoundError: 해당하는 스냅샷이 없을 때
        """
        if day is not None:
            path = self._data_dir / self.snapshot_name(prefix, day)
            if not path.is_file():
                raise SnapshotNotFoundError(prefix, str(self._data_dir))
            return self._read(path)

        latest = self.find_latest(prefix)
        if latest is None:
            raise SnapshotNotFoundError(prefix, str(self._data_dir))
        return self._read(latest)

    def write(
        self, prefix: str, records: list[RawRecord], day: date | None = None
    ) -> Path:
        """
        새 스냅샷을 기록하고 이전 스냅샷들을 삭제합니다.

        임시 파일에 먼저 쓴 뒤 `os.replace`로 교체하고, 교체가 끝난 다음에만
        같은 prefix의 이전 파일을 지웁니다.

        Args:
            prefix: 스냅샷 prefix
            records: 저장할 레코드 목록
            day: 파일명에 쓸 날짜 (기본값: 오늘)

        Returns:
            Path: 기록된 스냅샷 경로
        """
        self._data_dir.mkdir(parents=True, exist_ok=True)
        target = self._data_dir / self.snapshot_name(prefix, day)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{prefix}-", suffix=".json.tmp", dir=self._data_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        for old in self.list_snapshots(prefix):
            if old != target:
                old.unlink(missing_ok=True)
                logger.debug(f"이전 스냅샷 삭제: {old.name}")

        logger.info(f"스냅샷 저장 완료: {target.name} ({len(records)}개 레코드)")
        return target

    @staticmethod
    def _read(path: Path) -> list[RawRecord]:
        with path.open(encoding="utf-8") as f:
            data: list[RawRecord] = json.load(f)
        logger.debug(f"스냅샷 로드: {path.name} ({len(data)}개 레코드)")
        return data
