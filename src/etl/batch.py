"""테이블 단위 수집(중복 제거 + 미디어 재호스팅 + 스냅샷 저장)을 담당하는 모듈."""

import time
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from loguru import logger

from src.etl.constants import TableSpec
from src.etl.interfaces import RawRecord, TableClient
from src.etl.media import MediaOptions
from src.etl.rehoster import RecordRehoster
from src.etl.snapshot import SnapshotStore


class GatherState(StrEnum):
    """테이블 하나를 처리하는 단계. 선언 순서대로 진행합니다."""

    LOAD_EXISTING = "load_existing"
    FETCH_REMOTE = "fetch_remote"
    DIFF = "diff"
    PROCESS_NEW = "process_new"
    MERGE = "merge"
    PERSIST = "persist"


@dataclass
class GatherResult:
    """테이블 수집 결과를 나타내는 데이터 클래스."""

    prefix: str
    table_name: str
    existing_count: int = 0
    remote_count: int = 0
    new_count: int = 0
    dropped_count: int = 0
    snapshot_path: str | None = None
    elapsed_seconds: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def diff_new_records(
    existing: list[RawRecord], remote: list[RawRecord]
) -> list[RawRecord]:
    """
    원격 레코드 중 기존 스냅샷에 없는 id만 원격 순서대로 반환합니다.

    이미 수집된 id는 원격에서 내용이 바뀌었더라도 다시 처리하지 않습니다.
    """
    existing_ids = {record["id"] for record in existing}
    new_records: list[RawRecord] = []
    for record in remote:
        if record["id"] in existing_ids:
            continue
        existing_ids.add(record["id"])
        new_records.append(record)
    return new_records


class GatheringDriver:
    """
    테이블별로 LOAD_EXISTING → FETCH_REMOTE → DIFF → PROCESS_NEW → MERGE → PERSIST를 수행합니다.

    Example:
        ```python
        driver = GatheringDriver(table_client, rehoster, SnapshotStore("data/rawData"))
        results = await driver.run(CHALLENGE_TABLES)
        ```
    """

    def __init__(
        self,
        table_client: TableClient,
        rehoster: RecordRehoster,
        snapshot_store: SnapshotStore,
    ) -> None:
        """
        Args:
            table_client: 원격 테이블 조회 클라이언트
            rehoster: 첨부파일 재호스팅 컴포넌트
            snapshot_store: 로컬 스냅샷 저장소
        """
        self._table_client = table_client
        self._rehoster = rehoster
        self._snapshot_store = snapshot_store

    async def run(
        self, table_specs: list[TableSpec], day: date | None = None
    ) -> list[GatherResult]:
        """
        모든 테이블을 순서대로 수집합니다. 한 테이블의 실패는 다음 테이블에 영향을 주지 않습니다.

        Args:
            table_specs: 수집할 테이블 목록
            day: 스냅샷 파일명 날짜 (기본값: 오늘)

        Returns:
            list[GatherResult]: 테이블별 수집 결과
        """
        results: list[GatherResult] = []
        total = len(table_specs)

        for index, spec in enumerate(table_specs, start=1):
            logger.info(f"테이블 처리 중 ({index}/{total}): {spec.table_name}")
            try:
                result = await self.run_table(spec, day)
            except Exception as e:
                logger.error(f"테이블 '{spec.table_name}' ({spec.prefix}) 처리 실패: {e}")
                result = GatherResult(
                    prefix=spec.prefix, table_name=spec.table_name, error=str(e)
                )
            results.append(result)

        failed = sum(1 for r in results if not r.ok)
        new_total = sum(r.new_count for r in results)
        logger.info(
            f"수집 요약: 테이블 {total}개, 신규 레코드 {new_total}개, 실패 테이블 {failed}개"
        )
        return results

    async def run_table(self, spec: TableSpec, day: date | None = None) -> GatherResult:
        """
        테이블 하나를 수집합니다.

        Args:
            spec: 테이블 정의
            day: 스냅샷 파일명 날짜 (기본값: 오늘)

        Returns:
            GatherResult: 수집 결과
        """
        start_time = time.perf_counter()
        result = GatherResult(prefix=spec.prefix, table_name=spec.table_name)

        logger.debug(f"[{spec.prefix}] {GatherState.LOAD_EXISTING}")
        existing = self._snapshot_store.load_existing(spec.prefix)
        result.existing_count = len(existing)

        logger.debug(f"[{spec.prefix}] {GatherState.FETCH_REMOTE}")
        remote = await self._table_client.fetch_table_data(spec.table_name, spec.view_name)
        result.remote_count = len(remote)

        logger.debug(f"[{spec.prefix}] {GatherState.DIFF}")
        candidates = diff_new_records(existing, remote)
        logger.info(
            f"'{spec.table_name}': 원격 {len(remote)}개, 기존 {len(existing)}개, "
            f"신규 {len(candidates)}개"
        )

        logger.debug(f"[{spec.prefix}] {GatherState.PROCESS_NEW}")
        processed = await self._process_new(spec, candidates)
        result.new_count = len(processed)
        result.dropped_count = len(candidates) - len(processed)

        logger.debug(f"[{spec.prefix}] {GatherState.MERGE}")
        merged = existing + processed

        logger.debug(f"[{spec.prefix}] {GatherState.PERSIST}")
        path = self._snapshot_store.write(spec.prefix, merged, day)
        result.snapshot_path = str(path)
        result.elapsed_seconds = time.perf_counter() - start_time

        logger.success(
            f"테이블 '{spec.table_name}': 신규 {result.new_count}개 처리, "
            f"{result.dropped_count}개 제외, {path.name} 저장 "
            f"({result.elapsed_seconds:.2f}초)"
        )
        return result

    async def _process_new(
        self, spec: TableSpec, records: list[RawRecord]
    ) -> list[RawRecord]:
        """신규 레코드의 첨부파일을 재호스팅합니다. 예외가 난 레코드는 로그 후 제외합니다."""
        options = MediaOptions.for_table(spec)
        processed: list[RawRecord] = []

        for index, record in enumerate(records, start=1):
            logger.debug(f"[{spec.prefix}] 레코드 처리 {index}/{len(records)}: {record['id']}")
            try:
                await self._rehoster.rehost(record, spec.prefix, options)
            except Exception as e:
                logger.error(
                    f"레코드 {record['id']} ({spec.table_name}) 처리 실패, 제외합니다: {e}"
                )
                continue
            processed.append(record)

        return processed
