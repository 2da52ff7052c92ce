from abc import ABC, abstractmethod
from typing import Any

RawRecord = dict[str, Any]


class TableClient(ABC):
    """
    TableClient 인터페이스.

    외부 테이블 소스(Airtable 등)에서 레코드를 가져오는 메서드를 정의합니다.
    """

    @abstractmethod
    async def fetch_table_data(self, table_name: str, view_name: str) -> list[RawRecord]:
        """
        테이블/뷰의 모든 행을 가져옵니다.

        Args:
            table_name (str): 테이블 이름.
            view_name (str): 뷰 이름.

        Returns:
            list[RawRecord]: 최상위 `id`와 평탄화된 필드 맵을 가진 레코드 목록.
        """
        raise NotImplementedError
        return []


class EntityUploader(ABC):
    """
    EntityUploader 인터페이스.

    변환된 엔티티를 다운스트림 API에 생성/갱신하는 메서드를 정의합니다.
    """

    @abstractmethod
    async def create(self, raw: RawRecord) -> dict[str, Any]:
        """
        레코드를 변환하여 원격에 새로 생성합니다.

        Args:
            raw (RawRecord): 스냅샷에서 읽은 원본 레코드.

        Returns:
            dict[str, Any]: 원격 API 응답.
        """
        raise NotImplementedError
        return {}

    @abstractmethod
    async def update(self, raw: RawRecord) -> dict[str, Any]:
        """
        자연 키로 원격 레코드를 찾아 갱신하고, 없으면 생성합니다.

        Args:
            raw (RawRecord): 스냅샷에서 읽은 원본 레코드.

        Returns:
            dict[str, Any]: 원격 API 응답.
        """
        raise NotImplementedError
        return {}
