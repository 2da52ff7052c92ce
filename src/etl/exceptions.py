class EtlError(Exception):
    """ETL 파이프라인 공통 예외."""


class RequiredFieldError(EtlError):
    """레코드에 필수 필드가 없을 때 발생합니다. 레코드 단위로 처리됩니다."""

    def __init__(self, field: str, record_id: str | None = None) -> None:
        self.field = field
        self.record_id = record_id
        super().__init__(f"필수 필드 누락: {field} (record={record_id})")


class MediaProcessingError(EtlError):
    """트랜스코딩/프로브 등 미디어 처리 실패."""


class SnapshotNotFoundError(EtlError):
    """지정된 prefix의 스냅샷 파일이 존재하지 않을 때 발생합니다."""

    def __init__(self, prefix: str, data_dir: str) -> None:
        self.prefix = prefix
        super().__init__(f"스냅샷 파일 없음: {prefix}-updateAt*.json (dir={data_dir})")


class UploadError(EtlError):
    """다운스트림 API 전송 실패."""
