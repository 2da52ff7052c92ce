"""Configuration management for the contents ETL.

이 파일은 환경 변수를 타입 안전하게 관리합니다.
Pydantic을 사용해서 자동으로 .env 파일을 읽고 검증합니다.

사용법:
    from src.config import settings

    # settings 객체를 통해 환경 변수 접근
    api_key = settings.airtable_api_key
"""

from typing import Literal

from pydantic import Field, PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):  # type: ignore[misc]
    """
    애플리케이션 설정 클래스.

    .env 파일의 환경 변수를 자동으로 로드하고 타입 검증합니다.
    필수 필드는 `...`로 표시되며, 없으면 에러가 발생합니다.
    """

    # Airtable 자격증명 (필수)
    airtable_api_key: str = Field(..., description="Airtable API Key")
    airtable_endpoint_url: str = Field(
        default="https://api.airtable.com", description="Airtable Endpoint URL"
    )
    challenge_base_id: str | None = Field(default=None, description="챌린지 Base ID")
    world_base_id: str | None = Field(default=None, description="월드 Base ID")
    parts_base_id: str | None = Field(default=None, description="파츠 Base ID")

    # 환경 설정 (선택, 기본값 있음)
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # AWS 설정
    aws_default_region: str = Field(
        default="ap-northeast-2", description="AWS Default Region"
    )
    aws_access_key_id: str | None = Field(default=None, description="AWS Access Key ID")
    aws_secret_access_key: str | None = Field(
        default=None, description="AWS Secret Access Key"
    )
    challenge_bucket_name: str | None = Field(
        default=None, description="챌린지 미디어 S3 버킷"
    )
    world_bucket_name: str | None = Field(default=None, description="월드 미디어 S3 버킷")
    challenge_cdn_domain: str = Field(
        default="cdn-challenge.ahhaohho.com", description="챌린지 CDN 도메인"
    )
    world_cdn_domain: str = Field(
        default="cdn-world.ahhaohho.com", description="월드 CDN 도메인"
    )
    parts_bucket_name: str | None = Field(default=None, description="파츠 에셋 S3 버킷")
    parts_cdn_domain: str = Field(
        default="cdn-user-profile.ahhaohho.com", description="파츠 CDN 도메인"
    )

    # 다운스트림 API
    creator_api_base_url: str = Field(
        default="https://develop.ahhaohho.com:4222",
        description="크리에이터 등록 API Base URL",
    )
    world_api_base_url: str = Field(
        default="https://world.ahhaohho.com", description="월드 API Base URL"
    )
    # 다운스트림 API 클라이언트에만 적용되는 TLS 검증 예외 스위치
    api_verify_tls: bool = Field(
        default=True, description="다운스트림 API 인증서 검증 여부"
    )

    # 로컬 스냅샷
    data_dir: str = Field(default="data/rawData", description="스냅샷 저장 디렉토리")

    # 미디어 처리
    max_media_bytes: PositiveInt = Field(
        default=150 * 1024 * 1024, description="이 크기를 넘는 미디어는 재호스팅하지 않음"
    )
    download_timeout_seconds: PositiveFloat = Field(
        default=600.0, description="미디어 다운로드 타임아웃"
    )

    # Airtable Rate limiting (Base 단위)
    airtable_requests_per_second: PositiveFloat = Field(
        default=5.0, description="Airtable Base당 초당 요청 수"
    )
    airtable_max_concurrency: PositiveInt = Field(
        default=1, description="Airtable Base당 최대 동시 요청 수"
    )

    # 업로드 배치 / Rate limiting
    upload_chunk_size: PositiveInt = Field(default=10, description="API 전송 청크 크기")
    upload_chunk_delay_seconds: float = Field(
        default=1.0, ge=0, description="청크 간 대기 시간"
    )
    api_requests_per_second: PositiveFloat = Field(
        default=5.0, description="다운스트림 API 초당 요청 수"
    )
    api_max_concurrency: PositiveInt = Field(
        default=5, description="다운스트림 API 최대 동시 요청 수"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )


# 전역 settings 인스턴스 (import해서 사용)
settings = Settings()
