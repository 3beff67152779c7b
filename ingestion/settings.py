"""Configuration models for the ingestion service."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import (
    Field,
    NonNegativeFloat,
    PositiveInt,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_USER_AGENT = "FeedIngestion/1.0 (RSS reader)"


class Settings(BaseSettings):
    """Ingestion용 환경 설정."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    postgres_dsn: str = Field(..., alias="POSTGRES_DSN", description="기사 저장소 연결 문자열.")
    store_service_key: Optional[SecretStr] = Field(
        None,
        alias="STORE_SERVICE_KEY",
        description="저장소 특권 자격 증명 (원격 저장소 사용 시 필수).",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        alias="INGESTION_REDIS_URL",
        description="Celery 브로커/백엔드 및 throttle 공유용 Redis DSN.",
    )
    feed_user_agent: str = Field(DEFAULT_USER_AGENT, alias="FEED_USER_AGENT", description="피드 요청 User-Agent.")
    feed_fetch_timeout_seconds: PositiveInt = Field(
        10,
        alias="FEED_FETCH_TIMEOUT_SECONDS",
        description="피드 요청 타임아웃(초).",
    )
    feed_fetch_max_attempts: PositiveInt = Field(
        1,
        alias="FEED_FETCH_MAX_ATTEMPTS",
        description="일시 오류 시 즉시 재시도를 포함한 최대 시도 횟수.",
    )
    max_workers: PositiveInt = Field(4, alias="INGESTION_MAX_WORKERS", description="동시에 처리할 소스 수.")
    source_min_interval_seconds: NonNegativeFloat = Field(
        0.0,
        alias="SOURCE_MIN_INTERVAL_SECONDS",
        description="동일 소스 재요청 최소 간격(초). 0이면 비활성화.",
    )
    ingestion_interval_minutes: PositiveInt = Field(
        30,
        alias="INGESTION_INTERVAL_MINUTES",
        description="정기 수집 주기 (분 단위).",
    )
    ingestion_schedule_enabled: bool = Field(
        True,
        alias="INGESTION_SCHEDULE_ENABLED",
        description="정기 수집 스케줄 사용 여부.",
    )
    structlog_level: str = Field("INFO", alias="STRUCTLOG_LEVEL", description="구조화 로그 레벨.")
    log_json: bool = Field(False, alias="LOG_JSON", description="로그를 JSON 형식으로 출력할지 여부.")
    celery_worker_concurrency: PositiveInt = Field(
        2,
        alias="CELERY_WORKER_CONCURRENCY",
        description="Celery 워커 동시 실행 수.",
    )
    celery_task_soft_time_limit: PositiveInt = Field(
        600,
        alias="CELERY_TASK_SOFT_TIME_LIMIT",
        description="Celery 태스크 소프트 타임아웃 (초).",
    )

    @field_validator("postgres_dsn")
    @classmethod
    def _validate_postgres_dsn(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("POSTGRES_DSN은 유효한 DSN 문자열이어야 합니다.")
        return value

    @field_validator("feed_user_agent")
    @classmethod
    def _validate_user_agent(cls, value: str) -> str:
        agent = value.strip()
        if not agent:
            raise ValueError("FEED_USER_AGENT는 공백일 수 없습니다.")
        return agent

    @property
    def is_local_store(self) -> bool:
        return self.postgres_dsn.startswith("sqlite")

    def require_store_credentials(self) -> None:
        """원격 저장소에 대해 자격 증명이 없으면 ConfigurationError."""
        if self.is_local_store:
            return
        if self.store_service_key is None or not self.store_service_key.get_secret_value().strip():
            raise ConfigurationError("STORE_SERVICE_KEY가 설정되지 않았습니다.")


@lru_cache()
def get_settings() -> Settings:
    """환경 변수를 기준으로 Settings 인스턴스를 반환한다."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"환경 변수 검증에 실패했습니다: {exc}") from exc


def reset_settings_cache() -> None:
    """Settings LRU 캐시를 초기화한다 (테스트 용도)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
