"""Application Settings"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    アプリケーション設定

    12-Factor App の Config 原則に従い、
    すべての設定は環境変数から取得する。
    """

    model_config = SettingsConfigDict(
        env_prefix="ESIGN_",
        env_file=".env",
        case_sensitive=False,
    )

    # Service
    service_name: str = "signature-service"
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # AWS
    aws_region: str = "us-east-1"

    # DynamoDB
    envelopes_table: str = "esign-envelopes"
    outbox_table: str = "esign-outbox"
    outbox_status_index: str = "gsi1"
    idempotency_table: str = "esign-idempotency"
    rate_limit_table: str = "esign-rate-limit"

    # EventBridge
    event_bus_name: str = "esign-events"
    event_source: str = "signature-service"

    # Idempotency
    idempotency_ttl_seconds: int = 300

    # Rate limit
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 100
    rate_limit_ttl_seconds: int = 120

    # Outbox relay
    outbox_batch_size: int = 25
    outbox_max_retries: int = 3
    outbox_retry_delay_ms: int = 1000

    # Auth (JWT)
    auth_disabled: bool = False
    jwt_secret: str = ""
    jwt_algorithms: list[str] = ["RS256"]
    jwt_audience: str = ""
    jwt_issuer: str = ""
    cognito_jwks_url: str = ""
    default_tenant_id: str = "default"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """設定のシングルトンインスタンスを取得"""
    return Settings()
