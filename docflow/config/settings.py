from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docflow"
    db_username: str = "docflow"
    db_password: str = "secret"
    db_pool_max_size: int = 10
    db_connect_timeout_seconds: float = 5.0

    queue_backend: str = "auto"
    extract_concurrency: int = Field(default=5, ge=1)
    retry_concurrency: int = Field(default=2, ge=1)
    max_job_attempts: int = Field(default=3, ge=1)
    retry_job_max_attempts: int = Field(default=1, ge=1)
    job_backoff_base_seconds: float = 2.0
    initial_delay_seconds: float = 0.0
    stalled_interval_seconds: float = Field(default=30.0, gt=0)
    max_stalled_count: int = 1
    job_poll_interval_seconds: float = Field(default=1.0, gt=0)
    clean_grace_seconds: int = 24 * 60 * 60
    maintenance_interval_seconds: float = Field(default=5 * 60, gt=0)

    files_root: str = "/app/files"
    max_file_size_bytes: int = 100 * 1024 * 1024
    extraction_timeout_seconds: float = 5 * 60
    supported_mime_types: list[str] = ["application/pdf"]
    pdf_engine: str = "pdfplumber"
    estimated_seconds_per_job: float = 30.0

    ai_provider: str = "openai"
    ai_api_key: str = ""
    ai_base_url: str | None = None
    ai_models: list[str] = ["gpt-4o-mini", "gpt-4o", "gpt-3.5-turbo"]
    ai_timeout_seconds: int = 60
    ai_temperature: float = 0.3
