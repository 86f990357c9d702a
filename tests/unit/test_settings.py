import pytest
from pydantic import ValidationError

from docflow.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_queue(self) -> None:
        s = Settings()
        assert s.queue_backend == "auto"
        assert s.extract_concurrency == 5
        assert s.retry_concurrency == 2
        assert s.max_job_attempts == 3
        assert s.retry_job_max_attempts == 1
        assert s.job_backoff_base_seconds == 2.0
        assert s.stalled_interval_seconds == 30.0
        assert s.max_stalled_count == 1

    def test_default_extraction_limits(self) -> None:
        s = Settings()
        assert s.max_file_size_bytes == 100 * 1024 * 1024
        assert s.extraction_timeout_seconds == 300
        assert s.supported_mime_types == ["application/pdf"]
        assert s.pdf_engine == "pdfplumber"

    def test_default_ai(self) -> None:
        s = Settings()
        assert s.ai_provider == "openai"
        assert len(s.ai_models) == 3


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_max_job_attempts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_JOB_ATTEMPTS", "5")
        s = Settings()
        assert s.max_job_attempts == 5

    def test_loads_models_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AI_MODELS", '["a", "b"]')
        s = Settings()
        assert s.ai_models == ["a", "b"]


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_max_attempts_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_JOB_ATTEMPTS", "abc")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_concurrency_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXTRACT_CONCURRENCY", "0")
        with pytest.raises(ValidationError):
            Settings()

    @pytest.mark.parametrize(
        "env_name",
        ["STALLED_INTERVAL_SECONDS", "JOB_POLL_INTERVAL_SECONDS", "MAINTENANCE_INTERVAL_SECONDS"],
    )
    def test_non_positive_interval_raises(
        self, monkeypatch: pytest.MonkeyPatch, env_name: str
    ) -> None:
        monkeypatch.setenv(env_name, "0")
        with pytest.raises(ValidationError):
            Settings()
