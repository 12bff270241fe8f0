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

    def test_default_max_delivery_attempts(self) -> None:
        s = Settings()
        assert s.max_delivery_attempts == 3

    def test_default_extraction_timeout(self) -> None:
        s = Settings()
        assert s.extraction_timeout_seconds == 60.0

    def test_default_cache_ttls(self) -> None:
        s = Settings()
        assert s.status_cache_extraction_ttl_seconds == 3600
        assert s.status_cache_default_ttl_seconds is None

    def test_default_categories(self) -> None:
        s = Settings()
        assert s.classification_categories == [
            "invoice",
            "receipt",
            "contract",
            "id_card",
            "resume",
        ]

    def test_failure_markers_disabled_by_default(self) -> None:
        s = Settings()
        assert s.publish_failure_markers is False


class TestSettingsFromEnv:
    def test_loads_redis_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
        s = Settings()
        assert s.redis_url == "redis://cache:6379/2"

    def test_loads_pdf_engine(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PDF_ENGINE", "pymupdf")
        s = Settings()
        assert s.pdf_engine == "pymupdf"

    def test_loads_categories_as_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLASSIFICATION_CATEGORIES", '["Invoice", "payslip"]')
        s = Settings()
        assert s.classification_categories == ["invoice", "payslip"]

    def test_loads_failure_markers_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PUBLISH_FAILURE_MARKERS", "true")
        s = Settings()
        assert s.publish_failure_markers is True


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_attempts_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_DELIVERY_ATTEMPTS", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_non_positive_timeout_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXTRACTION_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_empty_categories_raise(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLASSIFICATION_CATEGORIES", "[]")
        with pytest.raises(ValidationError):
            Settings()

    def test_duplicate_categories_raise(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLASSIFICATION_CATEGORIES", '["invoice", "INVOICE"]')
        with pytest.raises(ValidationError):
            Settings()

    def test_unknown_category_is_reserved(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLASSIFICATION_CATEGORIES", '["invoice", "unknown"]')
        with pytest.raises(ValidationError, match="reserved"):
            Settings()
