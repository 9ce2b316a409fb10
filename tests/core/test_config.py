"""Tests for application configuration."""
import pytest

from librarian.core.config import Settings, get_settings


class TestDefaults:
    """Settings used when nothing is configured."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("DATABASE_URL", "HOST", "PORT", "API_URL", "LOG_LEVEL", "CORS_ORIGINS"):
            monkeypatch.delenv(f"LIBRARIAN_{name}", raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///librarian.db"
        assert settings.database_echo is False
        assert settings.host == "127.0.0.1"
        assert settings.port == 8080
        assert settings.api_url == "http://127.0.0.1:8080"
        assert settings.log_level == "INFO"
        assert settings.cors_origins == []


class TestEnvironment:
    """Settings read from LIBRARIAN_* environment variables."""

    def test_reads_prefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIBRARIAN_DATABASE_URL", "sqlite+aiosqlite:///other.db")
        monkeypatch.setenv("LIBRARIAN_PORT", "9999")
        monkeypatch.setenv("LIBRARIAN_API_TIMEOUT", "2.5")

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///other.db"
        assert settings.port == 9999
        assert settings.api_timeout == 2.5

    def test_ignores_unprefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LIBRARIAN_PORT", raising=False)
        monkeypatch.setenv("PORT", "1234")

        assert Settings(_env_file=None).port == 8080

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestCorsOriginsParsing:
    """Tests for CORS origins parsing from environment variables."""

    def test_parse_single_origin_string(self) -> None:
        """Single origin string is parsed correctly."""
        settings = Settings(_env_file=None, LIBRARIAN_CORS_ORIGINS="http://localhost:5173")
        assert settings.cors_origins == ["http://localhost:5173"]

    def test_parse_origins_with_whitespace_and_trailing_comma(self) -> None:
        """Whitespace is stripped and empty entries are dropped."""
        settings = Settings(
            _env_file=None,
            LIBRARIAN_CORS_ORIGINS="  http://localhost:5173 , https://example.com, ",
        )
        assert settings.cors_origins == [
            "http://localhost:5173",
            "https://example.com",
        ]

    def test_parse_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIBRARIAN_CORS_ORIGINS", "https://a.test,https://b.test")
        assert Settings(_env_file=None).cors_origins == ["https://a.test", "https://b.test"]
