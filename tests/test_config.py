"""Unit tests for notes_api.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from notes_api.config import Settings

_ENV_VARS = ("HOST", "PORT", "ENVIRONMENT", "NOTES_FILE", "ATOMIC_WRITES", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    """Isolate from the caller's environment and any local .env file."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.port == 3000
        assert settings.environment == "development"
        assert settings.notes_file == Path("notes.json")
        assert settings.atomic_writes is False
        assert settings.is_production is False

    def test_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("NOTES_FILE", "/var/lib/notes/notes.json")
        monkeypatch.setenv("ATOMIC_WRITES", "true")
        settings = Settings()
        assert settings.port == 8080
        assert settings.is_production is True
        assert settings.notes_file == Path("/var/lib/notes/notes.json")
        assert settings.atomic_writes is True

    def test_from_env_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("PORT=4000\nENVIRONMENT=staging\n", encoding="utf-8")
        settings = Settings()
        assert settings.port == 4000
        assert settings.environment == "staging"
        assert settings.is_production is False

    @pytest.mark.parametrize("value", ["production", "Production", " PRODUCTION "])
    def test_is_production_case_insensitive(self, value: str) -> None:
        assert Settings(environment=value).is_production is True

    def test_invalid_port(self, monkeypatch) -> None:
        monkeypatch.setenv("PORT", "not-a-port")
        with pytest.raises(Exception):
            Settings()
