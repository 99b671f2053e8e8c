"""
Tests for Settings: defaults, YAML file and environment overrides.
"""

from pathlib import Path

import pytest

from autonews import validate_dependencies
from autonews.config import Settings


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run from an empty directory so no stray config.yaml or .env is read."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestSettings:
    def test_defaults(self, workdir):
        settings = Settings()
        assert settings.summarizer.max_attempts == 5
        assert settings.summarizer.base_timeout == 30.0
        assert settings.media_service.tts_timeout == 60.0
        assert settings.media_service.render_timeout == 120.0
        assert settings.automation.interval_seconds == 3600.0
        assert settings.publisher.token_file == Path("youtube-tokens.json")

    def test_yaml_file(self, workdir):
        (workdir / "config.yaml").write_text(
            "automation:\n"
            "  interval_seconds: 900\n"
            "  topics: [energy, health]\n"
            "storage:\n"
            "  tmp_dir: /var/tmp/autonews\n"
        )
        settings = Settings()
        assert settings.automation.interval_seconds == 900
        assert settings.automation.topics == ["energy", "health"]
        assert settings.storage.tmp_dir == Path("/var/tmp/autonews")

    def test_env_overrides_yaml(self, workdir, monkeypatch):
        (workdir / "config.yaml").write_text("summarizer:\n  api_key: from-yaml\n")
        monkeypatch.setenv("AUTONEWS_SUMMARIZER__API_KEY", "from-env")
        monkeypatch.setenv("AUTONEWS_SERVER__PORT", "8080")

        settings = Settings()
        assert settings.summarizer.api_key == "from-env"
        assert settings.server.port == 8080


class TestValidateDependencies:
    def test_reports_missing_credentials(self, workdir):
        missing = validate_dependencies(Settings())
        assert len(missing) == 3

    def test_nothing_missing(self, workdir, monkeypatch):
        (workdir / "youtube-tokens.json").write_text("{}")
        for name, value in {
            "AUTONEWS_NEWS_SOURCE__API_KEY": "gnews",
            "AUTONEWS_SUMMARIZER__API_KEY": "hf",
            "AUTONEWS_PUBLISHER__CLIENT_ID": "cid",
            "AUTONEWS_PUBLISHER__CLIENT_SECRET": "secret",
        }.items():
            monkeypatch.setenv(name, value)
        assert validate_dependencies(Settings()) == []
