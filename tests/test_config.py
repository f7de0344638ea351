"""Tests for extractor configuration."""

import pytest

from externalizer.config import ExtractorConfig


class TestFromEnv:
    """Tests for environment overrides."""

    def test_defaults_without_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unset variables leave the defaults alone."""
        for name in (
            "EXTERNALIZER_FALLBACK_PREFIX",
            "EXTERNALIZER_TABLE_PATH",
            "EXTERNALIZER_MAX_WORKERS",
        ):
            monkeypatch.delenv(name, raising=False)

        assert ExtractorConfig.from_env() == ExtractorConfig()

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Each variable replaces or extends its setting."""
        monkeypatch.setenv("EXTERNALIZER_FALLBACK_PREFIX", "MyApp.context.")
        monkeypatch.setenv("EXTERNALIZER_TABLE_PATH", "core/src/main/res/values/strings.xml")
        monkeypatch.setenv("EXTERNALIZER_MAX_WORKERS", "8")

        config = ExtractorConfig.from_env()

        assert config.fallback_context_prefix == "MyApp.context."
        assert config.table_paths[0] == "core/src/main/res/values/strings.xml"
        assert config.table_paths[1:] == ExtractorConfig().table_paths
        assert config.max_workers == 8

    def test_empty_prefix_is_kept(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An empty fallback prefix means a bare lookup call."""
        monkeypatch.setenv("EXTERNALIZER_FALLBACK_PREFIX", "")
        assert ExtractorConfig.from_env().fallback_context_prefix == ""

    def test_worker_count_floor(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Worker counts below one are raised to one."""
        monkeypatch.setenv("EXTERNALIZER_MAX_WORKERS", "0")
        assert ExtractorConfig.from_env().max_workers == 1
