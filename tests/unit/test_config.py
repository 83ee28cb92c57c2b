"""Unit tests for configuration defaults and validation."""

from __future__ import annotations

import platformdirs
import pytest
from pydantic import ValidationError

from repocontext.config import (
    _DEFAULT_CACHE_DIR,
    _DEFAULT_DB_PATH,
    AssemblerSettings,
    CacheSettings,
    Settings,
)


class TestPlatformDefaults:
    """Cache locations come from platformdirs, not hardcoded Unix paths."""

    def test_default_cache_dir_matches_platformdirs(self) -> None:
        assert platformdirs.user_cache_dir("repocontext") == _DEFAULT_CACHE_DIR

    def test_default_db_path_under_cache_dir(self) -> None:
        assert _DEFAULT_DB_PATH.startswith(_DEFAULT_CACHE_DIR)
        assert _DEFAULT_DB_PATH.endswith("cache.db")

    def test_cache_settings_defaults(self) -> None:
        settings = CacheSettings()
        assert settings.backend == "directory"
        assert settings.dir == _DEFAULT_CACHE_DIR
        assert settings.tree_ttl_hours == 24


class TestDefaults:
    def test_assembler_limits(self) -> None:
        settings = AssemblerSettings()
        assert settings.candidate_limit == 10
        assert settings.entry_points[0] == "src/index.js"

    def test_docs_limits(self) -> None:
        settings = Settings()
        assert settings.docs.max_subpages == 5
        assert settings.docs.page_char_limit == 12000

    def test_token_absent_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("REPOCONTEXT__REPOSITORY__TOKEN", raising=False)
        assert Settings().repository.token is None


class TestEnvironmentOverrides:
    def test_nested_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REPOCONTEXT__CACHE__BACKEND", "memory")
        monkeypatch.setenv("REPOCONTEXT__REPOSITORY__TOKEN", "ghp_test")
        settings = Settings()
        assert settings.cache.backend == "memory"
        assert settings.repository.token == "ghp_test"

    def test_init_args_beat_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REPOCONTEXT__CACHE__BACKEND", "memory")
        assert Settings(cache={"backend": "sqlite"}).cache.backend == "sqlite"


class TestConfigValidation:
    def test_wrong_type_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            Settings(cache={"tree_ttl_hours": "not-a-number"})  # type: ignore[arg-type]

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CacheSettings(backend="redis")  # type: ignore[arg-type]

    def test_unknown_top_level_field_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            Settings(completely_unknown_field="oops")  # type: ignore[call-arg]

    def test_unknown_nested_field_raises_validation_error(self) -> None:
        """A typo like 'db_paht' is caught instead of silently using the default."""
        with pytest.raises(ValidationError):
            CacheSettings(db_paht="/intended/path/cache.db")  # type: ignore[call-arg]
