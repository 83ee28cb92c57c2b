"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (REPOCONTEXT__REPOSITORY__TOKEN=ghp_...)
  2. repocontext.yaml       (searched in cwd, then ~/.config/repocontext/)
  3. Hardcoded defaults

The config file is optional: all fields have defaults pointing at the
Harmony 2.0 project.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir("repocontext")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_CACHE_DIR) / "cache.db")

_DEFAULT_ENTRY_POINTS = [
    "src/index.js",
    "src/index.ts",
    "src/main.js",
    "src/main.ts",
    "index.js",
    "index.ts",
    "tsconfig.json",
    "vite.config.js",
    "vite.config.ts",
    "webpack.config.js",
    "vite.config.mjs",
]


def _find_config_file() -> str | None:
    """Return the path of the first repocontext.yaml found, or None."""
    candidates = [
        Path("repocontext.yaml"),
        Path.home() / ".config" / "repocontext" / "repocontext.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class RepositorySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    owner: str = "Amdocs-Studio"
    name: str = "harmony-2.0"
    branch: str = "master"
    token: str | None = None
    api_base_url: str = "https://api.github.com"
    raw_base_url: str = "https://raw.githubusercontent.com"


class DocsSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = "https://amdocs-studio.github.io/harmony-2.0"
    page_char_limit: int = 12000
    max_subpages: int = 5


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # directory: JSON records under ``dir``; sqlite: single DB at ``db_path``;
    # temp: throwaway directory for this process; memory: no persistent tier.
    backend: Literal["directory", "sqlite", "temp", "memory"] = "directory"
    dir: str = _DEFAULT_CACHE_DIR
    db_path: str = _DEFAULT_DB_PATH
    tree_ttl_hours: int = 24


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_seconds: float = 30.0
    user_agent: str = "repocontext/0.1"
    max_redirects: int = 3


class AssemblerSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    candidate_limit: int = 10
    core_file_char_limit: int = 10000
    entry_point_char_limit: int = 3000
    config_file_char_limit: int = 2000
    max_total_chars: int = 60000
    entry_points: list[str] = _DEFAULT_ENTRY_POINTS


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: REPOCONTEXT__CACHE__BACKEND=memory
        env_prefix="REPOCONTEXT__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    repository: RepositorySettings = RepositorySettings()
    docs: DocsSettings = DocsSettings()
    cache: CacheSettings = CacheSettings()
    fetcher: FetcherSettings = FetcherSettings()
    assembler: AssemblerSettings = AssemblerSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
