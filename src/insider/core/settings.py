"""Process settings for every insider entry point.

``InsiderSettings`` holds what a process needs to start: where the data
lives, how to reach the upstream services, and the timing knobs of the
pipeline.  It is distinct from the *runtime documents* (pipeline settings
and collector config) that operators edit while the system is running;
those live in the document store and are re-read on every pass.

Order of precedence (highest → lowest):
    1. Environment variables (``INSIDER_DATA_DIR``, ``INSIDER_PORT``, ...)
    2. ``.env`` file
    3. Defaults below

``GITHUB_TOKEN``/``GH_TOKEN`` and ``GEMINI_API_KEY`` are also honoured
without the prefix, matching how CI secrets are usually named.

Examples:
    >>> from insider.core.settings import InsiderSettings
    >>> settings = InsiderSettings(data_dir="/tmp/insider")
    >>> settings.catalog_path.name
    'analyzed_data.json'

Tags:
    settings, configuration, pydantic, environment, insider
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
    "gemini-1.5-pro",
]


class InsiderSettings(BaseSettings):
    """Settings shared by the CLI stages, the scheduler and the admin API.

    Fields
    ──────
    data_dir          : Root of the JSON document store
    config_path       : Collector config document (watched by the scheduler)
    host / port       : Admin API bind address
    admin_user/pass   : HTTP Basic credentials for the admin API
    models            : Ordered enrichment model fallback list
    *_seconds         : Pipeline timing knobs
    """

    model_config = SettingsConfigDict(
        env_prefix="INSIDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(default=Path("data"), description="Document store directory")
    config_path: Path | None = Field(
        default=None,
        description="Collector config document; defaults to <data_dir>/config.json",
    )
    public_dir: Path = Field(default=Path("public"), description="Deploy output directory")

    # ── Network ──────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"

    # ── Admin ────────────────────────────────────────────────────
    admin_user: str = "admin"
    admin_pass: str | None = Field(default=None, description="Basic auth disabled when unset")
    cors_origins: list[str] = Field(default=["*"])

    # ── Upstream ─────────────────────────────────────────────────
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("INSIDER_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN"),
    )
    github_api_url: str = "https://api.github.com"
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("INSIDER_GEMINI_API_KEY", "GEMINI_API_KEY"),
    )
    models: list[str] = Field(default_factory=lambda: list(DEFAULT_MODELS))

    # ── Timing ───────────────────────────────────────────────────
    enrichment_delay_seconds: float = Field(default=2.0, ge=0)
    fetch_delay_seconds: float = Field(default=1.0, ge=0)
    config_poll_seconds: float = Field(default=1.0, gt=0)
    config_debounce_seconds: float = Field(default=0.1, ge=0)
    kill_timeout_seconds: float = Field(default=5.0, gt=0)

    @property
    def catalog_path(self) -> Path:
        return self.data_dir / "analyzed_data.json"

    @property
    def collector_config_path(self) -> Path:
        return self.config_path or self.data_dir / "config.json"

    def stage_log_file(self, stage: str) -> Path:
        """Append-only log file for a pipeline stage."""
        names = {"collect": "collector.log", "analyze": "analyzer.log", "deploy": "deploy.log"}
        return self.data_dir / names.get(stage, f"{stage}.log")


@lru_cache(maxsize=1)
def get_settings() -> InsiderSettings:
    """Cached settings — loaded once per process."""
    return InsiderSettings()
