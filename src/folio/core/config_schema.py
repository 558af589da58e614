"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``. Call
``Config.validated()`` to obtain a typed, validated ``FolioConfig``
instance. Each section converts to the dataclass its component takes.
Existing dict-based access continues to work unchanged.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from folio.content.config import SearchConfig, StoreConfig
from folio.core.utils.cache import EvictionPolicy
from folio.plugins.models import PluginConfig


class StoreSection(BaseModel):
    """Document store settings."""

    include_drafts: bool = False
    default_author: str | None = None
    max_articles: int = Field(default=10000, ge=1)
    summary_length: int = Field(default=150, ge=1)
    words_per_minute: int = Field(default=200, ge=1)

    def to_store_config(self) -> StoreConfig:
        return StoreConfig(**self.model_dump())


class SearchSection(BaseModel):
    """Search index and query limits."""

    min_search_length: int = Field(default=2, ge=1)
    case_sensitive: bool = False
    max_results: int = Field(default=20, ge=1)
    max_query_length: int = Field(default=500, ge=1)
    max_index_size: int = Field(default=100000, ge=1)
    highlight_open: str = "<mark>"
    highlight_close: str = "</mark>"

    def to_search_config(self) -> SearchConfig:
        return SearchConfig(
            min_search_length=self.min_search_length,
            highlight_tag=(self.highlight_open, self.highlight_close),
            case_sensitive=self.case_sensitive,
            max_results=self.max_results,
            max_query_length=self.max_query_length,
            max_index_size=self.max_index_size,
        )


class PluginsSection(BaseModel):
    """Extension pipeline limits and the built-in plugins to enable."""

    timeout: float = Field(default=10.0, gt=0)
    max_processors: int = Field(default=100, ge=1)
    max_plugins: int = Field(default=50, ge=1)
    enabled: list[str] = []

    @field_validator("enabled", mode="before")
    @classmethod
    def _split_names(cls, v: Any) -> Any:
        # FOLIO_PLUGINS__ENABLED=word-count,seo
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    def to_plugin_config(self) -> PluginConfig:
        return PluginConfig(
            timeout=self.timeout,
            max_processors=self.max_processors,
            max_plugins=self.max_plugins,
        )


class CacheSection(BaseModel):
    """Settings shared by every named cache."""

    default_ttl: float = Field(default=3600.0, gt=0)
    max_size: int = Field(default=1000, ge=1)
    policy: EvictionPolicy = EvictionPolicy.LRU
    sweep_interval: Annotated[float, Field(gt=0)] | None = 60.0

    def to_cache_options(self) -> dict[str, Any]:
        return {"max_size": self.max_size, "policy": self.policy, "sweep_interval": self.sweep_interval}


class LoggingSection(BaseModel):
    level: str = "WARNING"
    file: str | None = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level


class FolioConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    store: StoreSection = StoreSection()
    search: SearchSection = SearchSection()
    plugins: PluginsSection = PluginsSection()
    cache: CacheSection = CacheSection()
    logging: LoggingSection = LoggingSection()
