"""Configuration models using Pydantic."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from viewpilot.core.models.task import WatchTask, WatchType


class EngineConfig(BaseModel):
    """Browser engine configuration."""

    default: Literal["playwright", "patchright"] = "playwright"
    headless: bool = True
    timeout: float = 30000  # ms, default action timeout on the page
    locale: str = "en-US"
    args: list[str] = []


class ConcurrencyConfig(BaseModel):
    """Concurrency configuration."""

    max_workers: int = Field(default=2, ge=1, le=100)
    task_timeout: float = Field(default=3600, ge=10)  # whole-session ceiling, seconds
    concurrency_interval: float = Field(default=1.0, ge=0)  # stagger between session starts

    class RetryConfig(BaseModel):
        """Retry configuration."""

        max_attempts: int = Field(default=3, ge=1, le=10)
        backoff_base: float = Field(default=2.0, ge=1.0)
        backoff_max: float = Field(default=60.0, ge=1.0)

    retry: RetryConfig = Field(default_factory=RetryConfig)


class ProxyConfig(BaseModel):
    """Proxy configuration."""

    use_proxies: bool = False
    urls: list[str] = []


class WatchConfig(BaseModel):
    """Global watch settings merged into every task."""

    watch_time_percentage: float = Field(default=80.0, ge=0, le=100)
    auto_skip_ads: bool = True
    max_seconds_ads: int = Field(default=60, ge=1)
    skip_ads_after: tuple[float, float] = (5.0, 10.0)
    navigation_timeout: float = Field(default=120.0, ge=1)
    seek_to_start: bool = True

    @model_validator(mode="after")
    def _check_skip_range(self) -> WatchConfig:
        low, high = self.skip_ads_after
        if low < 0 or high < low:
            raise ValueError("skip_ads_after must be a non-negative (min, max) range")
        return self


class EvasionConfig(BaseModel):
    """Anti-detection evasion configuration."""

    enabled: bool = True


class OutputConfig(BaseModel):
    """Output configuration."""

    class DataConfig(BaseModel):
        """Outcome record output configuration."""

        directory: Path = Path("./output/data")
        filename: str = "outcomes.jsonl"

        @property
        def path(self) -> Path:
            return self.directory / self.filename

    class LogConfig(BaseModel):
        """Logging configuration."""

        level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
        structured: bool = False

    data: DataConfig = Field(default_factory=DataConfig)
    logs: LogConfig = Field(default_factory=LogConfig)


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="VIEWPILOT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    evasion: EvasionConfig = Field(default_factory=EvasionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Load configuration from YAML file."""
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open() as f:
            data = yaml.safe_load(f)

        return cls(**data) if data else cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create configuration from dictionary."""
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        import yaml

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def build_task(
        self,
        url: str,
        *,
        watch_type: WatchType = WatchType.DIRECT,
        referer_url: str | None = None,
        search_keywords: str | None = None,
    ) -> WatchTask:
        """Merge the global watch settings into a task for one URL."""
        return WatchTask.from_url(
            url,
            watch_type=watch_type,
            referer_url=referer_url,
            search_keywords=search_keywords,
            watch_time_percentage=self.watch.watch_time_percentage,
            auto_skip_ads=self.watch.auto_skip_ads,
            max_seconds_ads=self.watch.max_seconds_ads,
            navigation_timeout=self.watch.navigation_timeout,
            skip_ads_after=self.watch.skip_ads_after,
            seek_to_start=self.watch.seek_to_start,
        )
