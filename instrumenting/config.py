"""
Configuration management for Redis instrumentation.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class InstrumentingSettings(BaseSettings):
    """Settings shared by the recorder and the exporter service."""

    model_config = SettingsConfigDict(
        env_prefix="INSTRUMENTING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Recorder
    application_name: str = Field(default="app")
    duration_buckets: Optional[List[float]] = Field(default=None)
    metrics_enabled: bool = Field(default=True)

    # Exporter service
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=9102)

    def to_recorder_config(self):
        """Build the recorder Config from these settings."""
        from instrumenting.metrics.redis import Config

        return Config(duration_buckets=self.duration_buckets)


def get_settings(**overrides) -> InstrumentingSettings:
    """Get settings, with keyword overrides taking precedence over the environment."""
    return InstrumentingSettings(**overrides)
