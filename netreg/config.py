"""
Service settings

Loaded from NETREG_* environment variables and an optional .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .aggregator import POLICIES
from .dispatcher import DEFAULT_MANAGER_PATH, LINK_INTERFACE, MANAGER_INTERFACE
from .link import DEFAULT_LINK_PATH_BASE
from .system import DEFAULT_SYSFS_ROOT


class Settings(BaseSettings):
    """Link registry settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="NETREG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Bus addressing
    manager_path: str = DEFAULT_MANAGER_PATH
    link_path_base: str = DEFAULT_LINK_PATH_BASE
    manager_interface: str = MANAGER_INTERFACE
    link_interface: str = LINK_INTERFACE

    # Summary state reduction: "worst" or "best"
    aggregation_policy: str = "worst"
    # Links listed here are registered but excluded from the summary
    unmanaged_links: List[str] = Field(default_factory=lambda: ["lo"])

    sysfs_root: str = DEFAULT_SYSFS_ROOT

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("aggregation_policy")
    @classmethod
    def validate_policy(cls, v: str) -> str:
        v = v.lower()
        if v not in POLICIES:
            raise ValueError(f"aggregation_policy must be one of: {', '.join(POLICIES)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()
