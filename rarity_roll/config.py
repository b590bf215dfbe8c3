import math
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from RARITY_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RARITY_",
        env_file=".env",
        extra="ignore",
    )

    # ==========================================================================
    # Roll Engine
    # ==========================================================================
    default_luck_cap: float = 100
    max_luck_cap: int = 10_000  # ceiling on any caller-supplied luck_cap
    attempt_policy: Literal["floor", "fractional"] = "floor"

    # ==========================================================================
    # Multiplier Store
    # ==========================================================================
    sweep_interval_seconds: float = 1.0  # <= 0 disables the background sweep

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    api_title: str = "Rarity Roll API"
    api_version: str = "1.0.0"
    max_simulations: int = 100_000
    log_level: str = "INFO"

    @field_validator("default_luck_cap", "max_luck_cap")
    @classmethod
    def non_negative_cap(cls, v: float) -> float:
        if v < 0 or not math.isfinite(v):
            raise ValueError("luck caps must be finite and non-negative")
        return v

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
