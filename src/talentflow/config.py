from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Talentflow"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8787
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/talentflow.db"
    data_dir: Path = Path("./data")

    specialist_precondition_policy: str = "warn"
    enforce_ownership: bool = True
    company_follow_up_days: int = 45
    transition_max_retries: int = 0

    cors_origins: str = "http://127.0.0.1:8787"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("specialist_precondition_policy")
    @classmethod
    def validate_precondition_policy(cls, value: str) -> str:
        allowed = {"warn", "block"}
        if value not in allowed:
            raise ValueError(f"specialist_precondition_policy must be one of {sorted(allowed)}")
        return value

    @field_validator("company_follow_up_days", "transition_max_retries")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value must not be negative")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
