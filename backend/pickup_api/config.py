from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Any, Optional

class Settings(BaseSettings):
    database_url: str = "sqlite:///./pickups.db"
    app_env: str = "dev"
    jwt_secret: str = "change-me"
    jwt_ttl_minutes: int = 60 * 24 * 7

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )

    # dispatch policy
    dispatch_default_radius_km: float = Field(10.0, gt=0)
    max_location_age_seconds: Optional[int] = Field(None, gt=0)
    single_active_job_per_collector: bool = False
    allow_collector_abort: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
    )

    # .env may carry either JSON or a comma separated list
    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors(cls, v: Any):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json
                try:
                    return json.loads(s)
                except ValueError:
                    pass
            return [p.strip() for p in s.split(",") if p.strip()]
        return v

settings = Settings()

def get_settings() -> Settings:
    return settings
