import json
from functools import lru_cache
from typing import Annotated, List, Optional, Union

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "GenStudio API"
    API_V1_STR: str = "/api/v1"

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Replicate
    REPLICATE_API_TOKEN: str = Field(
        default="",
        validation_alias=AliasChoices("REPLICATE_API_TOKEN", "REPLICATE_API_KEY"),
    )
    REPLICATE_BASE_URL: str = "https://api.replicate.com/v1"
    REPLICATE_TIMEOUT: float = 60.0
    USER_AGENT: str = "GenStudio/1.0"

    # Polling
    POLL_INTERVAL_SECONDS: float = Field(default=1.0, ge=0.0)
    POLL_MAX_ATTEMPTS: Optional[int] = Field(default=None, ge=1)  # None = unbounded
    POLL_TIMEOUT_SECONDS: Optional[float] = Field(default=None, gt=0.0)
    BACKGROUND_REMOVAL_MAX_ATTEMPTS: int = Field(default=20, ge=1)

    # Transport retry for status fetches; 0 disables it
    FETCH_RETRY_ATTEMPTS: int = Field(default=0, ge=0, le=10)
    FETCH_RETRY_MAX_WAIT: float = Field(default=10.0, ge=0.0)

    # Media storage
    MEDIA_ROOT: str = "./media"
    MEDIA_URL_PREFIX: str = "/media"

    # Models
    IMAGE_MODELS: Annotated[List[str], NoDecode] = [
        "black-forest-labs/flux-schnell",
        "black-forest-labs/flux-1.1-pro",
    ]

    @field_validator("IMAGE_MODELS", mode="before")
    @classmethod
    def split_models(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("MEDIA_URL_PREFIX")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        return "/" + v.strip("/")

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def has_replicate_token(self) -> bool:
        return bool(self.REPLICATE_API_TOKEN)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings are loaded once per process."""
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
