from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GEOCODING_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("GEOAPIFY_API_KEY", "GEOCODING_API_KEY"),
    )
    base_url: str = "https://api.geoapify.com/v1/geocode/search"

    # Provider-mandated floor between outbound calls
    min_request_interval_ms: int = Field(2000, gt=0)
    max_retries: int = Field(3, ge=1)
    request_timeout_ms: int = Field(10000, gt=0)
    retry_base_delay_ms: int = Field(1000, ge=0)

    batch_size: int = Field(5, gt=0)
    fallback_to_origin: bool = False
    retry_empty_results: bool = True

