from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = Field("AI Energy Calculator")
    ENVIRONMENT: str = Field("development")
    LOG_LEVEL: str = Field("INFO")

    CATALOG_SOURCE_URL: str = Field("https://openrouter.ai/api/v1/models")
    CATALOG_USER_AGENT: str = Field("AI-Energy-Calculator/1.0")
    CATALOG_TIMEOUT_SECONDS: float = Field(10.0, gt=0)
    CATALOG_TTL_SECONDS: float = Field(24 * 60 * 60, gt=0)
    CATALOG_DENYLIST: str = Field(
        "guard,embed,router,thedrummer,sao10k,gryphe,anthracite,undi95",
        description=(
            "Comma-delimited, case-insensitive name fragments whose parameter "
            "figures are spurious or irrelevant (moderation models, community merges)"
        ),
    )
    # Keep the last upstream-derived catalog instead of the fallback table
    # when a refresh fails.
    CATALOG_SERVE_STALE_ON_ERROR: bool = False

    DEFAULT_TOKEN_COUNT: int = Field(1_000_000, ge=0)
    DEFAULT_PRECISION: Literal["FP32", "FP16", "FP8"] = Field("FP16")
    DEFAULT_PUE: float = Field(1.2, ge=1.0)
    DEFAULT_ELECTRICITY_PRICE: float = Field(0.152, ge=0.0)
    DEFAULT_REGION: str = Field("United States (Average)")

    PROMETHEUS_METRICS_ENABLED: bool = Field(True)
    OTEL_ENABLED: bool = Field(False)
    OTEL_EXPORTER_OTLP_ENDPOINT: str = Field("http://localhost:4318/v1/traces")
    OTEL_EXPORTER_OTLP_HEADERS: str = Field("", description="Comma-separated key=value entries")

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    def denylist(self) -> tuple[str, ...]:
        entries = [item.strip().lower() for item in self.CATALOG_DENYLIST.split(",")]
        return tuple(entry for entry in entries if entry)

    def otel_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        entries = [
            item.strip() for item in self.OTEL_EXPORTER_OTLP_HEADERS.split(",") if item.strip()
        ]
        for entry in entries:
            try:
                key, value = entry.split("=")
                headers[key.strip()] = value.strip()
            except ValueError:
                continue
        return headers


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
