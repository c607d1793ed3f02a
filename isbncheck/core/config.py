from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# isbncheck/core/config.py -> PACKAGE_DIR == isbncheck, BASE_DIR == repo root
PACKAGE_DIR = Path(__file__).resolve().parents[1]
BASE_DIR = PACKAGE_DIR.parent
DEFAULT_FIXTURE_CATALOG_PATH = PACKAGE_DIR / "fixtures" / "catalog_fixture.json"


def _parse_list(v: Any, *, field_name: str) -> list[str]:
    """
    Supported env formats:
      - JSON list: '["a", "b"]'
      - Bracket list (no quotes): '[a, b]'
      - Comma-separated: 'a, b'
    """
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [str(x).strip() for x in v if str(x).strip()]
    if not isinstance(v, str):
        raise TypeError(f"{field_name} must be a string or list of strings")

    s = v.strip()
    if not s:
        return []

    if s.startswith("[") and s.endswith("]"):
        try:
            parsed = json.loads(s)
            if isinstance(parsed, list):
                return [str(x).strip() for x in parsed if str(x).strip()]
        except json.JSONDecodeError:
            inner = s[1:-1].strip()
            if not inner:
                return []
            parts = [p.strip().strip('"').strip("'") for p in inner.split(",")]
            return [p for p in parts if p]

    parts = [p.strip() for p in s.split(",")]
    return [p for p in parts if p]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # Environment
    env: str = Field(default="dev", validation_alias="ENV")

    # Application
    api_name: str = Field(default="isbncheck-api", validation_alias="API_NAME")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    user_agent: str = Field(default="isbncheck/0.1", validation_alias="USER_AGENT")

    # CORS (the browser front-end is served separately)
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias="CORS_ORIGINS",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        if isinstance(v, str) and v.strip() == "*":
            return ["*"]
        return _parse_list(v, field_name="cors_origins")

    # Catalog provider behind /api/search
    catalog_provider: Literal["seoji", "fixture"] = Field(
        default="seoji", validation_alias="CATALOG_PROVIDER"
    )
    seoji_api_url: str = Field(
        default="https://www.nl.go.kr/seoji/SearchApi.do",
        validation_alias="SEOJI_API_URL",
    )
    seoji_cert_key: str | None = Field(default=None, validation_alias="SEOJI_CERT_KEY")
    fixture_catalog_path: str = Field(
        default=str(DEFAULT_FIXTURE_CATALOG_PATH),
        validation_alias="FIXTURE_CATALOG_PATH",
    )

    @field_validator("catalog_provider", mode="before")
    @classmethod
    def normalize_catalog_provider(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    # Validation
    lookup_timeout_secs: float = Field(
        default=15.0, gt=0, validation_alias="LOOKUP_TIMEOUT_SECS"
    )
    require_title_mapping: bool = Field(
        default=True, validation_alias="REQUIRE_TITLE_MAPPING"
    )
    required_csv_columns: Annotated[list[str], NoDecode] = Field(
        default_factory=list, validation_alias="REQUIRED_CSV_COLUMNS"
    )
    preview_rows: int = Field(default=5, ge=0, validation_alias="PREVIEW_ROWS")

    @field_validator("required_csv_columns", mode="before")
    @classmethod
    def parse_required_csv_columns(cls, v: Any) -> list[str]:
        return _parse_list(v, field_name="required_csv_columns")

    # OpenTelemetry
    otel_enabled: bool = Field(default=False, validation_alias="OTEL_ENABLED")
    otel_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="OTEL_OTLP_ENDPOINT",
    )


settings = Settings()
