"""
SafeMed Configuration Management
Handles all application settings using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator, model_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings with validation"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )

    # Environment
    environment: str = Field(default="development", pattern="^(development|production|test)$")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    app_version: str = Field(default="1.0.0")

    # API Server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(
        default=3000, ge=1, le=65535,
        validation_alias=AliasChoices("api_port", "port")
    )
    api_reload: bool = Field(default=False)

    # Remote EMR / AI API
    emr_base_url: str = Field(
        default="https://api.dorraemr.com",
        validation_alias=AliasChoices("emr_base_url", "base_url")
    )
    emr_api_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("emr_api_token", "api_token")
    )
    emr_auth_scheme: str = Field(default="Token")
    emr_timeout: float = Field(default=10.0, gt=0, le=120)

    emr_patients_path: str = Field(default="/v1/patients")
    emr_ai_patient_path: str = Field(default="/v1/ai/patient")
    emr_ai_encounter_path: str = Field(default="/v1/ai/emr")

    # Mock mode
    mock_api: bool = Field(default=False)
    mock_seed_demo_data: bool = Field(default=True)

    # Alert rules
    rules_allergy_match: bool = Field(default=True)
    rules_drug_interactions: bool = Field(default=True)
    rules_watchlist: bool = Field(default=True)

    # Security
    cors_origins: List[str] = Field(default=["*"])
    cors_allow_credentials: bool = Field(default=False)

    @field_validator("emr_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so paths can be appended directly"""
        return v.rstrip("/")

    @field_validator("emr_patients_path", "emr_ai_patient_path", "emr_ai_encounter_path")
    @classmethod
    def ensure_leading_slash(cls, v: str) -> str:
        """Remote paths are always joined onto the base URL"""
        return v if v.startswith("/") else f"/{v}"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @model_validator(mode="after")
    def validate_live_config(self) -> "Settings":
        """Live mode in production needs a token for the remote API"""
        if self.environment == "production" and not self.mock_api and not self.emr_api_token:
            raise ValueError("API_TOKEN required when running against the remote EMR in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment == "production"

    @property
    def mode(self) -> str:
        """Operating mode reported by health checks"""
        return "mock" if self.mock_api else "live"

    def get_auth_header(self) -> dict:
        """Authorization header sent with every remote call"""
        if not self.emr_api_token:
            return {}
        return {"Authorization": f"{self.emr_auth_scheme} {self.emr_api_token}"}


# Global settings instance
settings = Settings()
