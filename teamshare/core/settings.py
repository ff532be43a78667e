from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, DotEnvSettingsSource, EnvSettingsSource, SettingsConfigDict

# Settings that accept "a,b,c" in the environment as well as a JSON array.
CSV_LIST_FIELDS = frozenset({"allow_origins", "allowed_extensions", "default_assignments"})

DEV_ORIGINS = ("http://localhost", "http://localhost:5173", "http://127.0.0.1:5173")

DEFAULT_ASSIGNMENTS = [
    "Assignment 1 - Segmentation and Personas",
    "Assignment 2 - Positioning",
    "Assignment 3 - Journey Mapping",
    "Assignment 4 - Marketing Channels",
    "Assignment 5 - Pricing",
    "Assignment 6 - Distribution Channels",
    "Assignment 7 - Acquisition",
    "Assignment 8 - Customer Discovery",
    "Assignment 9 - Product Validation",
]


class _CsvListFallback:
    """Hand comma-separated list values through undecoded; validators split them."""

    def decode_complex_value(self, field_name, field, value):  # type: ignore[override]
        try:
            return super().decode_complex_value(field_name, field, value)
        except json.JSONDecodeError:
            if field_name not in CSV_LIST_FIELDS:
                raise
            return value


class _EnvSource(_CsvListFallback, EnvSettingsSource):
    pass


class _DotEnvSource(_CsvListFallback, DotEnvSettingsSource):
    pass


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "TeamShare API"
    project_version: str = "1.0.0"
    environment: str = Field(
        default="development",
        description="Deployment environment name",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Database
    database_url: str = Field(
        default="postgresql+psycopg2://postgres@localhost:5432/teamshare",
        description="SQLAlchemy database URL",
    )
    memory_store: bool = Field(
        default=False,
        description="Skip the database and keep records in process memory",
        validation_alias=AliasChoices("MEMORY_STORE", "USE_MEMORY_STORE"),
    )
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Auth / JWT
    jwt_secret: str = Field(
        default="change_me",
        description="JWT signing secret",
        validation_alias=AliasChoices("JWT_SECRET", "SESSION_SECRET"),
    )
    algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=60 * 24, description="Access token expiry in minutes")
    bcrypt_rounds: int = Field(default=12, description="bcrypt cost factor for team passwords")

    # Shared secrets
    admin_password: Optional[str] = Field(default=None, description="Instructor login secret")
    admin_delete_password: Optional[str] = Field(
        default=None,
        description="Step-up secret for destructive admin actions (defaults to ADMIN_PASSWORD)",
    )
    team_1_password: Optional[str] = None
    team_2_password: Optional[str] = None
    team_3_password: Optional[str] = None
    team_4_password: Optional[str] = None
    team_5_password: Optional[str] = None
    team_6_password: Optional[str] = None
    team_7_password: Optional[str] = None
    team_8_password: Optional[str] = None
    team_9_password: Optional[str] = None

    # CORS
    allow_origins: List[str] = Field(default_factory=lambda: list(DEV_ORIGINS))

    # Storage
    uploads_dir: str = Field(
        default="./uploads",
        description="Content directory holding uploaded file bytes",
        validation_alias=AliasChoices("UPLOAD_DIR", "UPLOADS_DIR"),
    )
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, description="Per-file upload limit in bytes")
    max_files_per_upload: int = Field(default=10, description="Files accepted in one upload request")
    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".jpg", ".jpeg", ".png", ".pdf", ".docx", ".pptx"]
    )
    default_assignments: List[str] = Field(default_factory=lambda: list(DEFAULT_ASSIGNMENTS))

    @field_validator("allow_origins", mode="before")
    @classmethod
    def parse_allow_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return _split_csv(value) or list(DEV_ORIGINS)
        return value

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, value: str | List[str]) -> List[str]:
        items = _split_csv(value) if isinstance(value, str) else list(value)
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in items]

    @field_validator("default_assignments", mode="before")
    @classmethod
    def parse_default_assignments(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return _split_csv(value)
        return value

    def ensure_uploads_dir(self) -> Path:
        uploads_path = Path(self.uploads_dir).expanduser().resolve()
        uploads_path.mkdir(parents=True, exist_ok=True)
        return uploads_path

    def legacy_team_password(self, team_number: int) -> Optional[str]:
        """Shared secret for teams that have not registered a password yet."""
        if not 1 <= team_number <= 9:
            return None
        return getattr(self, f"team_{team_number}_password")

    @property
    def step_up_secret(self) -> Optional[str]:
        return self.admin_delete_password or self.admin_password

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            _EnvSource(settings_cls),
            _DotEnvSource(settings_cls),
            file_secret_settings,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
