"""Pydantic models for application configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from course_admin.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"


class FormsConfig(BaseModel):
    """Settings for the dynamic form processor."""

    schema_name: str = "public"
    sensitive_fields: list[str] = Field(
        default_factory=lambda: ["password", "contraseña"]
    )
    hash_rounds: int = Field(default=10, ge=4, le=31)
    foreign_key_suffix: str = Field(default="id", min_length=1)
    plural_suffix: str = "s"
    foreign_keys: dict[str, str] = Field(default_factory=dict)  # field name -> table
    varchar_length: int = Field(default=150, gt=0)
    primary_key: str = "id"
    created_at_column: str = "fechacreacion"
    cache_schema: bool = True


class EditionsConfig(BaseModel):
    """Settings for the course-edition hours rule."""

    hours_per_day: int = Field(default=5, gt=0)
    max_hours_difference: int = Field(default=25, ge=0)


class AppConfig(BaseModel):
    """Complete configuration from course_admin.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    default_profile: str | None = None
    forms: FormsConfig = Field(default_factory=FormsConfig)
    editions: EditionsConfig = Field(default_factory=EditionsConfig)
