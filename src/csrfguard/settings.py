from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings


class GuardSettings(BaseSettings):
    # === Logging ===
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # === CSRF ===
    prefix: str = Field(default="csrf", validation_alias="CSRF_PREFIX")
    storage_limit: int = Field(default=200, ge=1, validation_alias="CSRF_STORAGE_LIMIT")
    token_strength: int = Field(default=16, ge=1, validation_alias="CSRF_TOKEN_STRENGTH")

    @field_validator("prefix", mode="before")
    @classmethod
    def strip_trailing_underscores(cls, v: str) -> str:
        # "csrf_" and "csrf" both yield csrf_name / csrf_value
        v = str(v).rstrip("_")
        if not v:
            raise ValueError("prefix must contain at least one non-underscore character")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return str(v).upper()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True
        extra = "ignore"
