"""Server configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_MODEL = "gemini-2.0-flash"
_MB = 1024 * 1024


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    gemini_api_key: str = Field(default="")
    model: str = Field(default=DEFAULT_MODEL)
    frame_count: int = Field(default=100)
    max_span_seconds: float = Field(default=10.0)
    max_frame_edge: int = Field(default=640)
    jpeg_quality: float = Field(default=0.7)
    max_upload_bytes: int = Field(default=100 * _MB)
    upstream_timeout_seconds: float = Field(default=120.0)
    extraction_timeout_seconds: float = Field(default=60.0)
    retry_max_attempts: int = Field(default=3)
    retry_base_delay: float = Field(default=1.0)
    retry_max_delay: float = Field(default=60.0)
    max_results: int = Field(default=20)
    result_ttl_minutes: int = Field(default=60)

    @field_validator("frame_count")
    @classmethod
    def validate_frame_count(cls, value: int) -> int:
        if value < 0:
            raise ValueError("frame_count must be >= 0")
        return value

    @field_validator("jpeg_quality")
    @classmethod
    def validate_jpeg_quality(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("jpeg_quality must be in (0, 1]")
        return value

    @field_validator(
        "max_frame_edge", "max_upload_bytes", "retry_max_attempts", "max_results", "result_ttl_minutes",
    )
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator(
        "max_span_seconds",
        "upstream_timeout_seconds",
        "extraction_timeout_seconds",
        "retry_base_delay",
        "retry_max_delay",
    )
    @classmethod
    def validate_positive_floats(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Durations and delays must be > 0")
        return value

    @property
    def max_upload_mb(self) -> int:
        """Upload cap in whole megabytes, as shown to users."""
        return self.max_upload_bytes // _MB

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            model=os.getenv("PETVISION_MODEL", DEFAULT_MODEL),
            frame_count=int(os.getenv("PETVISION_FRAME_COUNT", "100")),
            max_span_seconds=float(os.getenv("PETVISION_MAX_SPAN_SECONDS", "10.0")),
            max_frame_edge=int(os.getenv("PETVISION_MAX_FRAME_EDGE", "640")),
            jpeg_quality=float(os.getenv("PETVISION_JPEG_QUALITY", "0.7")),
            max_upload_bytes=int(float(os.getenv("PETVISION_MAX_UPLOAD_MB", "100")) * _MB),
            upstream_timeout_seconds=float(os.getenv("PETVISION_UPSTREAM_TIMEOUT", "120.0")),
            extraction_timeout_seconds=float(os.getenv("PETVISION_EXTRACTION_TIMEOUT", "60.0")),
            retry_max_attempts=int(os.getenv("GEMINI_RETRY_MAX_ATTEMPTS", "3")),
            retry_base_delay=float(os.getenv("GEMINI_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(os.getenv("GEMINI_RETRY_MAX_DELAY", "60.0")),
            max_results=int(os.getenv("PETVISION_MAX_RESULTS", "20")),
            result_ttl_minutes=int(os.getenv("PETVISION_RESULT_TTL_MINUTES", "60")),
        )


# Initialised once at first access.
_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/pet-vision-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config, ignoring ``None`` overrides."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
