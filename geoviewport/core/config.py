"""
Configuration for the geoviewport package.

Settings are read from environment variables (or a local .env file) and
provide the camera defaults used when a viewport is built without explicit
perspective parameters, plus logging configuration.
"""
import logging
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    APP_NAME: str = "geoviewport"

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Perspective parameters used when no projection matrix is supplied
    DEFAULT_FOVY: float = Field(default=75.0, description="Vertical field of view in degrees.")
    DEFAULT_NEAR: float = Field(default=0.1, gt=0, description="Distance of the near clipping plane.")
    DEFAULT_FAR: float = Field(default=1000.0, gt=0, description="Distance of the far clipping plane.")
    DEFAULT_ZOOM: float = Field(default=0.0, description="Zoom used by non-geospatial viewports without a zoom.")

    EQUALS_EPSILON: float = Field(
        default=1e-12,
        gt=0,
        description="Relative tolerance used when comparing viewport matrices.",
    )

    WEB_MERCATOR_DEFAULT_ALTITUDE: float = Field(
        default=1.5,
        gt=0,
        description="Camera altitude of map-style viewports, in screen heights.",
    )
    WEB_MERCATOR_FAR_Z_MULTIPLIER: float = Field(default=1.01, gt=0)

    model_config = {
        "extra": "ignore",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LogLevel.__members__:
            raise ValueError(f"Invalid log level '{v}'. Expected one of {list(LogLevel.__members__)}")
        return level

    @model_validator(mode="after")
    def validate_clipping_planes(self) -> "Settings":
        if self.DEFAULT_FAR <= self.DEFAULT_NEAR:
            raise ValueError(
                f"DEFAULT_FAR ({self.DEFAULT_FAR}) must be greater than DEFAULT_NEAR ({self.DEFAULT_NEAR})"
            )
        return self

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.LOG_LEVEL)


def configure_logging(config: Optional[Settings] = None) -> None:
    """Configure logging based on settings."""
    config = config or settings
    logging.basicConfig(level=config.log_level_value, format=config.LOG_FORMAT)

    # Set package logger level
    package_logger = logging.getLogger("geoviewport")
    package_logger.setLevel(config.log_level_value)
    logger.debug("Logging configured at level %s", config.LOG_LEVEL)


settings = Settings()
