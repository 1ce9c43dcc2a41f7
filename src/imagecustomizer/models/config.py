"""Configuration models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from imagecustomizer.models.system import SystemConfig


class ImageCustomizerConfig(BaseModel):
    """Main configuration model."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    log_level: str = Field(default="INFO")
    system_config: SystemConfig = Field(default_factory=SystemConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()
