"""Pydantic models for configuration and validation."""

from imagecustomizer.models.config import ImageCustomizerConfig
from imagecustomizer.models.system import (
    FileConfig,
    ModuleSpec,
    ModulesConfig,
    PackagesConfig,
    ScriptSpec,
    ServiceSpec,
    ServicesConfig,
    SystemConfig,
)
from imagecustomizer.models.user import UserSpec

__all__ = [
    "ImageCustomizerConfig",
    "FileConfig",
    "ModuleSpec",
    "ModulesConfig",
    "PackagesConfig",
    "ScriptSpec",
    "ServiceSpec",
    "ServicesConfig",
    "SystemConfig",
    "UserSpec",
]
