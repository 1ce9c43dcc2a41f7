"""System customization models."""

from pathlib import PurePosixPath
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from imagecustomizer.models.user import UserSpec


class FileConfig(BaseModel):
    """Destination of an additional file inside the image."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = Field(..., description="Absolute destination path inside the image")
    permissions: Optional[str] = Field(None, description="Octal file mode, e.g. \"644\"")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        """Destination must be absolute."""
        if not v.startswith("/"):
            raise ValueError(f"Destination path must be absolute: {v}")
        return v

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v):
        """Permissions must be an octal mode."""
        if v is None:
            return v
        try:
            mode = int(v, 8)
        except ValueError:
            raise ValueError(f"Invalid permissions: {v}")
        if mode > 0o7777:
            raise ValueError(f"Invalid permissions: {v}")
        return v

    @property
    def mode(self) -> Optional[int]:
        """Permissions as an integer mode."""
        return int(self.permissions, 8) if self.permissions is not None else None


class ServiceSpec(BaseModel):
    """A systemd unit name."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)


class ServicesConfig(BaseModel):
    """Services to enable and disable."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    enable: List[ServiceSpec] = Field(default_factory=list)
    disable: List[ServiceSpec] = Field(default_factory=list)


class ModuleSpec(BaseModel):
    """A kernel module and its load options."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    options: Optional[Dict[str, str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Module names end up in file names and directives."""
        if "/" in v or any(c.isspace() for c in v):
            raise ValueError(f"Invalid module name: {v!r}")
        return v


class ModulesConfig(BaseModel):
    """Kernel modules to load at boot or blacklist."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    load: List[ModuleSpec] = Field(default_factory=list)
    disable: List[ModuleSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_no_conflicts(self):
        """A module cannot be both loaded and blacklisted."""
        loaded = {module.name for module in self.load}
        for module in self.disable:
            if module.options:
                raise ValueError(f"Disabled module {module.name} cannot have options")
            if module.name in loaded:
                raise ValueError(f"Module {module.name} is both loaded and disabled")
        return self


class ScriptSpec(BaseModel):
    """Script to run inside the image."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = Field(..., min_length=1, description="Script path relative to the config dir")
    args: str = Field(default="")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        """Scripts must live under the config directory."""
        path = PurePosixPath(v)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError(f"Script path must be relative to the config directory: {v}")
        return v


class PackagesConfig(BaseModel):
    """Packages to remove, install and update."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    install: List[str] = Field(default_factory=list)
    remove: List[str] = Field(default_factory=list)
    update: List[str] = Field(default_factory=list)
    install_lists: List[str] = Field(default_factory=list)
    remove_lists: List[str] = Field(default_factory=list)
    update_lists: List[str] = Field(default_factory=list)
    update_existing: bool = Field(default=False)


class SystemConfig(BaseModel):
    """Customizations applied to the image root."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    hostname: Optional[str] = None
    packages: PackagesConfig = Field(default_factory=PackagesConfig)
    additional_files: Dict[str, List[FileConfig]] = Field(default_factory=dict)
    users: List[UserSpec] = Field(default_factory=list)
    services: ServicesConfig = Field(default_factory=ServicesConfig)
    modules: ModulesConfig = Field(default_factory=ModulesConfig)
    post_install_scripts: List[ScriptSpec] = Field(default_factory=list)
    finalize_image_scripts: List[ScriptSpec] = Field(default_factory=list)

    @field_validator("hostname")
    @classmethod
    def validate_hostname(cls, v):
        """Hostname must be a single line."""
        if v is not None and (not v or any(c.isspace() for c in v)):
            raise ValueError(f"Invalid hostname: {v!r}")
        return v

    @field_validator("users")
    @classmethod
    def validate_unique_users(cls, v):
        """User names are the key of a user entry."""
        seen = set()
        for user in v:
            if user.name in seen:
                raise ValueError(f"Duplicate user: {user.name}")
            seen.add(user.name)
        return v
