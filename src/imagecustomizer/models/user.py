"""User account specification models."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserSpec(BaseModel):
    """User account to create or update in the image."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="Account name")
    password: Optional[str] = Field(None, min_length=1, description="Plaintext or pre-hashed password")
    password_path: Optional[str] = Field(None, description="File holding the password, relative to the config dir")
    password_hashed: bool = Field(default=False)
    uid: Optional[int] = Field(None, ge=0, le=60000)
    password_expires_days: Optional[int] = Field(None, ge=-1, le=99999)
    primary_group: Optional[str] = None
    secondary_groups: List[str] = Field(default_factory=list)
    ssh_pubkey_paths: List[str] = Field(default_factory=list)
    startup_command: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Reject names the passwd format cannot hold."""
        if ":" in v or any(c.isspace() for c in v):
            raise ValueError(f"Invalid user name: {v!r}")
        return v
