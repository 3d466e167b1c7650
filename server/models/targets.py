"""Deployment target configuration models.

Targets are declared in a YAML file loaded once at startup:

    targets:
      - name: staging
        secret: 7f0c...
        command: ["/srv/deploy/deploy.sh", "{target}", "{version}"]
        working_dir: /srv/staging
        version_file: /var/lib/hookdeploy/staging.version
"""

import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from constants import TARGET_NAME_PATTERN


class TargetConfig(BaseModel):
    """A named deployment environment."""

    name: str = Field(pattern=TARGET_NAME_PATTERN, max_length=64)
    secret: str = Field(min_length=1)
    command: List[str] = Field(min_length=1)
    working_dir: Optional[str] = None
    env: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = Field(default=None, ge=1.0)  # Falls back to DEPLOY_TIMEOUT
    version_file: Optional[str] = None

    model_config = {"extra": "forbid", "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def read_secret_file(cls, data: Any) -> Any:
        """Allow `secret_file` instead of an inline secret (systemd credentials, Docker secrets)."""
        if isinstance(data, dict) and "secret_file" in data:
            data = dict(data)
            secret_file = data.pop("secret_file")
            if "secret" in data:
                raise ValueError("secret and secret_file are mutually exclusive")
            try:
                data["secret"] = Path(secret_file).read_text(encoding="utf-8").strip()
            except OSError as e:
                raise ValueError(f"cannot read secret_file {secret_file}: {e}") from e
        return data

    @field_validator("command", mode="before")
    @classmethod
    def split_command(cls, v):
        """Accept a shell-style string and split it into argv."""
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v):
        if not v.strip():
            raise ValueError("secret must not be blank")
        return v

    def redacted(self) -> Dict[str, Any]:
        """Config without the secret, for operator output."""
        return self.model_dump(exclude={"secret"})


class TargetsFile(BaseModel):
    """Top-level layout of the targets YAML file."""

    targets: List[TargetConfig] = Field(min_length=1)

    model_config = {"extra": "forbid"}

    @field_validator("targets")
    @classmethod
    def validate_unique_names(cls, v):
        seen = set()
        for target in v:
            if target.name in seen:
                raise ValueError(f"duplicate target name: {target.name}")
            seen.add(target.name)
        return v
