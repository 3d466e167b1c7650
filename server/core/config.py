"""Environment-driven configuration with Pydantic v2."""

import logging
from typing import Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="127.0.0.1", env="HOST")
    port: int = Field(default=9000, env="PORT", ge=1, le=65535)
    debug: bool = Field(default=False, env="DEBUG")

    # Alternative listeners (nginx proxy_pass to a unix socket, or systemd socket activation)
    unix_socket: Optional[str] = Field(default=None, env="UNIX_SOCKET")
    systemd_socket: bool = Field(default=False, env="SYSTEMD_SOCKET")

    # Addresses trusted to set X-Forwarded-For; defaults to "*" on sockets, loopback on TCP
    forwarded_allow_ips: Optional[str] = Field(default=None, env="FORWARDED_ALLOW_IPS")

    # Targets
    targets_file: str = Field(default="targets.yaml", env="TARGETS_FILE")
    webhook_prefix: str = Field(default="webhook", env="WEBHOOK_PREFIX")

    # Operator API (disabled when no token is set)
    admin_token: Optional[str] = Field(default=None, env="ADMIN_TOKEN", min_length=16)

    # Deploy runs
    deploy_timeout: float = Field(default=600.0, env="DEPLOY_TIMEOUT", ge=1.0)
    shutdown_grace: float = Field(default=30.0, env="SHUTDOWN_GRACE", ge=0.0)
    run_history_size: int = Field(default=20, env="RUN_HISTORY_SIZE", ge=1, le=1000)

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    @field_validator("webhook_prefix")
    @classmethod
    def validate_webhook_prefix(cls, v):
        """Strip surrounding slashes; the prefix is mounted as /<prefix>."""
        v = v.strip("/")
        if not v:
            raise ValueError("webhook_prefix must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        if not isinstance(logging.getLevelName(v.upper()), int):
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "forbid",
        "env_parse_none_str": "none",
    }
