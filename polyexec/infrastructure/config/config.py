"""
Application configuration.

Loaded from ``POLYEXEC_*`` environment variables and an optional ``.env``
file through pydantic-settings.
"""

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from polyexec.domain.value_objects import ExecutionMode, ResourceLimit


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="POLYEXEC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============== Execution ==============
    execution_mode: ExecutionMode = Field(default=ExecutionMode.IN_PROCESS)
    default_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Applied when a request carries no timeout"
    )

    # ============== Docker ==============
    docker_url: Optional[str] = Field(
        default=None, description="Docker API URL; auto-detected from DOCKER_HOST when unset"
    )
    workspace_mount_path: str = Field(default="/workspace")
    workspace_root: Optional[str] = Field(
        default=None, description="Parent directory for per-run workspaces; system temp when unset"
    )
    memory_limit_mb: int = Field(default=512, ge=16, le=16384)
    cpu_limit_cores: float = Field(default=1.0, ge=0.1, le=16)
    network_mode: str = Field(default="none")
    container_user: Optional[str] = Field(default=None)
    image_overrides: Dict[str, str] = Field(
        default_factory=dict, description="Language alias -> image"
    )

    # ============== Kernels ==============
    jupyter_kernels: Dict[str, str] = Field(
        default_factory=dict, description="Language alias -> Jupyter kernelspec name"
    )
    jupyter_startup_timeout: float = Field(default=60.0, gt=0)

    # ============== Server ==============
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)

    # ============== Logging ==============
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text")

    @field_validator("network_mode")
    @classmethod
    def validate_network_mode(cls, v: str) -> str:
        if v == "host":
            raise ValueError("network_mode 'host' is not allowed for sandbox containers")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "text"}
        if v not in allowed:
            raise ValueError(f"log_format must be one of {allowed}")
        return v

    def resource_limit(self) -> ResourceLimit:
        return ResourceLimit.from_megabytes(self.memory_limit_mb, self.cpu_limit_cores)


@lru_cache()
def get_settings() -> Settings:
    """
    Return the process-wide settings.

    Cached so the environment is read once.
    """
    return Settings()
