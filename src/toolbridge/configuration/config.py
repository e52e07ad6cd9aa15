"""Configuration management for toolbridge."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide settings for the MCP client layer."""

    # MCP client timeouts (seconds)
    mcp_handshake_timeout: float = Field(default=30.0, alias="TOOLBRIDGE_MCP_HANDSHAKE_TIMEOUT")
    mcp_request_timeout: float = Field(default=60.0, alias="TOOLBRIDGE_MCP_REQUEST_TIMEOUT")
    mcp_shutdown_timeout: float = Field(default=5.0, alias="TOOLBRIDGE_MCP_SHUTDOWN_TIMEOUT")

    # Line buffer for server stdout. Base64 images arrive as a single line.
    mcp_stdout_limit: int = Field(default=16 * 1024 * 1024, alias="TOOLBRIDGE_MCP_STDOUT_LIMIT")

    # Identity sent in the initialize handshake
    mcp_client_name: str = Field(default="toolbridge", alias="TOOLBRIDGE_MCP_CLIENT_NAME")
    mcp_client_version: str = Field(default="0.1.0", alias="TOOLBRIDGE_MCP_CLIENT_VERSION")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="TOOLBRIDGE_LOG_LEVEL"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator(
        "mcp_handshake_timeout", "mcp_request_timeout", "mcp_shutdown_timeout", mode="after"
    )
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts and embedding hosts."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
