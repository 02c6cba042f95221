"""
Configuration management for the Echo-Audit API.
"""

import re
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def mask_secret(secret: str, visible_chars: int = 4) -> str:
    """Mask all but the first and last few characters of a secret."""
    if len(secret) <= visible_chars * 2:
        return "*" * len(secret)
    return secret[:visible_chars] + "*" * (len(secret) - visible_chars * 2) + secret[-visible_chars:]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")
    debug: bool = Field(default=False, description="Enable debug mode")
    reload: bool = Field(default=False, description="Enable auto-reload")

    # Application
    app_name: str = Field(default="Echo-Audit API")
    app_version: str = Field(default="0.1.0")
    app_description: str = Field(default="Deterministic WCAG scoring and versioned audit storage")

    # Key-value storage
    kv_backend: str = Field(default="memory", description="Key-value backend: 'memory' or 'redis'")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout in seconds")

    # Authentication
    password_min_length: int = Field(default=8, description="Minimum password length")
    password_hash_iterations: int = Field(default=100_000, description="PBKDF2 iteration count")
    # Shared by every account; changing it invalidates all stored hashes.
    password_hash_salt: str = Field(default="echo-audit-salt-v1", description="Application-wide PBKDF2 salt")
    login_max_attempts: int = Field(default=5, description="Failed logins before lockout")
    login_lockout_seconds: int = Field(default=15 * 60, description="Login lockout window")
    session_timeout_seconds: int = Field(default=24 * 60 * 60, description="Idle session timeout")

    # Gemini (violation oracle)
    gemini_api_key: str = Field(default="", description="Gemini API key")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL",
    )
    gemini_model: str = Field(default="gemini-3-pro-preview", description="Gemini model name")
    gemini_timeout: float = Field(default=120.0, description="Gemini request timeout")
    gemini_temperature: float = Field(default=0.1, description="Sampling temperature for detection")
    gemini_thinking_budget: int = Field(default=2048, description="Reasoning token budget")

    # Frames and source upload
    frame_interval_seconds: float = Field(default=2.0, gt=0, description="Seconds between sampled frames")
    max_frames: int = Field(default=10, description="Maximum frames sent to the oracle")
    frame_max_dimension: int = Field(default=960, description="Longest frame edge after downscaling")
    frame_jpeg_quality: int = Field(default=70, description="JPEG quality for re-encoded frames")
    max_code_chars: int = Field(default=200_000, description="Maximum source file size in characters")

    # Request throttling
    rate_limit_enabled: bool = Field(default=True, description="Enable request rate limiting")
    analyze_rate_limit: str = Field(default="10/minute", description="Rate limit for oracle analysis")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )
    cors_allow_credentials: bool = Field(default=True, description="Allow CORS credentials")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: 'json' or 'console'")

    def log_config_safely(self) -> dict:
        """Return configuration for logging with secrets masked."""
        config = {}
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)
            lowered = field_name.lower()
            if "key" in lowered or "salt" in lowered or "secret" in lowered:
                config[field_name] = mask_secret(str(value)) if value else "<not_set>"
            elif lowered == "redis_url":
                config[field_name] = re.sub(r'://([^:]*):([^@]+)@', r'://\1:***@', value)
            else:
                config[field_name] = value
        return config


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
