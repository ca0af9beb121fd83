"""Configuration loading and validation for pairchat."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from pairchat.models import DEFAULT_USERS, User


class ServerConfig(BaseModel):
    """Backend server configuration."""

    host: str = "127.0.0.1"
    port: int = 3001
    db_file: str = "db.json"
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )


class ClientConfig(BaseModel):
    """Client configuration."""

    api_base_url: str = "http://localhost:3001"
    cache_dir: Path | None = None  # Defaults to <data_dir>/client
    request_timeout_seconds: float = 5.0
    poll_interval_seconds: float = 2.0
    list_poll_interval_seconds: float = 5.0
    change_check_interval_seconds: float = 0.5

    @field_validator(
        "request_timeout_seconds",
        "poll_interval_seconds",
        "list_poll_interval_seconds",
        "change_check_interval_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Timeouts and intervals must be positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v


class Config(BaseModel):
    """Root configuration for pairchat."""

    data_dir: Path = Path("./data")
    log_level: str = "INFO"
    log_json: bool = True

    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    users: list[User] = Field(default_factory=lambda: list(DEFAULT_USERS))

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level is valid."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper

    @field_validator("users")
    @classmethod
    def validate_users(cls, v: list[User]) -> list[User]:
        """Seed users must exist and have unique names."""
        if not v:
            raise ValueError("at least one user is required")
        names = [user.name for user in v]
        if len(set(names)) != len(names):
            raise ValueError("user names must be unique")
        return v

    @property
    def store_path(self) -> Path:
        """Get full path to the backend JSON document."""
        return self.data_dir / self.server.db_file

    @property
    def cache_dir(self) -> Path:
        """Get the client cache directory."""
        if self.client.cache_dir is not None:
            return self.client.cache_dir
        return self.data_dir / "client"

    @classmethod
    def load(cls, config_path: Path | str = Path("config.yaml")) -> "Config":
        """Load configuration from YAML file with env var overlay.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Validated Config instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config is invalid.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        return cls.model_validate(_apply_env_overrides(yaml_config))

    @classmethod
    def load_or_default(cls, config_path: Path | str | None = None) -> "Config":
        """Load configuration, falling back to defaults if file not found.

        Environment overrides apply to the defaults too.

        Args:
            config_path: Optional path to YAML configuration file.

        Returns:
            Config instance (from file or defaults).
        """
        if config_path is None:
            # Try default locations
            for path in [Path("config.yaml"), Path("config.yml")]:
                if path.exists():
                    return cls.load(path)
            return cls.model_validate(_apply_env_overrides({}))

        try:
            return cls.load(config_path)
        except FileNotFoundError:
            return cls.model_validate(_apply_env_overrides({}))


def _apply_env_overrides(raw: dict) -> dict:
    """Overlay PAIRCHAT_* environment variables onto raw config data."""
    if "PAIRCHAT_DATA_DIR" in os.environ:
        raw["data_dir"] = os.environ["PAIRCHAT_DATA_DIR"]
    if "PAIRCHAT_LOG_LEVEL" in os.environ:
        raw["log_level"] = os.environ["PAIRCHAT_LOG_LEVEL"]
    if "PAIRCHAT_LOG_JSON" in os.environ:
        raw["log_json"] = os.environ["PAIRCHAT_LOG_JSON"].lower() == "true"

    client = raw.get("client") or {}
    if "PAIRCHAT_API_URL" in os.environ:
        client["api_base_url"] = os.environ["PAIRCHAT_API_URL"]
    if "PAIRCHAT_CACHE_DIR" in os.environ:
        client["cache_dir"] = os.environ["PAIRCHAT_CACHE_DIR"]
    if client:
        raw["client"] = client
    return raw
