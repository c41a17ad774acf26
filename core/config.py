"""Configuration models and loading."""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "hole-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"


class ProxySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8080
    keep_alive_timeout: int = 5


class UpstreamSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "hole.cert.pl"
    scheme: str = "https"
    timeout: float = 30.0
    user_agent: str = "Cloudflare-Worker-Proxy/1.0"
    proxied_by: str = "Cloudflare-Worker"
    max_connections: int = 100
    max_keepalive_connections: int = 20

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.host}"


class RoutingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed_paths: tuple[str, ...] = ("/domains/", "/domains/v2/")

    @field_validator("allowed_paths")
    @classmethod
    def _must_be_absolute(cls, paths: tuple[str, ...]) -> tuple[str, ...]:
        for path in paths:
            if not path.startswith("/"):
                raise ValueError(f"allowed path must start with '/': {path!r}")
        return paths


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(config_file.read_text())
        return Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default


def validate_config(config: Config) -> None:
    """Raise ConfigurationError if the proxy cannot run with this config."""
    if not config.upstream.host:
        raise ConfigurationError("upstream.host is not configured")
    if not config.routing.allowed_paths:
        raise ConfigurationError("routing.allowed_paths must not be empty")
