"""Centralized settings and configuration loading utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DownstreamSettings(BaseModel):
    api_path: str = "/vision/v3.2"
    subscription_header: str = "Ocp-Apim-Subscription-Key"
    timeout_sec: Optional[float] = None
    verify_tls: bool = True


class UploadSettings(BaseModel):
    backend: Literal["local", "minio"] = "local"
    directory: str = "./upload/images"
    mount_path: str = "/uploadImage"
    public_base_url: str = "http://localhost:3000"
    max_size_bytes: int = Field(4_000_000, ge=1)
    allowed_extensions: list[str] = Field(
        default_factory=lambda: [".png", ".gif", ".jpeg", ".jpg", ".bmp"]
    )


class StorageSettings(BaseModel):
    endpoint: str = "http://minio:9000"
    access_key: str = "access_key"
    secret_key: str = "secret_key"
    bucket: str = "vision-uploads"
    public_endpoint: str | None = None
    presign_expiry_sec: int | None = 3600


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_dir: str = "./logs"
    max_log_file_size_mb: int = 100
    backup_count: int = 7


class MonitoringSettings(BaseModel):
    prometheus_port: int = 9092


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VISION_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
        frozen=True,
    )

    service_name: str = "vision-relay"
    api_version: str = "v1"
    base_url: str = "/api/v1"
    host: str = "0.0.0.0"
    port: int = 3000

    endpoint_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("endpoint_url", "VISION_ENDPOINT_URL", "ENDPOINT_URL"),
    )
    subscription_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("subscription_key", "VISION_SUBSCRIPTION_KEY", "SUBSCRIPTION_KEY"),
    )
    legacy_plain_text_conflict: bool = False

    downstream: DownstreamSettings = DownstreamSettings()
    uploads: UploadSettings = UploadSettings()
    minio: StorageSettings = StorageSettings()
    logging: LoggingSettings = LoggingSettings()
    monitoring: MonitoringSettings = MonitoringSettings()

    @staticmethod
    def load_yaml_config_file(file_path: str | Path | None) -> Dict[str, Any]:
        if not file_path:
            return {}
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        import yaml  # lazy import for optional dependency

        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError("Configuration YAML must produce a mapping")
        return data

    @classmethod
    def from_source(cls, *, config_file: str | None = None, **overrides: Any) -> "Settings":
        base_data = cls.load_yaml_config_file(config_file)
        base_data.update(overrides)
        return cls(**base_data)


@dataclass(frozen=True)
class DownstreamConfig:
    """Read-only view of what the relay needs to reach the vision API."""

    endpoint_url: Optional[str]
    subscription_key: Optional[str]
    api_path: str = "/vision/v3.2"
    subscription_header: str = "Ocp-Apim-Subscription-Key"
    timeout: Optional[float] = None
    verify: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint_url) and bool(self.subscription_key)

    def build_url(self, segment: str) -> str:
        base = (self.endpoint_url or "").rstrip("/")
        return f"{base}/{self.api_path.strip('/')}/{segment.lstrip('/')}"

    @classmethod
    def from_settings(cls, settings: Settings) -> "DownstreamConfig":
        downstream = settings.downstream
        return cls(
            endpoint_url=settings.endpoint_url,
            subscription_key=settings.subscription_key,
            api_path=downstream.api_path,
            subscription_header=downstream.subscription_header,
            timeout=downstream.timeout_sec,
            verify=downstream.verify_tls,
        )


@lru_cache
def get_settings() -> Settings:
    cfg_file = os.getenv("VISION_CONFIG_FILE")
    if cfg_file:
        return Settings.from_source(config_file=cfg_file)

    default_path = Path.cwd() / "config" / "settings.yaml"
    if default_path.exists():
        return Settings.from_source(config_file=str(default_path))

    return Settings()


def reload_settings() -> None:
    get_settings.cache_clear()


def settings_dependency() -> Settings:
    return get_settings()
