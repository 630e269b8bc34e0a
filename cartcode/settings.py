from __future__ import annotations

import os
import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, validator

from cartcode.exceptions import ConfigurationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


DEFAULT_CONFIG_PATH = Path("config") / "default.yaml"
_HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")


class CodecKind(str, Enum):
    BARCODE = "barcode"
    QR = "qr"


class StoreSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    backend: Literal["ipfs", "local"] = "ipfs"
    api_url: str = "https://ipfs.infura.io:5001"
    gateway_url: str = "https://ipfs.infura.io/ipfs/"
    project_id_env: str = "IPFS_PROJECT_ID"
    project_secret_env: str = "IPFS_PROJECT_SECRET"
    request_timeout_s: float | None = Field(default=None, gt=0.0)
    local_root: Path = Path("data") / "store"

    @validator("gateway_url")
    def _gateway_trailing_slash(cls, value: str) -> str:  # noqa: D401
        return value if value.endswith("/") else f"{value}/"

    @property
    def credentials(self) -> tuple[str, str] | None:
        project_id = os.getenv(self.project_id_env, "")
        secret = os.getenv(self.project_secret_env, "")
        if not project_id:
            return None
        return project_id, secret


class RenderSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(200, ge=32, le=4096)
    height: int = Field(200, ge=32, le=4096)
    background: str = "#deeed6"
    line_color: str = "#140c1c"
    caption_suffix: str = " - tic-80 cartridge"
    jpeg_quality: int = Field(95, ge=10, le=100)

    @validator("background", "line_color")
    def _check_color(cls, value: str) -> str:  # noqa: D401
        if not _HEX_COLOR.match(value):
            raise ValueError(f"expected a #rrggbb colour, got {value!r}")
        return value if value.startswith("#") else f"#{value}"

    def caption_for(self, title: str) -> str:
        return f"{title.strip().lower()}{self.caption_suffix}"


class ScanSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_side: int = Field(1000, ge=100, le=8000)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    debug_mode: bool = False
    timeout_ms: int = Field(30000, gt=0)
    poll_interval_ms: int = Field(1000, gt=0)
    codec_kind: CodecKind = CodecKind.BARCODE
    pack_payload: bool = False
    store: StoreSettings = Field(default_factory=StoreSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)

    @validator("codec_kind", pre=True)
    def _normalize_codec(cls, value: Any) -> Any:  # noqa: D401
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000.0

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from a YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                CARTCODE_CONFIG environment variable or defaults to config/default.yaml.

        Returns:
            Settings instance with loaded configuration. When no path was given
            and the default file is absent, the built-in defaults are used.

        Raises:
            ConfigurationError: If an explicit file is missing or the content is invalid.
        """
        explicit = path or (Path(os.environ["CARTCODE_CONFIG"]) if os.getenv("CARTCODE_CONFIG") else None)
        config_path = explicit or DEFAULT_CONFIG_PATH
        if not config_path.exists():
            if explicit is not None:
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}", {"path": str(config_path)}
                )
            return cls()
        try:
            with config_path.open("r", encoding="utf-8") as fp:
                payload = yaml.safe_load(fp) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration is not valid YAML: {exc}", {"path": str(config_path)}) from exc
        if not isinstance(payload, dict):
            raise ConfigurationError("Configuration root must be a mapping", {"path": str(config_path)})
        try:
            return cls(**payload)
        except (ValidationError, TypeError) as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc

    def with_overrides(self, **changes: Any) -> "Settings":
        """Return a validated copy with the non-None ``changes`` applied."""
        updates = {key: value for key, value in changes.items() if value is not None}
        if not updates:
            return self
        try:
            return type(self)(**{**self.model_dump(), **updates})
        except (ValidationError, TypeError) as exc:
            raise ConfigurationError(f"Invalid configuration override: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "CodecKind",
    "Settings",
    "StoreSettings",
    "RenderSettings",
    "ScanSettings",
    "get_settings",
]
