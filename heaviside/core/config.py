from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from ..common.logger import get_logger
from ..events.models import DEFAULT_ROUTE_FIELD, WILDCARD_ORIGIN

log = get_logger("config")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

_TRUE = ("1", "true", "yes", "on")


def _valid_fields(model: type[BaseModel], raw: object) -> dict:
    """Keep the entries of ``raw`` that ``model`` accepts on their own."""
    if not isinstance(raw, dict):
        if raw is not None:
            log.warning("ignoring %s section: expected an object, got %r", model.__name__, raw)
        return {}

    kept: dict = {}
    for key, value in raw.items():
        try:
            model.model_validate({key: value})
        except ValidationError:
            log.warning("ignoring invalid %s.%s=%r", model.__name__, key, value)
            continue
        kept[key] = value
    return kept


class RemoteConfig(BaseModel):
    """Settings for posting envelopes to other hubs over HTTP."""

    timeout_s: float = 10.0
    messages_path: str = "/v1/messages"


class HubConfig(BaseModel):
    """Hub runtime configuration loaded from file + env overrides.

    Notes:
    - `origin` is this hub's own origin; bridge peers and remote hubs compare
      target origins against it.
    - `default_target_origin` of "*" lets any window receive cross-window
      publishes. Set a concrete origin in production.
    """

    origin: str = "http://localhost:8000"
    default_target_origin: str = WILDCARD_ORIGIN
    route_field: str = DEFAULT_ROUTE_FIELD
    isolate_callback_errors: bool = False
    log_level: LogLevel = "INFO"

    remote: RemoteConfig = Field(default_factory=RemoteConfig)


class ConfigManager:
    """Load configuration from JSON file with environment overrides.

    - default < config file < environment variables
    - self-healing:
        * if config file is missing: write a default config (best-effort)
        * if config file is corrupted: backup the bad file then write a default config (best-effort)
    - never crash the hub due to config issues
    """

    def __init__(self, default_path: Optional[Path] = None) -> None:
        repo_root = Path(__file__).resolve().parents[2]
        self.repo_root = repo_root
        self.default_path = default_path or repo_root / "config" / "heaviside.json"

    def _default_data(self) -> dict:
        return HubConfig().model_dump()

    def _write_default(self, cfg_path: Path) -> None:
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        cfg_path.write_text(
            json.dumps(self._default_data(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def _heal(self, cfg_path: Path, *, backup: bool) -> dict:
        if backup:
            try:
                ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
                cfg_path.replace(cfg_path.with_suffix(cfg_path.suffix + f".bad-{ts}"))
            except OSError:
                pass
        try:
            self._write_default(cfg_path)
        except OSError:
            pass
        return self._default_data()

    def resolve_path(self) -> Path:
        raw_path = os.getenv("HEAVISIDE_CONFIG_PATH", str(self.default_path))
        cfg_path = Path(raw_path)
        if not cfg_path.is_absolute():
            # interpret relative paths from repo root (not process CWD)
            cfg_path = self.repo_root / cfg_path
        return cfg_path

    def load(self) -> HubConfig:
        cfg_path = self.resolve_path()

        if cfg_path.exists():
            try:
                data = json.loads(cfg_path.read_text(encoding="utf-8"))
                if not isinstance(data, dict):
                    raise ValueError("config root must be an object")
            except ValueError:
                data = self._heal(cfg_path, backup=True)
        else:
            data = self._heal(cfg_path, backup=False)

        # keep every valid file value even when a neighbour is broken
        remote_data = _valid_fields(RemoteConfig, data.get("remote"))
        data = _valid_fields(HubConfig, {k: v for k, v in data.items() if k != "remote"})

        overrides: dict = {}
        for key, env in (
            ("origin", "HEAVISIDE_ORIGIN"),
            ("default_target_origin", "HEAVISIDE_DEFAULT_TARGET_ORIGIN"),
            ("route_field", "HEAVISIDE_ROUTE_FIELD"),
        ):
            v = os.getenv(env)
            if v is not None and v.strip():
                overrides[key] = v.strip()

        if os.getenv("HEAVISIDE_ISOLATE_CALLBACK_ERRORS") is not None:
            overrides["isolate_callback_errors"] = (
                os.getenv("HEAVISIDE_ISOLATE_CALLBACK_ERRORS", "").strip().lower() in _TRUE
            )
        if os.getenv("HEAVISIDE_LOG_LEVEL"):
            overrides["log_level"] = os.getenv("HEAVISIDE_LOG_LEVEL", "INFO").strip().upper()
        data.update(_valid_fields(HubConfig, overrides))

        if os.getenv("HEAVISIDE_REMOTE_TIMEOUT_S"):
            remote_data.update(
                _valid_fields(RemoteConfig, {"timeout_s": os.getenv("HEAVISIDE_REMOTE_TIMEOUT_S", "").strip()})
            )
        data["remote"] = remote_data

        return HubConfig.model_validate(data)
