from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Mapping, Optional

import streamlit as st

from core.errors import ConfigurationError

CONFIG_FILE_NAME = "settings.json"
ENV_PREFIX = "STOCK_REPORTS_"
ENV_DATA_DIR = ENV_PREFIX + "DATA_DIR"

# Start of the current fiscal tracking period; lower bound for as-of reports.
DEFAULT_AS_OF_START = date(2025, 7, 1)


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    chunk_size: int = 250
    page_size: int = 20
    fetch_workers: int = 4
    query_timeout_seconds: float = 30.0
    as_of_start: date = DEFAULT_AS_OF_START
    warehouse_ids: Optional[tuple[int, ...]] = None
    log_level: str = "INFO"
    environment: str = "development"
    app_name: str = "stock-movement-reports"


def _default_data_dir() -> Path:
    return Path.home() / ".stock_reports"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX + name} must be an integer.", details={"value": raw})
    if value <= 0:
        raise ConfigurationError(f"{ENV_PREFIX + name} must be > 0.", details={"value": raw})
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = float(str(raw).strip())
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX + name} must be a number.", details={"value": raw})
    if value <= 0:
        raise ConfigurationError(f"{ENV_PREFIX + name} must be > 0.", details={"value": raw})
    return value


def _as_of_start(env: Mapping[str, str]) -> date:
    raw = env.get(ENV_PREFIX + "AS_OF_START")
    if raw is None or not str(raw).strip():
        return DEFAULT_AS_OF_START
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}AS_OF_START must be an ISO date (YYYY-MM-DD).", details={"value": raw})


def _warehouse_ids(env: Mapping[str, str]) -> Optional[tuple[int, ...]]:
    raw = env.get(ENV_PREFIX + "WAREHOUSE_IDS")
    if raw is None or not str(raw).strip():
        return None
    try:
        return tuple(int(p) for p in str(raw).replace(";", ",").split(",") if p.strip())
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}WAREHOUSE_IDS must be a comma-separated list of ids.", details={"value": raw})


def resolve_data_dir(env: Mapping[str, str], session_dir: Optional[str] = None) -> Path:
    # Priority order:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if session_dir:
        return Path(session_dir).expanduser().resolve()
    if env.get(ENV_DATA_DIR):
        return Path(env.get(ENV_DATA_DIR, "")).expanduser().resolve()
    default_dir = _default_data_dir()
    persisted = _load_persisted_settings(default_dir)
    return Path(persisted.get("data_dir", default_dir)).expanduser().resolve()


def load_settings(env: Optional[Mapping[str, str]] = None, *, data_dir: Optional[Path] = None) -> Settings:
    env = os.environ if env is None else env
    data_dir = data_dir if data_dir is not None else resolve_data_dir(env)
    data_dir.mkdir(parents=True, exist_ok=True)

    log_level = str(env.get(ENV_PREFIX + "LOG_LEVEL", "INFO")).strip().upper() or "INFO"
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError(f"Unknown log level: {log_level}", details={"value": log_level})

    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "app.db",
        chunk_size=_positive_int(env, "CHUNK_SIZE", 250),
        page_size=_positive_int(env, "PAGE_SIZE", 20),
        fetch_workers=_positive_int(env, "FETCH_WORKERS", 4),
        query_timeout_seconds=_positive_float(env, "QUERY_TIMEOUT", 30.0),
        as_of_start=_as_of_start(env),
        warehouse_ids=_warehouse_ids(env),
        log_level=log_level,
        environment=str(env.get(ENV_PREFIX + "ENV", "development")).strip().lower() or "development",
    )


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    cfg = data_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Update session for immediate effect
    st.session_state["stock_reports_data_dir"] = str(data_dir)


@st.cache_resource
def get_settings() -> Settings:
    data_dir = resolve_data_dir(os.environ, st.session_state.get("stock_reports_data_dir"))
    return load_settings(os.environ, data_dir=data_dir)
