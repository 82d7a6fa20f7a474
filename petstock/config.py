from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "PETSTOCK_DATA_DIR"
ENV_NOTIFY_URL = "PETSTOCK_NOTIFY_URL"
ENV_EXPIRY_WINDOW = "PETSTOCK_EXPIRY_WINDOW_DAYS"

DEFAULT_EXPIRY_WINDOW_DAYS = 30


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "₹"
    notify_url: Optional[str] = None
    expiry_window_days: int = DEFAULT_EXPIRY_WINDOW_DAYS

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"


def default_data_dir() -> Path:
    # Not a hard-coded absolute path: uses the user's home directory.
    return Path.home() / ".petstock"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def _expiry_window(persisted: dict) -> int:
    raw = os.getenv(ENV_EXPIRY_WINDOW) or persisted.get("expiry_window_days")
    try:
        days = int(raw) if raw is not None else DEFAULT_EXPIRY_WINDOW_DAYS
    except (TypeError, ValueError):
        return DEFAULT_EXPIRY_WINDOW_DAYS
    return days if days > 0 else DEFAULT_EXPIRY_WINDOW_DAYS


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    cfg = data_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Update session for immediate effect
    st.session_state["petstock_data_dir"] = str(data_dir)


def build_settings(data_dir: Path, persisted: Optional[dict] = None) -> Settings:
    persisted = persisted or {}
    data_dir.mkdir(parents=True, exist_ok=True)
    notify_url = os.getenv(ENV_NOTIFY_URL) or persisted.get("notify_url") or None
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "petstock.db",
        notify_url=notify_url,
        expiry_window_days=_expiry_window(persisted),
    )


@st.cache_resource
def get_settings() -> Settings:
    # Priority order:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    default_dir = default_data_dir()
    persisted = _load_persisted_settings(default_dir)
    if "petstock_data_dir" in st.session_state:
        data_dir = Path(st.session_state["petstock_data_dir"]).expanduser().resolve()
    elif os.getenv(ENV_DATA_DIR):
        data_dir = Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    else:
        data_dir = Path(persisted.get("data_dir", default_dir)).expanduser().resolve()

    return build_settings(data_dir, persisted)
