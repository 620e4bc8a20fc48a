# src/todo_tree/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (an empty token means "not signed in").
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODO_TREE"

DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0/me/todo"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Remote service ----
    graph_base_url: str
    access_token: str | None
    connect_timeout: float
    read_timeout: float

    # ---- Demo mode ----
    offline: bool

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token and self.access_token.strip())

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo-tree") or "todo-tree"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo-tree"))

        graph_base_url = (_env(_k("GRAPH_BASE_URL"), DEFAULT_GRAPH_BASE_URL) or DEFAULT_GRAPH_BASE_URL).rstrip("/")
        access_token = _first_env(_k("ACCESS_TOKEN"), "MS_GRAPH_TOKEN", default=None)

        connect_timeout = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("READ_TIMEOUT_SECONDS"), 30.0)
        # keep read >= connect as a sane baseline
        read_timeout = max(read_timeout, connect_timeout)

        offline = _env_bool(_k("OFFLINE"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            graph_base_url=graph_base_url,
            access_token=access_token.strip() if access_token else None,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            offline=offline,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
