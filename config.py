import json
import os
import shlex
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# User config: loaded from ~/.agent-monitor/config.json (primary)
# or project-root config.json (fallback).
CONFIG_PATH = Path(os.environ.get("AGENT_MONITOR_DIR") or Path.home() / ".agent-monitor").expanduser() / "config.json"
_LOCAL_CONFIG_PATH = Path(__file__).resolve().parent / "config.json"
_user_config: dict = {}


def _load_config() -> dict:
    # Project-local config.json as base, user home config overlaid on top
    merged: dict = {}
    for path in (_LOCAL_CONFIG_PATH, CONFIG_PATH):
        if path is not None and path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    merged.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                pass
    return merged


def get(key: str, default=None):
    """Get a config value by dot-separated key. E.g. get('observers.queue_size', 1000)"""
    keys = key.split(".")
    val = _user_config
    for k in keys:
        if isinstance(val, dict):
            val = val.get(k)
        else:
            return default
    return val if val is not None else default


_user_config = _load_config()


# ---- Data directory -----------------------------------------------------------
# Base directory for logs and the user config file.
# Priority: AGENT_MONITOR_DIR env var > "data_dir" config key > ~/.agent-monitor

_data_dir: Optional[Path] = None


def get_data_dir() -> Path:
    """Return the resolved base data directory.

    Resolution order:
    1. ``AGENT_MONITOR_DIR`` environment variable (highest, for CI/Docker)
    2. ``"data_dir"`` key in config.json
    3. ``~/.agent-monitor`` (default)
    """
    global _data_dir
    if _data_dir is not None:
        return _data_dir
    env_val = os.environ.get("AGENT_MONITOR_DIR")
    if env_val:
        _data_dir = Path(env_val).expanduser().resolve()
    else:
        configured = get("data_dir")
        if configured:
            _data_dir = Path(configured).expanduser().resolve()
        else:
            _data_dir = Path.home() / ".agent-monitor"
    return _data_dir


def _reset_data_dir() -> None:
    """Reset the cached data directory (for testing only)."""
    global _data_dir
    _data_dir = None


# ---- Server ------------------------------------------------------------------
# Env vars win over config.json so a deployment can override without a file.

def _env_or_config(env_key: str, config_key: str, default):
    val = os.getenv(env_key)
    if val:
        return val
    return get(config_key, default)


PORT = int(_env_or_config("PORT", "port", 3456))
HOST = _env_or_config("HOST", "host", "127.0.0.1")
STATIC_DIR = Path(get("static_dir", str(Path(__file__).resolve().parent / "public")))


def _split_origins(value) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    return [o.strip() for o in value or [] if isinstance(o, str) and o.strip()]


# Origins allowed to call the API cross-origin. The bundled frontend is
# same-origin, so the default is none.
CORS_ORIGINS = _split_origins(_env_or_config("CORS_ORIGINS", "cors_origins", ""))

# ---- Agent subprocess --------------------------------------------------------
# CLAUDE_BIN may carry extra words (e.g. "npx claude"); split like a shell would.
CLAUDE_BIN = _env_or_config("CLAUDE_BIN", "claude_bin", "claude")
DEFAULT_CWD = get("default_cwd")  # None → server's own working directory
SHUTDOWN_GRACE_SECONDS = float(get("shutdown_grace_seconds", 5.0))

# ---- Observers ---------------------------------------------------------------
OBSERVER_QUEUE_SIZE = int(get("observers.queue_size", 1000))

# ---- Demo playback -----------------------------------------------------------
DEMO_INTERVAL = float(get("demo_interval", 0.8))


def get_agent_command() -> list[str]:
    """Return the agent executable as an argv prefix."""
    return shlex.split(CLAUDE_BIN)

