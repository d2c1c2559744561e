import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".noor"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULT_SYNC_INTERVAL = 300
DEFAULT_SYNC_TIMEOUT = 15


def load_config() -> Dict[str, Any]:
    """Load config from ~/.noor/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., NOOR_CLOUD_URL env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)
    # Support legacy flat keys while preferring nested tables
    legacy_sync = {
        "cloud_url": config.get("cloud_url"),
        "interval_seconds": config.get("sync_interval"),
    }

    sync_cfg = config.get("sync", {})
    config["sync"] = {
        "cloud_url": os.getenv(
            "NOOR_CLOUD_URL",
            sync_cfg.get("cloud_url", legacy_sync.get("cloud_url") or ""),
        ).strip(),
        "interval_seconds": int(os.getenv(
            "NOOR_SYNC_INTERVAL",
            sync_cfg.get("interval_seconds", legacy_sync.get("interval_seconds") or DEFAULT_SYNC_INTERVAL),
        )),
        "timeout_seconds": float(os.getenv(
            "NOOR_SYNC_TIMEOUT",
            sync_cfg.get("timeout_seconds", DEFAULT_SYNC_TIMEOUT),
        )),
        "user_id": os.getenv("NOOR_USER_ID", sync_cfg.get("user_id", "")).strip(),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("NOOR_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('sync', 'cloud_url')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
