from pathlib import Path

import pytest

import config
from db import database
from db.store import LocalRecordStore

# 2024-03-10 12:00:00 UTC
BASE_TIME = 1_710_072_000_000


class FakeClock:
    def __init__(self, start: int = BASE_TIME):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[sync]",
                "cloud_url = \"\"",
                "interval_seconds = 300",
                "timeout_seconds = 15",
                "user_id = \"\"",
                "",
                "[logging]",
                "level = \"WARNING\"",
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    config_dir = tmp_path / ".noor"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    for name in ("NOOR_CLOUD_URL", "NOOR_SYNC_INTERVAL", "NOOR_SYNC_TIMEOUT", "NOOR_USER_ID", "NOOR_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "noor.db")
    return config_dir


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(config_dir, clock):
    store = LocalRecordStore(config_dir / "noor.db", clock=clock)
    store.init()
    return store
