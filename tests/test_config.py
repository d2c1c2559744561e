from pathlib import Path

import config


def _write_config(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def test_load_config_reads_sync_section(config_dir):
    _write_config(
        config.CONFIG_PATH,
        "[sync]\ncloud_url = \"https://cloud.example/\"\ninterval_seconds = 60\nuser_id = \"user-1\"\n",
    )

    loaded = config.load_config()

    assert loaded["sync"] == {
        "cloud_url": "https://cloud.example/",
        "interval_seconds": 60,
        "timeout_seconds": 15.0,
        "user_id": "user-1",
    }
    assert loaded["logging"]["level"] == "INFO"


def test_environment_overrides_file(config_dir, monkeypatch):
    monkeypatch.setenv("NOOR_CLOUD_URL", "https://env.example")
    monkeypatch.setenv("NOOR_SYNC_INTERVAL", "120")
    monkeypatch.setenv("NOOR_LOG_LEVEL", "debug")

    loaded = config.load_config()

    assert loaded["sync"]["cloud_url"] == "https://env.example"
    assert loaded["sync"]["interval_seconds"] == 120
    assert loaded["logging"]["level"] == "DEBUG"


def test_legacy_flat_keys_are_supported(config_dir):
    _write_config(config.CONFIG_PATH, "cloud_url = \"https://legacy.example\"\nsync_interval = 90\n")

    loaded = config.load_config()

    assert loaded["sync"]["cloud_url"] == "https://legacy.example"
    assert loaded["sync"]["interval_seconds"] == 90


def test_missing_config_is_copied_from_example(config_dir):
    config.CONFIG_PATH.unlink()

    loaded = config.load_config()

    assert config.CONFIG_PATH.exists()
    assert loaded["sync"]["cloud_url"] == ""
    assert config.get_config_value("sync", "interval_seconds") == 300
