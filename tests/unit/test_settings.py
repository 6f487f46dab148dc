"""Config file, ids and timestamp helpers."""

from datetime import datetime, timezone

import pytest

from brenner.errors import ConfigError
from brenner.lib import config, ids, paths
from brenner.lib.timestamps import EPOCH, parse_timestamp, utc_now


def write_config(directory, text):
    (directory / "config.yaml").write_text(text)
    config.clear_cache()


def test_config_path_under_dot_brenner(isolated_config):
    assert paths.config_file() == isolated_config / "config.yaml"
    assert config.config_file() == isolated_config / "config.yaml"


def test_missing_config_is_empty(caplog):
    with caplog.at_level("DEBUG", logger="brenner.lib.config"):
        assert config.load_config() == {}
    assert "using defaults" in caplog.text
    assert config.lookup("defaults.project_key") is None
    assert config.default_project() is None


def test_lookup_dotted(isolated_config):
    write_config(isolated_config, "defaults:\n  project_key: /data/proj\n  sender: Ops\n")
    assert config.lookup("defaults.project_key") == "/data/proj"
    assert config.lookup("defaults.missing", "fallback") == "fallback"
    assert config.lookup("defaults.sender.deeper") is None
    assert config.default_project() == "/data/proj"
    assert config.default_sender() == "Ops"


def test_config_cached_until_cleared(isolated_config):
    write_config(isolated_config, "logging_level: info\n")
    assert config.logging_level() == "INFO"
    (isolated_config / "config.yaml").write_text("logging_level: debug\n")
    assert config.logging_level() == "INFO"
    config.clear_cache()
    assert config.logging_level() == "DEBUG"


def test_env_beats_file(isolated_config, monkeypatch):
    write_config(isolated_config, "defaults:\n  project_key: from-file\n")
    monkeypatch.setenv("BRENNER_PROJECT", "from-env")
    assert config.default_project() == "from-env"
    monkeypatch.setenv("BRENNER_PROJECT", "  ")
    assert config.default_project() == "from-file"


def test_resolve_priority(isolated_config, monkeypatch):
    write_config(isolated_config, "section:\n  key: file\n")
    assert config.resolve(None, "BRENNER_TEST_KEY", "section.key", "default") == "file"
    monkeypatch.setenv("BRENNER_TEST_KEY", "env")
    assert config.resolve(None, "BRENNER_TEST_KEY", "section.key", "default") == "env"
    assert config.resolve("arg", "BRENNER_TEST_KEY", "section.key", "default") == "arg"
    assert config.resolve(None, None, "section.other", "default") == "default"


def test_logging_level_default():
    assert config.logging_level() == "WARNING"


@pytest.mark.parametrize("text", ["key: [unclosed\n", "- just\n- a list\n"])
def test_bad_config_raises(isolated_config, text):
    write_config(isolated_config, text)
    with pytest.raises(ConfigError):
        config.load_config()


def test_uuid7_shape_and_order():
    first, second = ids.uuid7(), ids.uuid7()
    assert len(first) == 36
    assert first.count("-") == 4
    assert first[14] == "7"
    assert first != second


@pytest.mark.parametrize("value,expected", [(0, "0"), (35, "z"), (36, "10"), (46656, "1000")])
def test_base36(value, expected):
    assert ids.base36(value) == expected


def test_base36_rejects_negative():
    with pytest.raises(ValueError):
        ids.base36(-1)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2025-01-01T00:05:00Z", datetime(2025, 1, 1, 0, 5, tzinfo=timezone.utc)),
        ("2025-01-01T00:05:00+00:00", datetime(2025, 1, 1, 0, 5, tzinfo=timezone.utc)),
        ("2025-01-01T00:05:00", datetime(2025, 1, 1, 0, 5, tzinfo=timezone.utc)),
        ("2025-01-01T02:05:00+02:00", datetime(2025, 1, 1, 0, 5, tzinfo=timezone.utc)),
        ("not a time", EPOCH),
        ("", EPOCH),
        (None, EPOCH),
    ],
)
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


def test_utc_now_round_trips():
    assert parse_timestamp(utc_now()) > EPOCH
