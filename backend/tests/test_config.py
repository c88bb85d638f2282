"""
Configuration Tests
"""

import pytest

from tracker.config import ConfigManager


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "tracker.yaml").write_text(
        "server:\n"
        "  port: 3000\n"
        "  corsOrigins: '*'\n"
        "names:\n"
        "  minLength: 3\n"
        "  maxLength: 16\n"
        "logging:\n"
        "  level: debug\n"
    )
    (tmp_path / "extra.json").write_text('{"feature": {"enabled": true}}')
    return tmp_path


def test_loads_yaml_and_json(config_dir):
    config = ConfigManager(str(config_dir), environ={})

    assert config.get("tracker.server.port") == 3000
    assert config.get("extra.feature.enabled") is True


def test_dot_notation_default(config_dir):
    config = ConfigManager(str(config_dir), environ={})

    assert config.get("tracker.missing.key", "fallback") == "fallback"
    assert config.get("tracker.server.port.deeper", 1) == 1


def test_registry_config(config_dir):
    config = ConfigManager(str(config_dir), environ={})

    assert config.get_registry_config() == {
        "minNameLength": 3,
        "maxNameLength": 16,
        "maxMessageLength": 500,
    }


def test_log_level_uppercased(config_dir):
    config = ConfigManager(str(config_dir), environ={})

    assert config.get_log_level() == "DEBUG"


def test_env_overrides(config_dir):
    config = ConfigManager(str(config_dir), environ={
        "TRACKER_PORT": "8080",
        "TRACKER_CORS_ORIGINS": "http://a.test, http://b.test",
        "TRACKER_LOG_LEVEL": "warning",
    })

    assert config.get("tracker.server.port") == 8080
    assert config.get_server_config()["corsOrigins"] == ["http://a.test", "http://b.test"]
    assert config.get_log_level() == "WARNING"


def test_bad_port_override_keeps_file_value(config_dir, caplog):
    with caplog.at_level("WARNING", logger="tracker.config"):
        config = ConfigManager(str(config_dir), environ={"TRACKER_PORT": "not-a-port"})

    assert config.get("tracker.server.port") == 3000
    assert "TRACKER_PORT" in caplog.text


def test_missing_directory_uses_defaults(tmp_path):
    config = ConfigManager(str(tmp_path / "nope"), environ={})

    assert config.get_server_config() == {}
    assert config.get_registry_config()["minNameLength"] == 2


def test_set_and_reload(config_dir):
    config = ConfigManager(str(config_dir), environ={})

    config.set("tracker.names.minLength", 5)
    assert config.get("tracker.names.minLength") == 5

    config.reload()
    assert config.get("tracker.names.minLength") == 3


def test_bundled_config_file():
    """The shipped backend/config/tracker.yaml loads with sane values"""
    config = ConfigManager(environ={})

    assert config.get("tracker.names.minLength") == 2
    assert config.get("tracker.names.maxLength") == 32
    assert config.get("tracker.server.socketPath") == "socket.io"
