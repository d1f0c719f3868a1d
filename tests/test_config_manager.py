import json

import pytest

from control_client.config import ConfigManager


def _write(tmp_path, data):
    path = tmp_path / "control_client.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding='utf-8')
    return str(path)


def test_defaults_without_file():
    config = ConfigManager(None)
    assert config.get('command.default_timeout_ms') == 10000
    assert config.get('command.poll_interval_sec') == 1.0
    assert config.get('http_client.request_timeout_sec') == 15
    assert config.get('logging.file_path') is None
    assert config.get('missing.key', 'fallback') == 'fallback'


def test_file_values_merge_over_defaults(tmp_path):
    path = _write(tmp_path, {
        "server_url": "https://control.example.com",
        "credentials": {"username": "admin"},
        "command": {"default_timeout_ms": 30000},
    })
    config = ConfigManager(path)
    config.validate()

    assert config.get('server_url') == "https://control.example.com"
    assert config.get('command.default_timeout_ms') == 30000
    assert config.get('command.poll_interval_sec') == 1.0


def test_overrides_skip_none_values(tmp_path):
    path = _write(tmp_path, {"server_url": "https://a.example.com", "credentials": {"username": "admin"}})
    config = ConfigManager(path, overrides={'server_url': None, 'credentials': {'username': 'ops'}})

    assert config.get('server_url') == "https://a.example.com"
    assert config.get('credentials.username') == 'ops'


def test_nested_none_override_keeps_file_value(tmp_path):
    path = _write(tmp_path, {"credentials": {"username": "admin"}})
    config = ConfigManager(path, overrides={'credentials': {'username': None}})
    assert config.get('credentials.username') == 'admin'


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / "absent.json"))


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_invalid_file_raises_value_error(tmp_path, content):
    with pytest.raises(ValueError):
        ConfigManager(_write(tmp_path, content))


@pytest.mark.parametrize("data", [
    {"credentials": {"username": "admin"}},
    {"server_url": "control.example.com", "credentials": {"username": "admin"}},
    {"server_url": "https://control.example.com"},
])
def test_validate_rejects_incomplete_config(tmp_path, data):
    with pytest.raises(ValueError):
        ConfigManager(_write(tmp_path, data)).validate()
