import os

import pytest

from pulsadash.domain.errors import ConfigurationError
from pulsadash.infrastructure.config import settings
from pulsadash.infrastructure.config.settings import (
    get_api_endpoints, get_api_token, get_cache_dir, get_config, get_max_retries,
    get_probe_timeout, get_request_timeout, load_configuration, parse_endpoints,
    reset_configuration, set_config_for_testing
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    for name in ("PULSADASH_API_ENDPOINTS", "PULSADASH_API_TOKEN", "PULSADASH_API_TIMEOUT",
                 "PULSADASH_API_RETRIES", "PULSADASH_CACHE_DIR"):
        monkeypatch.delenv(name, raising=False)
    reset_configuration()
    yield
    reset_configuration()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://a.example.com, https://b.example.com/", ["https://a.example.com", "https://b.example.com"]),
        ("https://a.example.com,,  ,", ["https://a.example.com"]),
        (["https://a/", " https://b "], ["https://a", "https://b"]),
        ("", []),
        (None, []),
    ],
)
def test_parse_endpoints(raw, expected):
    assert parse_endpoints(raw) == expected


def test_yaml_values_are_flattened(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "api:\n  endpoints:\n    - https://a\n    - https://b\n  timeout: 3\ncache:\n  dir: /tmp/pd\n",
        encoding="utf-8",
    )

    load_configuration(config_file=config_file, env_file=tmp_path / "missing.env")

    assert get_api_endpoints() == ["https://a", "https://b"]
    assert get_request_timeout() == 3.0
    assert str(get_cache_dir()) == "/tmp/pd"


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("api:\n  endpoints: https://yaml\n", encoding="utf-8")
    monkeypatch.setenv("PULSADASH_API_ENDPOINTS", "https://env1,https://env2")

    load_configuration(config_file=config_file, env_file=tmp_path / "missing.env")

    assert get_api_endpoints() == ["https://env1", "https://env2"]


def test_dotenv_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("PULSADASH_API_TOKEN=from-dotenv\n", encoding="utf-8")

    load_configuration(config_file=tmp_path / "missing.yaml", env_file=env_file)
    try:
        assert get_api_token() == "from-dotenv"
    finally:
        os.environ.pop("PULSADASH_API_TOKEN", None)


def test_test_overrides_win(monkeypatch):
    monkeypatch.setenv("PULSADASH_API_TOKEN", "env-token")
    set_config_for_testing({"api.token": "test-token"})

    assert get_config("api.token") == "test-token"


def test_defaults():
    assert get_config("missing.key", "fallback") == "fallback"
    assert get_request_timeout() == 8.0
    assert get_probe_timeout() == 2.0
    assert get_max_retries() == 2
    assert get_api_token() is None
    assert get_api_endpoints() == []
    assert get_cache_dir() == settings.DEFAULT_CACHE_DIR


@pytest.mark.parametrize("value", ["-1", "many"])
def test_invalid_retries_are_rejected(value):
    set_config_for_testing({"api.retries": value})

    with pytest.raises(ConfigurationError):
        get_max_retries()


def test_invalid_timeout_is_rejected():
    set_config_for_testing({"api.timeout": "soon"})

    with pytest.raises(ConfigurationError):
        get_request_timeout()


def test_configuration_loads_once(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("api:\n  token: first\n", encoding="utf-8")
    load_configuration(config_file=config_file, env_file=tmp_path / "missing.env")

    config_file.write_text("api:\n  token: second\n", encoding="utf-8")
    load_configuration(config_file=config_file, env_file=tmp_path / "missing.env")

    assert get_api_token() == "first"
