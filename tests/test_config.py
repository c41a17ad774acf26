import json

import pytest
from pydantic import ValidationError

from core.config import Config, RoutingSettings, UpstreamSettings, load_config, validate_config
from core.exceptions import ConfigurationError


def test_defaults():
    config = Config()

    assert config.upstream.origin == "https://hole.cert.pl"
    assert config.routing.allowed_paths == ("/domains/", "/domains/v2/")
    assert config.upstream.user_agent == "Cloudflare-Worker-Proxy/1.0"


def test_config_is_immutable():
    config = Config()

    with pytest.raises(ValidationError):
        config.upstream.host = "example.com"


def test_allowed_paths_must_be_absolute():
    with pytest.raises(ValidationError):
        RoutingSettings(allowed_paths=("domains/",))


def test_load_creates_default_file(tmp_path):
    config_file = tmp_path / "hole-proxy" / "config.json"

    config = load_config(config_file)

    assert config == Config()
    assert json.loads(config_file.read_text())["upstream"]["host"] == "hole.cert.pl"


def test_load_reads_existing_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(
        json.dumps(
            {
                "proxy": {"port": 9090},
                "upstream": {"host": "mirror.example.org", "timeout": 5},
                "routing": {"allowed_paths": ["/lists/"]},
            }
        )
    )

    config = load_config(config_file)

    assert config.proxy.port == 9090
    assert config.upstream.host == "mirror.example.org"
    assert config.upstream.timeout == 5.0
    assert config.routing.allowed_paths == ("/lists/",)


def test_load_backs_up_corrupted_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json")

    config = load_config(config_file)

    assert config == Config()
    assert (tmp_path / "config.json.bak").read_text() == "{not json"
    assert json.loads(config_file.read_text())["proxy"]["port"] == 8080


def test_validate_rejects_missing_host():
    with pytest.raises(ConfigurationError):
        validate_config(Config(upstream=UpstreamSettings(host="")))


def test_validate_rejects_empty_prefixes():
    with pytest.raises(ConfigurationError):
        validate_config(Config(routing=RoutingSettings(allowed_paths=())))


def test_validate_accepts_defaults():
    validate_config(Config())
