"""
Unit tests for adaptor configuration.
"""

import pytest

from shared.config import (
    ADD_USER_AUTHENTICATE,
    CACHE_DISABLED,
    CACHE_IN_MEMORY,
    CACHE_REDIS,
    DEFAULT_CACHE_TTL,
    load_config,
)
from shared.errors import ConfigError


class TestLoadConfig:
    """Test cases for load_config."""

    def test_defaults(self):
        """Test defaults for an allow-only config."""
        config = load_config({"allow": "foo"})

        assert config.cache == CACHE_DISABLED
        assert config.ttl == DEFAULT_CACHE_TTL == 604800
        assert config.hash_password is True
        assert config.default_mail_domain is None
        assert config.add_user_mode == ADD_USER_AUTHENTICATE
        assert config.api_url == "https://api.bitbucket.org/2.0"
        assert config.page_len == 100
        assert config.cleanup_interval == 3600

    def test_camel_case_keys(self):
        """Test registry-style camelCase keys are accepted."""
        config = load_config({
            "allow": "foo",
            "hashPassword": False,
            "defaultMailDomain": "example.com",
            "addUserMode": "reject",
            "requestTimeout": 2.5,
        })

        assert config.hash_password is False
        assert config.default_mail_domain == "example.com"
        assert config.add_user_mode == "reject"
        assert config.request_timeout == 2.5

    def test_unknown_keys_ignored(self):
        """Test host-level keys in the plugin block are ignored."""
        assert load_config({"allow": "foo", "type": "bitbucket"}).allow == "foo"

    def test_null_values_use_defaults(self):
        """Test explicit nulls fall back to defaults."""
        assert load_config({"allow": "foo", "ttl": None}).ttl == DEFAULT_CACHE_TTL

    @pytest.mark.parametrize("value,expected", [
        (False, CACHE_DISABLED),
        ("in-memory", CACHE_IN_MEMORY),
        ("external", CACHE_REDIS),
    ])
    def test_cache_engine_aliases(self, value, expected):
        """Test cache engine spellings."""
        config = load_config({"allow": "foo", "cache": value, "redis": {"host": "localhost"}})

        assert config.cache == expected

    def test_redis_settings(self):
        """Test nested redis settings."""
        config = load_config({
            "allow": "foo",
            "cache": "redis",
            "redis": {"host": "cache", "port": 6380, "keyPrefix": "npm:"},
        })

        assert config.redis.host == "cache"
        assert config.redis.port == 6380
        assert config.redis.key_prefix == "npm:"

    @pytest.mark.parametrize("config", [
        {},
        {"allow": "foo", "cache": "memcached"},
        {"allow": "foo", "cache": "redis"},
        {"allow": "foo", "ttl": 0},
        {"allow": "foo", "addUserMode": "create"},
    ])
    def test_invalid_config(self, config):
        """Test invalid configs raise ConfigError."""
        with pytest.raises(ConfigError):
            load_config(config)

    def test_from_environment(self, monkeypatch):
        """Test settings are read from REGISTRY_AUTH_* variables."""
        monkeypatch.setenv("REGISTRY_AUTH_ALLOW", "foo(owner)")
        monkeypatch.setenv("REGISTRY_AUTH_CACHE", "in-memory")
        monkeypatch.setenv("REGISTRY_AUTH_TTL", "120")

        config = load_config()

        assert config.allow == "foo(owner)"
        assert config.cache == CACHE_IN_MEMORY
        assert config.ttl == 120
