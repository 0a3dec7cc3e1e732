"""
Shared configuration management for the registry auth adaptor.

Settings come either from the registry host's plugin config block (a mapping,
usually with camelCase keys) or from ``REGISTRY_AUTH_*`` environment variables.
"""

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigError


CACHE_DISABLED = "disabled"
CACHE_IN_MEMORY = "in-memory"
CACHE_REDIS = "redis"

ALLOWED_CACHE_ENGINES = (CACHE_DISABLED, CACHE_IN_MEMORY, CACHE_REDIS)

ADD_USER_AUTHENTICATE = "authenticate"
ADD_USER_REJECT = "reject"

DEFAULT_CACHE_TTL = 7 * 24 * 60 * 60
DEFAULT_CLEANUP_INTERVAL = 60 * 60

# Keys used by registry config files
_CAMEL_CASE_KEYS = {
    "hashPassword": "hash_password",
    "defaultMailDomain": "default_mail_domain",
    "addUserMode": "add_user_mode",
    "apiUrl": "api_url",
    "pageLen": "page_len",
    "requestTimeout": "request_timeout",
    "cleanupInterval": "cleanup_interval",
    "logLevel": "log_level",
    "keyPrefix": "key_prefix",
}


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        _CAMEL_CASE_KEYS.get(key, key): value
        for key, value in data.items()
        if value is not None
    }


class RedisSettings(BaseModel):
    """Connection parameters for the external credential cache."""

    url: Optional[str] = None
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    username: Optional[str] = None
    password: Optional[str] = None
    key_prefix: str = "registry_auth:user:"
    socket_timeout: float = 5.0

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return _normalize_keys(data)
        return data


class AuthPluginConfig(BaseSettings):
    """Configuration of the upstream team authentication adaptor."""

    model_config = SettingsConfigDict(
        env_prefix="REGISTRY_AUTH_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    allow: str
    cache: str = Field(default=CACHE_DISABLED)
    ttl: int = Field(default=DEFAULT_CACHE_TTL, gt=0)
    hash_password: bool = True
    default_mail_domain: Optional[str] = None
    redis: Optional[RedisSettings] = None
    add_user_mode: str = ADD_USER_AUTHENTICATE

    # Upstream
    api_url: str = "https://api.bitbucket.org/2.0"
    page_len: int = Field(default=100, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)

    # Housekeeping
    cleanup_interval: int = Field(default=DEFAULT_CLEANUP_INTERVAL, gt=0)
    log_level: str = "info"

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return _normalize_keys(data)
        return data

    @field_validator("cache", mode="before")
    @classmethod
    def _normalize_cache_engine(cls, value: Any) -> Any:
        if value is False or value == "":
            return CACHE_DISABLED
        if value == "external":
            return CACHE_REDIS
        return value

    @field_validator("cache")
    @classmethod
    def _check_cache_engine(cls, value: str) -> str:
        if value not in ALLOWED_CACHE_ENGINES:
            raise ValueError(
                f"Invalid cache engine {value}, please use one of these: "
                f"[{', '.join(ALLOWED_CACHE_ENGINES)}]"
            )
        return value

    @field_validator("add_user_mode")
    @classmethod
    def _check_add_user_mode(cls, value: str) -> str:
        if value not in (ADD_USER_AUTHENTICATE, ADD_USER_REJECT):
            raise ValueError(f"Invalid add user mode {value}")
        return value

    @model_validator(mode="after")
    def _require_redis_settings(self) -> "AuthPluginConfig":
        if self.cache == CACHE_REDIS and self.redis is None:
            raise ValueError("Can't find Redis configuration")
        return self


def _config_error(exc: ValidationError) -> ConfigError:
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
        for err in errors
    )
    return ConfigError(message, details={"errors": [err["msg"] for err in errors]})


def load_config(config: Optional[Mapping[str, Any]] = None) -> AuthPluginConfig:
    """Build adaptor settings from a host mapping, or from the environment."""
    if isinstance(config, AuthPluginConfig):
        return config
    try:
        if config is None:
            return AuthPluginConfig()
        return AuthPluginConfig.model_validate(dict(config))
    except ValidationError as exc:
        raise _config_error(exc) from exc
