"""
Authenticator plugged into the package registry.

Per request: check the credential cache, otherwise resolve the user's
workspaces upstream, filter them through the allow-table, cache the result
and report it through the host's ``done(error, teams)`` callback.
"""

import inspect
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Union

from shared.config import (
    ADD_USER_REJECT,
    CACHE_DISABLED,
    CACHE_IN_MEMORY,
    CACHE_REDIS,
    AuthPluginConfig,
    load_config,
)
from shared.errors import (
    CacheError,
    ConfigError,
    NotSupportedError,
    RegistryAuthException,
    UpstreamError,
)
from shared.logging import clear_request_user, get_logger, set_request_user
from shared.metrics import AuthMetrics
from .adapters.bitbucket_client import BitbucketClient
from .allow.parser import AllowTable
from .cache.credential_cache import CredentialCache
from .cache.hashing import get_hasher
from .cache.memory_store import MemoryStore
from .cache.redis_store import RedisStore
from .identity import decode_username_to_email


Done = Callable[[Optional[Exception], Union[List[str], bool]], Any]


def build_credential_cache(config: AuthPluginConfig, logger=None) -> Optional[CredentialCache]:
    """Create the cache backend selected by ``config.cache``, or None when disabled."""
    if config.cache == CACHE_DISABLED:
        return None

    if config.cache == CACHE_IN_MEMORY:
        backend = MemoryStore(cleanup_interval=config.cleanup_interval)
    elif config.cache == CACHE_REDIS:
        if config.redis is None:
            raise ConfigError("Can't find Redis configuration")
        backend = RedisStore(config.redis)
    else:
        raise ConfigError(f"Invalid cache engine {config.cache}")

    return CredentialCache(
        backend,
        hasher=get_hasher(config.hash_password),
        ttl=config.ttl,
        logger=logger,
    )


class Authenticator:
    """Authenticates registry users against upstream workspace membership."""

    def __init__(
        self,
        config: Union[AuthPluginConfig, Mapping[str, Any]],
        *,
        logger=None,
        cache: Optional[CredentialCache] = None,
        directory: Optional[BitbucketClient] = None,
        metrics: Optional[AuthMetrics] = None,
    ):
        self.config = load_config(config)
        self.allow = AllowTable(self.config.allow)
        self.logger = logger or get_logger("registry_auth.authenticator")
        self.metrics = metrics or AuthMetrics()
        self.directory = directory or BitbucketClient(
            self.config.api_url,
            page_len=self.config.page_len,
            timeout=self.config.request_timeout,
            metrics=self.metrics,
            logger=self.logger,
        )
        self.cache = cache if cache is not None else build_credential_cache(self.config, self.logger)

    async def __aenter__(self) -> "Authenticator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the cache backend."""
        if self.cache is not None:
            await self.cache.close()

    async def health_check(self) -> bool:
        """Report whether the cache backend is reachable. True when caching is off."""
        if self.cache is None:
            return True
        return await self.cache.health_check()

    def render_metrics(self) -> bytes:
        """Adaptor metrics in Prometheus text exposition format, for the host to serve."""
        return self.metrics.render()

    def normalize_username(self, username: str) -> str:
        return decode_username_to_email(username, self.config.default_mail_domain)

    async def resolve_teams(self, username: str, password: str) -> List[str]:
        """Return the allowed teams for a credential pair.

        Raises UpstreamError when the upstream directory cannot resolve the
        credentials. An empty list means authenticated but not authorized.
        """
        if self.cache is not None:
            cached = await self._read_cache(username, password)
            if cached is not None:
                return cached

        with self.metrics.time_upstream():
            privileges = await self.directory.get_privileges(
                self.normalize_username(username),
                password,
            )

        teams = self.allow.filter(privileges)

        if self.cache is not None:
            await self._write_cache(username, password, teams)

        return teams

    async def _read_cache(self, username: str, password: str) -> Optional[List[str]]:
        self.cache.housekeeping()

        try:
            entry = await self.cache.lookup(username)
            if entry is None:
                self.metrics.record_cache_lookup("miss")
                return None

            if not await self.cache.verify(entry, password):
                self.metrics.record_cache_lookup("mismatch")
                self.logger.debug("Cached credentials do not match", user=username)
                return None
        except CacheError as e:
            self.metrics.record_cache_lookup("error")
            self.logger.warning("Can't get from cache", user=username, error=e.message)
            return None

        self.metrics.record_cache_lookup("hit")
        self.logger.debug("Credential cache hit", user=username)
        return list(entry.teams)

    async def _write_cache(self, username: str, password: str, teams: List[str]) -> None:
        try:
            await self.cache.store(username, password, teams)
        except CacheError as e:
            self.logger.warning("Can't save to cache", user=username, error=e.message)

    async def authenticate(self, username: str, password: str, done: Done):
        """Authenticate and call ``done(None, teams)`` or ``done(error, False)``.

        Never raises for per-request failures; the callback is invoked exactly
        once and its return value is returned.
        """
        token = set_request_user(username)
        try:
            teams = await self.resolve_teams(username, password)
        except RegistryAuthException as e:
            self._log_error(e, username)
            self.metrics.record_attempt("error")
            error, result = e, False
        except Exception as e:
            self.logger.exception("Unexpected authentication failure", user=username)
            self.metrics.record_attempt("error")
            error, result = UpstreamError("UPSTREAM_ERROR", str(e)), False
        else:
            self.metrics.record_attempt("accepted" if teams else "denied")
            error, result = None, teams
        finally:
            clear_request_user(token)

        return await _invoke(done, error, result)

    async def add_user(self, username: str, password: str, done: Done):
        """Users cannot be created upstream through the registry.

        In ``authenticate`` mode this checks the account already exists by
        authenticating it; in ``reject`` mode it fails with NotSupportedError.
        """
        if self.config.add_user_mode == ADD_USER_REJECT:
            self.logger.info("Rejected add user request", user=username)
            error = NotSupportedError(
                "Creating users is not supported, register upstream instead",
                details={"user": username}
            )
            return await _invoke(done, error, False)

        return await self.authenticate(username, password, done)

    def _log_error(self, err: RegistryAuthException, username: str) -> None:
        self.logger.warning(
            "Bitbucket API adaptor error",
            code=err.code,
            user=username,
            message=err.message,
            status_code=getattr(err, "status_code", None),
        )


async def _invoke(done: Callable[..., Union[Any, Awaitable[Any]]], error, result):
    outcome = done(error, result)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome
