"""
Registry auth adaptor entrypoint.

The registry host loads this module and calls ``create_authenticator`` with
the plugin's config block and, optionally, its own logger.
"""

import logging
from typing import Any, Mapping, Optional

import structlog

from shared.config import AuthPluginConfig, load_config
from shared.logging import configure_logging, get_logger
from .authenticator import Authenticator


SERVICE_NAME = "registry_auth"


def get_config(config: Optional[Mapping[str, Any]] = None) -> AuthPluginConfig:
    """Settings from the host's config block, or from ``REGISTRY_AUTH_*`` env vars."""
    return load_config(config)


def create_authenticator(
    config: Optional[Mapping[str, Any]] = None,
    logger=None,
) -> Authenticator:
    """Build an Authenticator. Raises ConfigError on invalid configuration."""
    settings = get_config(config)

    if logger is None:
        configure_logging(SERVICE_NAME, settings.log_level)
        logger = get_logger(f"{SERVICE_NAME}.authenticator")
    elif isinstance(logger, logging.Logger):
        # stdlib loggers lack the keyword-argument API
        logger = structlog.wrap_logger(logger)

    authenticator = Authenticator(settings, logger=logger)
    logger.info(
        "Registry auth adaptor configured",
        cache=settings.cache,
        ttl=settings.ttl,
        teams=list(authenticator.allow),
    )
    return authenticator
