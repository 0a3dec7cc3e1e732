"""
Shared utilities for the registry auth adaptor.

This package aggregates the cross-cutting building blocks:

- config: Plugin configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus counters for attempts, cache and upstream calls
- errors: Canonical error types

Do not import from service_registry_auth into shared/.
"""
