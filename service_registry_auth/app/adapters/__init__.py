"""
Adapters package for the registry auth adaptor.

Contains the HTTP client for the upstream team directory. The adapter
encapsulates:

- Base URL, endpoint shape and pagination
- Per-call timeouts
- Error handling that maps to shared errors

It keeps no state between calls; every resolution opens its own
authenticated session. Retries are left to the caller.
"""

from .bitbucket_client import BitbucketClient, ROLES

__all__ = [
    "BitbucketClient",
    "ROLES",
]
