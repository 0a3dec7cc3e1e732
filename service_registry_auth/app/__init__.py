"""
Registry auth adaptor package.

Authenticates package-registry users against the upstream team directory
(Bitbucket workspaces) and returns the teams they may act as:

- app.main: Host-facing factory that builds an Authenticator from config.
- app.authenticator: Request pipeline (cache check, upstream query, filter).
- app.allow: Parsing of the ``allow`` option into an allow-table.
- app.adapters: HTTP client for the upstream team directory.
- app.cache: Credential cache, its backends and password hashing.

Design notes:
- Module import must not perform network calls. Connections are made
  lazily on the first request.
- Use the shared/ utilities for config, logging, metrics and errors.
"""
