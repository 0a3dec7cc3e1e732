"""
Integration tests for the complete authentication flow.

Runs the real Authenticator, Bitbucket client and in-memory credential cache
against a fake Bitbucket API served through httpx.MockTransport.
"""

import base64
import pytest
import httpx
from typing import Dict, List

from service_registry_auth.app.adapters.bitbucket_client import BitbucketClient
from service_registry_auth.app.authenticator import Authenticator
from shared.errors import UpstreamError
from shared.metrics import AuthMetrics


class FakeBitbucketAPI:
    """Bitbucket workspaces API for a single account."""

    def __init__(self, username: str, password: str, workspaces: Dict[str, List[str]], page_size: int = 2):
        self.username = username
        self.password = password
        self.workspaces = workspaces
        self.page_size = page_size
        self.requests: List[httpx.Request] = []

    def _authorized(self, request: httpx.Request) -> bool:
        expected = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        return request.headers.get("authorization") == f"Basic {expected}"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if not self._authorized(request):
            return httpx.Response(401, json={"type": "error", "error": {"message": "Invalid credentials"}})

        role = request.url.params["role"]
        page = int(request.url.params.get("page", "1"))
        slugs = self.workspaces.get(role, [])
        start = (page - 1) * self.page_size
        body = {"values": [{"slug": slug} for slug in slugs[start:start + self.page_size]]}

        if start + self.page_size < len(slugs):
            body["next"] = str(request.url.copy_merge_params({"page": str(page + 1)}))
        return httpx.Response(200, json=body)


class TestAuthenticateFlow:
    """Integration tests for authenticate end to end."""

    @pytest.fixture
    def api(self):
        """Fake upstream with paginated member workspaces."""
        return FakeBitbucketAPI(
            "john@example.com",
            "s3cret",
            {
                "member": ["foo", "bar", "baz", "shared"],
                "collaborator": ["shared"],
                "owner": ["admins"],
            },
        )

    def create_auth(self, api, allow, **config):
        config["allow"] = allow
        config.setdefault("cache", "in-memory")
        config.setdefault("hashPassword", False)
        metrics = AuthMetrics()
        directory = BitbucketClient(transport=httpx.MockTransport(api), metrics=metrics)
        return Authenticator(config, directory=directory, metrics=metrics)

    @pytest.mark.asyncio
    async def test_paginated_resolution_and_filtering(self, api):
        """Test pages are aggregated, roles merged and the allow-table applied."""
        auth = self.create_auth(api, "foo, baz(member), shared(member), admins(owner)")
        results = []

        await auth.authenticate("john..example.com", "s3cret", lambda err, teams: results.append((err, teams)))

        # shared is listed as member and collaborator; collaborator wins
        assert results == [(None, ["foo", "baz", "admins"])]
        member_pages = [r for r in api.requests if r.url.params["role"] == "member"]
        assert len(member_pages) == 2

    @pytest.mark.asyncio
    async def test_cache_avoids_second_resolution(self, api):
        """Test the second identical request never reaches upstream."""
        auth = self.create_auth(api, "foo")
        results = []

        await auth.authenticate("john..example.com", "s3cret", lambda err, teams: results.append((err, teams)))
        calls_after_first = len(api.requests)
        await auth.authenticate("john..example.com", "s3cret", lambda err, teams: results.append((err, teams)))

        assert results == [(None, ["foo"]), (None, ["foo"])]
        assert len(api.requests) == calls_after_first

    @pytest.mark.asyncio
    async def test_wrong_password_after_caching_is_rejected(self, api):
        """Test a cached user with a wrong password is checked upstream and denied."""
        auth = self.create_auth(api, "foo")
        results = []

        await auth.authenticate("john..example.com", "s3cret", lambda err, teams: results.append((err, teams)))
        await auth.authenticate("john..example.com", "guess", lambda err, teams: results.append((err, teams)))

        err, teams = results[-1]
        assert isinstance(err, UpstreamError)
        assert err.code == "UPSTREAM_UNAUTHORIZED"
        assert err.status_code == 401
        assert teams is False

        # The cached entry for the real password still works
        await auth.authenticate("john..example.com", "s3cret", lambda err, teams: results.append((err, teams)))
        assert results[-1] == (None, ["foo"])

    @pytest.mark.asyncio
    async def test_hashed_cache_flow(self, api):
        """Test the default bcrypt strategy end to end."""
        auth = self.create_auth(api, "admins(owner)", hashPassword=True)
        results = []

        for _ in range(2):
            await auth.authenticate("john..example.com", "s3cret", lambda err, teams: results.append((err, teams)))

        assert results == [(None, ["admins"]), (None, ["admins"])]
        assert auth.metrics.sample("registry_auth_cache_lookups_total", result="hit") == 1.0
        await auth.aclose()
