"""
Bitbucket client resolving workspace memberships for a credential pair.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import httpx

from shared.logging import get_logger
from shared.errors import UpstreamError
from shared.metrics import AuthMetrics


API_URL = "https://api.bitbucket.org/2.0"

# Later roles overwrite earlier ones when a workspace is listed under several.
ROLES: Tuple[str, ...] = ("member", "collaborator", "owner")


class BitbucketClient:
    """Client for the Bitbucket workspaces API."""

    def __init__(
        self,
        api_url: str = API_URL,
        *,
        page_len: int = 100,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[AuthMetrics] = None,
        logger=None,
    ):
        self.api_url = api_url.rstrip("/")
        self.page_len = page_len
        self.timeout = timeout
        self.metrics = metrics
        self.logger = logger or get_logger("registry_auth.bitbucket_client")
        self._transport = transport

    def _client(self, username: str, password: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            auth=(username, password),
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def get_teams(self, client: httpx.AsyncClient, role: str) -> List[str]:
        """List workspace slugs the caller holds ``role`` in, following pagination."""
        url: Optional[str] = f"{self.api_url}/workspaces"
        params: Optional[Dict[str, Any]] = {"role": role, "pagelen": self.page_len}
        teams: List[str] = []
        seen = set()

        self.logger.debug("Getting teams", role=role, url=url)

        while url:
            if url in seen:
                raise UpstreamError(
                    "UPSTREAM_MALFORMED_RESPONSE",
                    "Pagination loop detected",
                    details={"role": role, "url": url}
                )
            seen.add(url)

            page = await self._get_page(client, url, params, role)
            teams.extend(self._parse_values(page, role))

            # The next link already carries the query string
            url = page.get("next")
            params = None

        return teams

    async def _get_page(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]],
        role: str,
    ) -> Dict[str, Any]:
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            self._record(role, "timeout")
            raise UpstreamError(
                "UPSTREAM_TIMEOUT",
                f"Bitbucket request timed out: {e}",
                details={"role": role, "url": url}
            )
        except httpx.HTTPError as e:
            self._record(role, "unavailable")
            raise UpstreamError(
                "UPSTREAM_UNAVAILABLE",
                f"Bitbucket unavailable: {e}",
                details={"role": role, "url": url}
            )

        self._record(role, str(response.status_code))

        if response.status_code in (401, 403):
            raise UpstreamError(
                "UPSTREAM_UNAUTHORIZED",
                self._error_message(response, "Invalid credentials"),
                status_code=response.status_code,
                details={"role": role}
            )
        if not response.is_success:
            raise UpstreamError(
                "UPSTREAM_HTTP_ERROR",
                self._error_message(response, f"Bitbucket API error: {response.status_code}"),
                status_code=response.status_code,
                details={"role": role, "url": url}
            )

        try:
            page = response.json()
        except ValueError:
            raise UpstreamError(
                "UPSTREAM_MALFORMED_RESPONSE",
                "Bitbucket returned a non-JSON body",
                status_code=response.status_code,
                details={"role": role, "url": url}
            )

        if not isinstance(page, dict):
            raise UpstreamError(
                "UPSTREAM_MALFORMED_RESPONSE",
                "Bitbucket returned an unexpected payload",
                status_code=response.status_code,
                details={"role": role, "url": url}
            )
        return page

    @staticmethod
    def _parse_values(page: Dict[str, Any], role: str) -> List[str]:
        values = page.get("values")
        if not isinstance(values, list):
            raise UpstreamError(
                "UPSTREAM_MALFORMED_RESPONSE",
                "Bitbucket page is missing 'values'",
                details={"role": role}
            )

        slugs = []
        for item in values:
            slug = item.get("slug") if isinstance(item, dict) else None
            if not isinstance(slug, str) or not slug:
                raise UpstreamError(
                    "UPSTREAM_MALFORMED_RESPONSE",
                    "Workspace entry without a slug",
                    details={"role": role}
                )
            slugs.append(slug)
        return slugs

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return default

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"].get("message") or default
        return default

    def _record(self, role: str, status: str):
        if self.metrics:
            self.metrics.record_upstream_request(role, status)

    async def get_privileges(self, username: str, password: str) -> Dict[str, str]:
        """Resolve the caller's role in every workspace they belong to.

        One paginated query is issued per role, concurrently. Results are merged
        in ROLES order regardless of completion order, so a workspace listed under
        several roles ends up with the last one. The first failing role query
        cancels the others and fails the whole resolution at once.
        """
        async with self._client(username, password) as client:
            tasks = [
                asyncio.create_task(self.get_teams(client, role), name=f"bitbucket-{role}")
                for role in ROLES
            ]
            try:
                await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()
                # Cancelled requests must unwind before the client closes
                await asyncio.gather(*tasks, return_exceptions=True)

        # Report the first failed role in ROLES order
        for task in tasks:
            error = None if task.cancelled() else task.exception()
            if error is not None:
                raise error

        privileges: Dict[str, str] = {}
        for role, task in zip(ROLES, tasks):
            for team in task.result():
                privileges[team] = role

        self.logger.debug("Resolved privileges", user=username, teams=len(privileges))
        return privileges
