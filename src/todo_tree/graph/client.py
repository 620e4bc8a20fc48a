# src/todo_tree/graph/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import GatewayError
from ..core.ports import Entity

logger = logging.getLogger(__name__)

NEXT_LINK = "@odata.nextLink"

# Guard against a server that keeps handing out the same nextLink.
MAX_PAGES = 1000


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def friendly_gateway_error_message(err: Exception) -> str:
    status = getattr(err, "status_code", None)
    if status in (401, 403):
        return "Not authorized. Check TODO_TREE_ACCESS_TOKEN (it may have expired)."
    if status == 404:
        return "Not found on the server (it may have been deleted). Try /refresh."
    if status == 429:
        return "Rate-limited by the server. Try again later."
    msg = str(err).strip() or "Request failed."
    return msg


class GraphGateway:
    """
    Microsoft To Do over Microsoft Graph.

    Paths are relative to base_url (".../me/todo"). fetch_all follows
    @odata.nextLink (an absolute URL) until the collection is exhausted.
    """

    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(self, method: str, url: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            resp = await self._http.request(method, url, json=json)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            raise GatewayError(f"{method} {url} -> HTTP {code}", path=url, status_code=code) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"{method} {url} failed: {e.__class__.__name__}", path=url) from e

        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as e:
            raise GatewayError(f"{method} {url} returned invalid JSON", path=url) from e
        if not isinstance(data, dict):
            raise GatewayError(f"{method} {url} returned a non-object body", path=url)
        return data

    async def fetch_all(self, path: str) -> list[Entity]:
        url: str | None = self.url_for(path)
        items: list[Entity] = []
        pages = 0

        while url:
            pages += 1
            if pages > MAX_PAGES:
                raise GatewayError(f"Too many pages for {path}", path=path)

            data = await self._request("GET", url)
            value = data.get("value")
            if isinstance(value, list):
                items.extend(v for v in value if isinstance(v, dict))

            next_link = data.get(NEXT_LINK)
            url = str(next_link) if next_link else None

        logger.debug("GET %s: %d item(s) in %d page(s)", path, len(items), pages)
        return items

    async def patch(self, path: str, fields: dict[str, Any]) -> Entity:
        logger.debug("PATCH %s %s", path, sorted(fields))
        return await self._request("PATCH", self.url_for(path), json=fields)

    async def post(self, path: str, fields: dict[str, Any]) -> Entity:
        logger.debug("POST %s %s", path, sorted(fields))
        return await self._request("POST", self.url_for(path), json=fields)


class GraphClientFactory:
    """
    Lazily create and cache the authenticated gateway.

    Returns None from get_client() when no access token is configured; the tree
    then stays empty instead of failing.
    """

    def __init__(self, settings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._gateway: GraphGateway | None = None

    async def get_client(self) -> GraphGateway | None:
        if self._gateway is not None:
            return self._gateway

        token = (getattr(self._settings, "access_token", None) or "").strip()
        if not token:
            logger.info("No access token configured; remote task service unavailable")
            return None

        base_url = str(getattr(self._settings, "graph_base_url", "") or "").strip()
        if not base_url:
            logger.error("Graph base URL is not set. Set TODO_TREE_GRAPH_BASE_URL.")
            return None

        timeout = _make_timeout(
            float(getattr(self._settings, "connect_timeout", 5.0)),
            float(getattr(self._settings, "read_timeout", 30.0)),
        )
        self._http = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=timeout,
            transport=self._transport,
        )
        self._gateway = GraphGateway(self._http, base_url)
        return self._gateway

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
        self._http = None
        self._gateway = None
