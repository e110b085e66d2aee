"""HTTP adapter for the remote REST service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ralph.state import StateStore

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin async JSON client over ``httpx.AsyncClient``.

    The bearer header is derived from the state store on every request, so
    a credential saved by one tool call is used by the next one without any
    shared header mutation.
    """

    def __init__(
        self,
        base_url: str,
        state: StateStore,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._state = state
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    def auth_headers(self) -> dict[str, str]:
        credential = self._state.state.credential
        if not credential:
            return {}
        return {"Authorization": f"Bearer {credential}"}

    async def get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        logger.debug("GET %s params=%s", path, params)
        return await self._client.get(path, params=params, headers=self.auth_headers())

    async def post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        logger.debug("POST %s", path)
        return await self._client.post(path, json=payload, headers=self.auth_headers())

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
