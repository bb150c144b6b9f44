"""
Upstream client for the LiFi REST API and EVM JSON-RPC nodes.

`call` is the single entry point for LiFi endpoints; `rpc_batch` sends a
JSON-RPC batch to a chain node. Both raise `UpstreamError` on transport
failures, non-success status codes and undecodable bodies. Neither retries.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from core.config import GatewayConfig

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """A remote call failed or returned a non-success response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            cleaned[key] = ",".join(str(v) for v in value)
        else:
            cleaned[key] = value
    return cleaned


class LiFiClient:
    """Async client for LiFi endpoints and chain RPC nodes."""

    def __init__(
        self,
        config: GatewayConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = config.api_url.rstrip("/")
        self.integrator = config.integrator
        self.timeout = config.request_timeout
        self._api_key = config.api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def headers(self) -> dict[str, str]:
        headers = {"x-lifi-integrator": self.integrator}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        # Created on first use so the pool binds to the running event loop
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def call(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        method: str = "GET",
        json_body: Any = None,
    ) -> Any:
        """Call a LiFi endpoint (path relative to the API base) and return its JSON body."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"Upstream {method} {url}")

        try:
            response = await self._get_client().request(
                method,
                url,
                params=_clean_params(params),
                json=json_body,
                headers=self.headers,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"{type(e).__name__}: {e}") from e

        return self._decode(response)

    async def rpc_batch(self, rpc_url: str, calls: list[tuple[str, list[Any]]]) -> list[Any]:
        """Send a JSON-RPC batch to a chain node; returns results in call order."""
        if not calls:
            return []

        payload = [
            {"jsonrpc": "2.0", "id": index, "method": method, "params": params}
            for index, (method, params) in enumerate(calls)
        ]
        logger.debug(f"RPC batch of {len(payload)} calls to {rpc_url}")

        try:
            response = await self._get_client().post(rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{type(e).__name__}: {e}") from e

        body = self._decode(response)
        if not isinstance(body, list):
            message = body.get("error", {}).get("message") if isinstance(body, dict) else None
            raise UpstreamError(f"RPC batch rejected: {message or body!r}")

        by_id = {item.get("id"): item for item in body if isinstance(item, dict)}
        results = []
        for index, (method, _) in enumerate(calls):
            item = by_id.get(index)
            if item is None:
                raise UpstreamError(f"RPC response missing for {method} (id {index})")
            if "error" in item:
                error = item["error"]
                message = error.get("message", error) if isinstance(error, dict) else error
                raise UpstreamError(f"RPC {method} failed: {message}")
            results.append(item.get("result"))
        return results

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.is_success:
            raise UpstreamError(
                f"HTTP {response.status_code}: {response.text}", status_code=response.status_code
            )
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise UpstreamError(f"Invalid JSON from upstream: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
