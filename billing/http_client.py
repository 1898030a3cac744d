"""Pooled httpx client for direct calls to the Razorpay API (health checks)."""

import httpx

from billing.constants import HTTP_CONNECT_TIMEOUT, HTTP_TOTAL_TIMEOUT

_client: httpx.AsyncClient | None = None


def _new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(HTTP_TOTAL_TIMEOUT, connect=HTTP_CONNECT_TIMEOUT))


def get_http_client() -> httpx.AsyncClient:
    """The client opened at startup, or a fresh one outside the app lifespan (CLI, worker)."""
    global _client
    if _client is None:
        _client = _new_client()
    return _client


async def init_http_client() -> None:
    global _client
    _client = _new_client()


async def close_http_client() -> None:
    global _client
    if _client:
        await _client.aclose()
        _client = None
