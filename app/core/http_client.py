"""
app/core/http_client.py
Shared async httpx client for minecraft.net.
  • page_client() → client with our User-Agent and a bounded timeout
  • close_all()   → called once on shutdown
"""

import httpx
from app.core.config import FETCH_TIMEOUT_S, USER_AGENT

_page_client: httpx.AsyncClient | None = None

_LIMITS  = httpx.Limits(max_connections=10, max_keepalive_connections=5)
_TIMEOUT = httpx.Timeout(FETCH_TIMEOUT_S, connect=15.0)

PAGE_HEADERS = {
    "User-Agent":      USER_AGENT,
    "Accept":          "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "*",
}


def page_client() -> httpx.AsyncClient:
    global _page_client
    if _page_client is None or _page_client.is_closed:
        _page_client = httpx.AsyncClient(
            headers=PAGE_HEADERS,
            timeout=_TIMEOUT,
            follow_redirects=True,
            limits=_LIMITS,
        )
    return _page_client


async def close_all() -> None:
    global _page_client
    if _page_client and not _page_client.is_closed:
        await _page_client.aclose()
    _page_client = None
