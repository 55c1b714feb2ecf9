"""
app/main.py  — Bedrock Dedicated Server Version Lookup API
Startup: warms the version cache for every type/channel before serving.
Requests are served from cache; stale entries refresh in the background.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import pytz
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import CACHE_DURATION_S, PORT, VALID_BDS_TYPES, WARMUP_ON_START
from app.core.http_client import close_all
from app.core.refresh import Fetcher
from app.core.versions import VersionService
from app.core.warmup import warm_up
from app.routers import cache, version
from app.scrapers.minecraft import fetch_latest_version

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("main")

ENDPOINTS = ["/", "/version/:type/:preview", "/cache/status", "/health"]


def create_app(
    fetcher: Fetcher = fetch_latest_version,
    ttl_seconds: Optional[float] = None,
    warmup: Optional[bool] = None,
    platforms: tuple[str, ...] = VALID_BDS_TYPES,
) -> FastAPI:
    versions = VersionService(
        fetcher,
        ttl_seconds=CACHE_DURATION_S if ttl_seconds is None else ttl_seconds,
        platforms=platforms,
    )
    do_warmup = WARMUP_ON_START if warmup is None else warmup

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("🚀 BDS Version Lookup API starting...")
        if do_warmup:
            await warm_up(versions)
        else:
            log.info("Warm-up disabled — keys will be fetched on first request")
        yield
        log.info("🛑 Shutting down...")
        await versions.close()
        await close_all()

    app = FastAPI(
        title="BDS Version Lookup API",
        description=(
            "Latest Minecraft Bedrock Dedicated Server version per platform and "
            "channel, read from minecraft.net and cached in memory."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.versions = versions

    app.include_router(version.router)
    app.include_router(cache.router)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            return JSONResponse(exc.detail, status_code=exc.status_code)
        if exc.status_code == 404:
            return JSONResponse({
                "error":              "Not found",
                "message":            f"Endpoint {request.method} {request.url.path} not found",
                "availableEndpoints": ENDPOINTS,
            }, status_code=404)
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.get("/", tags=["meta"])
    async def root():
        return {
            "message": "Bedrock Dedicated Server Version Lookup API",
            "endpoints": {
                "GET /version/:type/:preview": {
                    "description": "Get the latest BDS version",
                    "parameters": {
                        "type":    {"required": True, "values": list(versions.platforms), "example": "win"},
                        "preview": {"required": True, "values": ["true", "false", "1", "0"], "example": "false"},
                    },
                    "examples": [
                        f"/version/{p}/{flag} - {p} {'preview' if flag == 'true' else 'stable'} version"
                        for p in versions.platforms for flag in ("false", "true")
                    ],
                },
                "GET /cache/status": "Cached version per type/channel and the cache TTL",
                "GET /health":       "Health check endpoint",
            },
        }

    @app.get("/health", tags=["meta"])
    async def health():
        """Lightweight health check."""
        return {
            "status":    "ok",
            "timestamp": datetime.now(pytz.utc).isoformat(),
            "cache":     versions.health(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
