"""
app/routers/cache.py
Endpoints:
  GET /cache/status   → cached flag + version for every key, plus the TTL

Pure read. Never triggers a fetch or a refresh.
"""

from fastapi import APIRouter, Depends

from app.core.versions import VersionService
from app.routers.version import get_versions

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/status")
async def cache_status(versions: VersionService = Depends(get_versions)):
    return versions.status()
