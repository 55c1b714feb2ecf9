"""
app/routers/version.py
Endpoints:
  GET /version/{type}/{preview}   → latest BDS version for that type/channel

type    : one of VALID_BDS_TYPES (win, linux)
preview : true | false | 1 | 0

Served from the in-memory cache. Only a cold key waits on minecraft.net.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.config import VALID_BDS_TYPES
from app.core.versions import VersionService

log = logging.getLogger("routers.version")

router = APIRouter(tags=["version"])


def get_versions(request: Request) -> VersionService:
    return request.app.state.versions


def is_valid_bds_type(bds_type: str, valid: tuple[str, ...] = VALID_BDS_TYPES) -> bool:
    return bds_type in valid


def parse_preview_param(preview: str) -> Optional[bool]:
    lower = preview.lower()
    if lower in ("true", "1"):
        return True
    if lower in ("false", "0"):
        return False
    return None


@router.get("/version/{bds_type}/{preview}")
async def get_version(
    bds_type: str,
    preview: str,
    versions: VersionService = Depends(get_versions),
):
    if not is_valid_bds_type(bds_type, versions.platforms):
        raise HTTPException(400, detail={
            "error":    "Invalid type parameter",
            "message":  f"Type must be one of: {', '.join(versions.platforms)}",
            "received": bds_type,
        })

    parsed = parse_preview_param(preview)
    if parsed is None:
        raise HTTPException(400, detail={
            "error":    "Invalid preview parameter",
            "message":  "Preview must be 'true', 'false', '1', or '0'",
            "received": preview,
        })

    try:
        version = await versions.lookup(bds_type, parsed)
    except Exception as ex:
        log.error(f"Error looking up version: {ex}")
        raise HTTPException(500, detail={
            "error":   "Internal server error",
            "message": str(ex) or "Failed to lookup version",
        })

    return {"version": version, "type": bds_type, "preview": parsed}
