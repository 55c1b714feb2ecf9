"""
app/core/config.py  ── BDS Version Lookup API
═══════════════════════════════════════════════════════════════════════════════
SOURCE:

  minecraft.net  →  Bedrock Dedicated Server download page
                     one download link per (platform, channel) pair

  The page has no API. The version is read out of the download link
  (bedrock-server-<a>.<b>.<c>.<d>.zip), so everything here is tunable from
  the environment in case the page moves.

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import os

# ── Source ────────────────────────────────────────────────────────────────────
MINECRAFT_NET_URL = os.environ.get(
    "MINECRAFT_NET_URL",
    "https://www.minecraft.net/en-us/download/server/bedrock",
)
USER_AGENT      = os.environ.get("USER_AGENT", "smell-of-curry/bds-manager")
FETCH_TIMEOUT_S = float(os.environ.get("FETCH_TIMEOUT_S", "30"))

# Page dump written when the download link can't be extracted. Empty = off.
DEBUG_DUMP_PATH = os.environ.get("DEBUG_DUMP_PATH", "")

# ── Key space ─────────────────────────────────────────────────────────────────
VALID_BDS_TYPES: tuple[str, ...] = tuple(
    t.strip() for t in os.environ.get("VALID_BDS_TYPES", "win,linux").split(",") if t.strip()
)
CHANNELS: tuple[bool, ...] = (False, True)   # stable, preview

# data-platform attribute on the download anchors, per (type, preview)
DOWNLOAD_PLATFORMS: dict[tuple[str, bool], str] = {
    ("win",   False): "serverBedrockWindows",
    ("win",   True):  "serverBedrockPreviewWindows",
    ("linux", False): "serverBedrockLinux",
    ("linux", True):  "serverBedrockPreviewLinux",
}

# download path segment per (type, preview), used when data-platform is missing
DOWNLOAD_PATHS: dict[tuple[str, bool], str] = {
    ("win",   False): "/bin-win/",
    ("win",   True):  "/bin-win-preview/",
    ("linux", False): "/bin-linux/",
    ("linux", True):  "/bin-linux-preview/",
}

# ── Cache ─────────────────────────────────────────────────────────────────────
CACHE_DURATION_S = float(os.environ.get("CACHE_DURATION_S", str(6 * 60 * 60)))   # 6 hours
WARMUP_ON_START  = os.environ.get("WARMUP_ON_START", "1").lower() not in ("0", "false", "no")

# ── Server ────────────────────────────────────────────────────────────────────
PORT = int(os.environ.get("PORT", "3000"))

if not VALID_BDS_TYPES:
    logging.getLogger("config").warning(
        "VALID_BDS_TYPES is empty — every /version request will be rejected"
    )


def channel_name(preview: bool) -> str:
    return "preview" if preview else "stable"
