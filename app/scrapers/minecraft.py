"""
app/scrapers/minecraft.py
═══════════════════════════════════════════════════════════════════════════════
Reads the latest Bedrock Dedicated Server version off minecraft.net.

Page:  https://www.minecraft.net/en-us/download/server/bedrock
Each download anchor looks like:

  <a href="https://www.minecraft.net/bedrockdedicatedserver/bin-win/bedrock-server-1.21.84.1.zip"
     data-platform="serverBedrockWindows">

Lookup order per (type, preview):
  1. anchor with the matching data-platform attribute
  2. any anchor whose href contains the matching /bin-<type>[-preview]/ path

The version is taken from the file name. Anything that goes wrong
(network, timeout, HTTP status, missing link, odd file name) is raised
as SourceUnavailable.
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import re
from pathlib import Path
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from app.core.config import (
    DEBUG_DUMP_PATH, DOWNLOAD_PATHS, DOWNLOAD_PLATFORMS, MINECRAFT_NET_URL, channel_name,
)
from app.core.http_client import page_client

log = logging.getLogger("minecraft")

VERSION_RE = re.compile(r"bedrock-server-(\d+\.\d+\.\d+\.\d+)\.zip$")


class SourceUnavailable(Exception):
    """minecraft.net could not be reached or did not contain a usable version."""


def find_download_href(html: str, bds_type: str, preview: bool) -> Optional[str]:
    soup = BeautifulSoup(html, "html.parser")

    platform = DOWNLOAD_PLATFORMS.get((bds_type, preview))
    if platform:
        a = soup.find("a", attrs={"data-platform": platform})
        href = a.get("href", "") if a else ""
        if href and href != "#":
            return href

    path = DOWNLOAD_PATHS.get((bds_type, preview))
    if not path:
        return None
    for a in soup.find_all("a", href=True):
        if path in a["href"] and "bedrock-server-" in a["href"]:
            return a["href"]
    return None


def parse_version(href: str) -> str:
    m = VERSION_RE.search(href.split("?", 1)[0])
    if not m:
        raise SourceUnavailable(f"Failed to parse version from URL: {href}")
    return m.group(1)


def _dump_page(html: str) -> None:
    if not DEBUG_DUMP_PATH:
        return
    try:
        p = Path(DEBUG_DUMP_PATH)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(html, encoding="utf-8")
        log.error(f"Saved page contents to {p} for debugging")
    except OSError as ex:
        log.warning(f"Could not save page dump: {ex}")


async def fetch_latest_version(
    bds_type: str,
    preview: bool,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Latest version string (e.g. "1.21.84.1") for the given type/channel."""
    label = f"{bds_type} {channel_name(preview)}"
    log.info(f"Starting version lookup for {label}")

    client = client or page_client()
    try:
        r = await client.get(MINECRAFT_NET_URL)
        r.raise_for_status()
    except httpx.HTTPError as ex:
        log.error(f"Fetching {MINECRAFT_NET_URL} failed: {ex!r}")
        raise SourceUnavailable(f"Could not load {MINECRAFT_NET_URL}: {ex}") from ex

    href = find_download_href(r.text, bds_type, preview)
    if not href:
        _dump_page(r.text)
        raise SourceUnavailable(f"No download link found for {label}")

    log.debug(f"Download link found: {href}")
    try:
        version = parse_version(href)
    except SourceUnavailable:
        _dump_page(r.text)
        raise

    log.info(f"Successfully extracted version for {label}: {version}")
    return version
