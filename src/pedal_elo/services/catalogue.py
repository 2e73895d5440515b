"""Pedal catalogue loading with a three-tier fallback.

1. Local JSON file (refreshed by ``pedal-elo fetch-catalogue``)
2. Remote PedalPlayground JSON, in case the local copy is stale or missing
3. Built-in starter list, so voting always has something to show
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import httpx
import pydantic
import structlog

from pedal_elo.core.config import DEFAULT_IMAGE_BASE, CatalogueConfig
from pedal_elo.core.errors import CatalogueError
from pedal_elo.core.slug import SlugGenerator
from pedal_elo.models import Pedal

logger = structlog.get_logger()

UNKNOWN_BRAND = "Unknown"

_FALLBACK_ENTRIES: list[dict[str, str]] = [
    {"name": "DS-1 Distortion", "brand": "Boss", "filename": "boss-ds-1"},
    {"name": "Blues Driver BD-2", "brand": "Boss", "filename": "boss-bd-2"},
    {"name": "CE-2 Chorus", "brand": "Boss", "filename": "boss-ce-2"},
    {"name": "DD-3 Digital Delay", "brand": "Boss", "filename": "boss-dd-3"},
    {"name": "Tube Screamer TS9", "brand": "Ibanez", "filename": "ibanez-ts9"},
    {"name": "Tube Screamer TS808", "brand": "Ibanez", "filename": "ibanez-ts808"},
    {"name": "Big Muff Pi", "brand": "Electro-Harmonix", "filename": "ehx-big-muff-pi"},
    {"name": "Small Clone Chorus", "brand": "Electro-Harmonix", "filename": "ehx-small-clone"},
    {"name": "Phase 90", "brand": "MXR", "filename": "mxr-phase-90"},
    {"name": "Carbon Copy", "brand": "MXR", "filename": "mxr-carbon-copy"},
    {"name": "Dyna Comp", "brand": "MXR", "filename": "mxr-dyna-comp"},
    {"name": "OCD Overdrive", "brand": "Fulltone", "filename": "fulltone-ocd"},
    {"name": "Tumnus", "brand": "Wampler", "filename": "wampler-tumnus"},
    {"name": "Plexi-Drive", "brand": "Wampler", "filename": "wampler-plexi-drive"},
    {"name": "Afterneath", "brand": "EarthQuaker Devices", "filename": "earthquaker-afterneath"},
    {
        "name": "Avalanche Run",
        "brand": "EarthQuaker Devices",
        "filename": "earthquaker-avalanche-run",
    },
    {"name": "Flashback Delay", "brand": "TC Electronic", "filename": "tc-flashback"},
    {"name": "Hall of Fame Reverb", "brand": "TC Electronic", "filename": "tc-hall-of-fame"},
    {"name": "Timeline", "brand": "Strymon", "filename": "strymon-timeline"},
    {"name": "BigSky", "brand": "Strymon", "filename": "strymon-bigsky"},
]


def normalise_pedal(raw: dict[str, Any], image_base: str = DEFAULT_IMAGE_BASE) -> Pedal:
    """Convert a raw catalogue entry into a Pedal with a stable id.

    Args:
        raw: Catalogue entry with some of name, brand/manufacturer, filename.
        image_base: URL prefix for pedal images.

    Returns:
        Normalised Pedal.
    """
    slugs = SlugGenerator()
    brand = raw.get("brand")
    name = raw.get("name")
    filename = raw.get("filename") or slugs.default_filename(brand, name)

    return Pedal(
        id=slugs.pedal_id(brand, name, filename),
        name=name or filename,
        brand=brand or raw.get("manufacturer") or UNKNOWN_BRAND,
        filename=filename,
        image=f"{image_base}{filename}.png" if filename else None,
        width=raw.get("width"),
        height=raw.get("height"),
    )


def parse_catalogue(
    raw: Any, source: str, image_base: str = DEFAULT_IMAGE_BASE
) -> list[Pedal]:
    """Parse a catalogue payload into unique pedals.

    The payload may be a list of entries or an object whose values are entries.
    Entries without a name or filename are dropped, and duplicate ids keep the
    first occurrence.

    Raises:
        CatalogueError: If the payload has the wrong shape or yields no pedals.
    """
    if isinstance(raw, dict):
        entries = list(raw.values())
    elif isinstance(raw, list):
        entries = raw
    else:
        raise CatalogueError(source, f"unexpected payload type {type(raw).__name__}")

    pedals: dict[str, Pedal] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not (entry.get("name") or entry.get("filename")):
            continue
        pedal = normalise_pedal(entry, image_base)
        pedals.setdefault(pedal.id, pedal)

    if not pedals:
        raise CatalogueError(source, "Empty list")
    return list(pedals.values())


def fallback_pedals(image_base: str = DEFAULT_IMAGE_BASE) -> list[Pedal]:
    """Return the built-in starter catalogue."""
    return [normalise_pedal(entry, image_base) for entry in _FALLBACK_ENTRIES]


class CatalogueProvider:
    """Load the pedal catalogue from the first source that works."""

    def __init__(
        self,
        config: CatalogueConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize catalogue provider.

        Args:
            config: Catalogue sources. Defaults to the stock configuration.
            client: Optional HTTP client (used in tests).
        """
        self.config = config or CatalogueConfig()
        self._client = client

    async def fetch_pedals(self) -> list[Pedal]:
        """Load pedals from local file, then remote URL, then the built-in list."""
        sources = []
        if self.config.local_path:
            sources.append((self.config.local_path, self._load_local))
        if self.config.remote_url:
            sources.append((self.config.remote_url, self._load_remote))

        for source, loader in sources:
            try:
                raw = await loader(source)
                pedals = parse_catalogue(raw, source, self.config.image_base)
            except (
                CatalogueError,
                OSError,
                httpx.HTTPError,
                json.JSONDecodeError,
                pydantic.ValidationError,
            ) as e:
                logger.warning("catalogue_source_failed", source=source, error=str(e))
                continue
            logger.info("catalogue_loaded", source=source, count=len(pedals))
            return pedals

        logger.warning("catalogue_using_fallback")
        return fallback_pedals(self.config.image_base)

    async def _load_local(self, path: str) -> Any:
        def _load() -> Any:
            with Path(path).open(encoding="utf-8") as f:
                return json.load(f)

        return await asyncio.to_thread(_load)

    async def _load_remote(self, url: str) -> Any:
        client = self._client or httpx.AsyncClient(timeout=self.config.timeout)
        try:
            response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
            return response.json()
        finally:
            if self._client is None:
                await client.aclose()


async def refresh_catalogue(
    dest: str | Path,
    url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = 15.0,
) -> bool:
    """Download the remote catalogue and write it to ``dest``.

    The payload is validated as JSON before writing; on any failure the
    existing file is left untouched.

    Returns:
        True if the file was written.
    """
    http = client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await http.get(url, follow_redirects=True)
        response.raise_for_status()
        body = response.text
        json.loads(body)
    except (httpx.HTTPError, json.JSONDecodeError) as e:
        logger.warning("catalogue_refresh_failed", url=url, error=str(e))
        return False
    finally:
        if client is None:
            await http.aclose()

    def _write() -> None:
        path = Path(dest)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")

    await asyncio.to_thread(_write)
    logger.info("catalogue_refreshed", dest=str(dest), size=len(body))
    return True
