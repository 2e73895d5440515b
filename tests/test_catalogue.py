"""Tests for catalogue loading."""

import json

import httpx
import pytest

from pedal_elo.core.config import DEFAULT_IMAGE_BASE, CatalogueConfig
from pedal_elo.core.errors import CatalogueError
from pedal_elo.services.catalogue import (
    CatalogueProvider,
    fallback_pedals,
    normalise_pedal,
    parse_catalogue,
    refresh_catalogue,
)

REMOTE_URL = "https://catalogue.example/pedals.json"


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestNormalisePedal:
    """Tests for raw entry normalisation."""

    def test_full_entry(self):
        raw = {"name": "DS-1 Distortion", "brand": "Boss", "filename": "boss-ds-1"}
        pedal = normalise_pedal(raw)

        assert pedal.id == "boss__ds-1-distortion__boss-ds-1"
        assert pedal.brand == "Boss"
        assert pedal.image == f"{DEFAULT_IMAGE_BASE}boss-ds-1.png"

    def test_missing_filename(self):
        """Test filename is derived from brand and name."""
        pedal = normalise_pedal({"name": "Phase 90", "brand": "MXR"})
        assert pedal.filename == "mxr-phase-90"
        assert pedal.id == "mxr__phase-90__mxr-phase-90"

    def test_manufacturer_and_unknown_brand(self):
        assert normalise_pedal({"name": "Fuzz", "manufacturer": "Acme"}).brand == "Acme"
        assert normalise_pedal({"name": "Fuzz"}).brand == "Unknown"

    def test_name_falls_back_to_filename(self):
        assert normalise_pedal({"filename": "mystery-box"}).name == "mystery-box"

    def test_id_is_stable(self):
        """Test the same entry always yields the same id."""
        raw = {"name": "Timeline", "brand": "Strymon", "filename": "strymon-timeline"}
        assert normalise_pedal(raw).id == normalise_pedal(dict(raw)).id


class TestParseCatalogue:
    """Tests for payload parsing."""

    def test_object_payload(self):
        raw = {
            "1": {"name": "Tumnus", "brand": "Wampler", "filename": "w-t"},
            "2": {"name": "OCD", "brand": "Fulltone", "filename": "f-ocd"},
        }
        assert [p.name for p in parse_catalogue(raw, "test")] == ["Tumnus", "OCD"]

    def test_skips_invalid_entries(self):
        raw = [
            {"brand": "Boss"},
            "not-an-entry",
            {"name": "Big Muff", "brand": "EHX", "filename": "ehx-bm"},
        ]
        assert [p.name for p in parse_catalogue(raw, "test")] == ["Big Muff"]

    def test_duplicates_keep_first(self):
        raw = [
            {"name": "Big Muff", "brand": "EHX", "filename": "ehx-bm", "width": 1},
            {"name": "Big Muff", "brand": "EHX", "filename": "ehx-bm", "width": 2},
        ]
        pedals = parse_catalogue(raw, "test")
        assert len(pedals) == 1
        assert pedals[0].width == 1

    def test_empty_raises(self):
        with pytest.raises(CatalogueError, match="Empty list"):
            parse_catalogue([], "test")

    def test_wrong_type_raises(self):
        with pytest.raises(CatalogueError):
            parse_catalogue("pedals", "test")


class TestCatalogueProvider:
    """Tests for the three-tier catalogue provider."""

    async def test_local_file(self, catalogue_path):
        provider = CatalogueProvider(CatalogueConfig(local_path=str(catalogue_path)))
        pedals = await provider.fetch_pedals()
        assert len(pedals) == 4

    async def test_remote_when_local_missing(self, tmp_path):
        """Test the remote source is used when the local file is missing."""
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(
                200, json=[{"name": "Timeline", "brand": "Strymon", "filename": "s-t"}]
            )

        config = CatalogueConfig(local_path=str(tmp_path / "missing.json"), remote_url=REMOTE_URL)
        async with mock_client(handler) as client:
            pedals = await CatalogueProvider(config, client).fetch_pedals()

        assert [p.name for p in pedals] == ["Timeline"]
        assert requested == [REMOTE_URL]

    async def test_fallback_when_all_fail(self, tmp_path):
        """Test the built-in list is used when every source fails."""
        bad_local = tmp_path / "bad.json"
        bad_local.write_text("{not json", encoding="utf-8")
        config = CatalogueConfig(local_path=str(bad_local), remote_url=REMOTE_URL)

        async with mock_client(lambda request: httpx.Response(500)) as client:
            pedals = await CatalogueProvider(config, client).fetch_pedals()

        assert len(pedals) == 20
        assert pedals == fallback_pedals()

    async def test_empty_remote_falls_back(self):
        config = CatalogueConfig(local_path=None, remote_url=REMOTE_URL)
        async with mock_client(lambda request: httpx.Response(200, json=[])) as client:
            pedals = await CatalogueProvider(config, client).fetch_pedals()
        assert len(pedals) == 20

    def test_fallback_ids_unique(self):
        pedals = fallback_pedals()
        assert len({p.id for p in pedals}) == len(pedals)


class TestRefreshCatalogue:
    """Tests for downloading the catalogue."""

    async def test_writes_file(self, tmp_path):
        dest = tmp_path / "data" / "pedals.json"
        body = [{"name": "BigSky", "brand": "Strymon"}]

        async with mock_client(lambda request: httpx.Response(200, json=body)) as client:
            written = await refresh_catalogue(dest, REMOTE_URL, client=client)

        assert written is True
        assert json.loads(dest.read_text(encoding="utf-8")) == body

    async def test_failure_keeps_existing(self, tmp_path):
        """Test a failed download leaves the previous file untouched."""
        dest = tmp_path / "pedals.json"
        dest.write_text("[]", encoding="utf-8")

        async with mock_client(lambda request: httpx.Response(404)) as client:
            written = await refresh_catalogue(dest, REMOTE_URL, client=client)

        assert written is False
        assert dest.read_text(encoding="utf-8") == "[]"

    async def test_invalid_json_not_written(self, tmp_path):
        dest = tmp_path / "pedals.json"
        async with mock_client(lambda request: httpx.Response(200, text="<html>")) as client:
            written = await refresh_catalogue(dest, REMOTE_URL, client=client)

        assert written is False
        assert not dest.exists()
