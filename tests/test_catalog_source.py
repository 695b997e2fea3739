"""Tests for catalog_source module."""
import json

import httpx
import pytest

from catalog_picker.catalog_source import (
    HttpCatalogSource,
    JsonFileCatalogSource,
    parse_catalog,
    parse_entry,
)
from catalog_picker.errors import CatalogLoadFailure


class TestParse:
    def test_parse_entry(self):
        entry = parse_entry({"id": 7, "name": "Omo 1kg", "category": " homecare ", "image_url": "omo.png"}, 0)
        assert entry.id == 7
        assert entry.name == "Omo 1kg"
        assert entry.category == "homecare"
        assert entry.image_ref == "omo.png"

    def test_missing_id_uses_position(self):
        assert parse_entry({"name": "Omo"}, 4).id == 4

    def test_missing_fields(self):
        entry = parse_entry({"id": 1}, 0)
        assert entry.name == ""
        assert entry.category is None
        assert entry.image_ref is None

    def test_accepts_list_or_wrapped(self):
        records = [{"id": 1, "name": "Omo"}]
        assert len(parse_catalog(records, "test")) == 1
        assert len(parse_catalog({"templates": records}, "test")) == 1
        assert len(parse_catalog({"products": records}, "test")) == 1

    def test_rejects_unknown_shape(self):
        with pytest.raises(CatalogLoadFailure, match="expected a list"):
            parse_catalog({"items": []}, "test")

    def test_rejects_non_object_record(self):
        with pytest.raises(CatalogLoadFailure, match="record 1"):
            parse_catalog([{"id": 1}, "oops"], "test")


class TestJsonFileCatalogSource:
    def test_loads_file(self, sample_catalog_path, sample_catalog):
        entries = JsonFileCatalogSource(sample_catalog_path).load_catalog_sync()
        assert entries == sample_catalog

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogLoadFailure, match="file not found"):
            JsonFileCatalogSource(tmp_path / "nope.json").load_catalog_sync()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(CatalogLoadFailure, match="invalid JSON"):
            JsonFileCatalogSource(path).load_catalog_sync()

    @pytest.mark.asyncio
    async def test_async_load(self, sample_catalog_path):
        entries = await JsonFileCatalogSource(sample_catalog_path).load_catalog()
        assert len(entries) == 6


@pytest.mark.asyncio
class TestHttpCatalogSource:
    async def test_fetches_catalog(self, sample_catalog_payload):
        def handler(request):
            assert request.url.path == "/templates"
            return httpx.Response(200, json=sample_catalog_payload)

        source = HttpCatalogSource("https://api.example.com/templates", transport=httpx.MockTransport(handler))
        entries = await source.load_catalog()

        assert [e.id for e in entries] == [1, 2, 3, 4, 5, 6]

    async def test_http_error_is_load_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        source = HttpCatalogSource("https://api.example.com/templates", transport=transport)

        with pytest.raises(CatalogLoadFailure) as exc_info:
            await source.load_catalog()
        assert exc_info.value.source == "https://api.example.com/templates"

    async def test_connection_error_is_load_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        source = HttpCatalogSource("https://api.example.com/templates", transport=httpx.MockTransport(handler))
        with pytest.raises(CatalogLoadFailure, match="HTTP error"):
            await source.load_catalog()

    async def test_invalid_body_is_load_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
        source = HttpCatalogSource("https://api.example.com/templates", transport=transport)

        with pytest.raises(CatalogLoadFailure, match="invalid JSON"):
            await source.load_catalog()

    async def test_empty_catalog_is_not_a_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=json.dumps([]).encode()))
        source = HttpCatalogSource("https://api.example.com/templates", transport=transport)

        assert await source.load_catalog() == []
