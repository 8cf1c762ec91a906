"""Tests for catalog stores."""

import json
import logging

import pytest

from scout.common.config import DEFAULT_CATALOG_PATH
from scout.common.schemas import RetrievalFilter
from scout.retriever.catalog_store import InMemoryCatalogStore, JsonCatalogStore


class TestInMemoryCatalogStore:
    def test_list_all(self, catalog_items):
        store = InMemoryCatalogStore(catalog_items)
        assert store.list_items() == catalog_items

    def test_list_filtered(self, catalog_items):
        store = InMemoryCatalogStore(catalog_items)
        items = store.list_items(RetrievalFilter(category="creator"))
        assert [i.id for i in items] == ["lap-e"]


class TestJsonCatalogStore:
    def test_loads_object_with_items(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"items": [
            {"id": "a", "name": "A", "category": "gaming", "price": 100},
            {"id": "b", "name": "B", "category": "student", "price": 200},
        ]}))
        store = JsonCatalogStore(path)
        assert [i.id for i in store.list_items()] == ["a", "b"]

    def test_loads_legacy_laptops_key(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"laptops": [
            {"id": "z", "fullName": "Zen", "segment": "ultrabook", "price": 4000},
        ]}))
        item = JsonCatalogStore(path).list_items()[0]
        assert item.name == "Zen"
        assert item.category == "ultrabook"

    def test_loads_bare_list(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([{"id": "a", "name": "A", "price": 1}]))
        assert len(JsonCatalogStore(path).list_items()) == 1

    def test_skips_invalid_records(self, tmp_path, caplog):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([
            {"id": "ok", "name": "Fine", "price": 10},
            {"id": "bad", "name": "No price"},
        ]))
        with caplog.at_level(logging.WARNING, logger="scout.retriever.catalog_store"):
            items = JsonCatalogStore(path).list_items()
        assert [i.id for i in items] == ["ok"]
        assert "Skipping invalid catalog record bad" in caplog.text

    def test_loads_once(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([{"id": "a", "name": "A", "price": 1}]))
        store = JsonCatalogStore(path)
        store.list_items()
        path.write_text("not json any more")
        assert len(store.list_items()) == 1

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            JsonCatalogStore(tmp_path / "nope.json").list_items()

    def test_bundled_catalog_is_valid(self):
        items = JsonCatalogStore(DEFAULT_CATALOG_PATH).list_items()
        assert len(items) >= 6
        assert len({i.id for i in items}) == len(items)
        assert {"gaming", "ultrabook"} <= {i.category for i in items}
