"""
Catalog Store

Read-only sources of CatalogItem records. The JSON store loads its file
once, on first use, and accepts either a bare list of items or an object
with an "items" (or legacy "laptops") list.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from pydantic import ValidationError

from ..common.schemas import CatalogItem, RetrievalFilter
from .filters import CatalogFilter

logger = logging.getLogger("scout.retriever.catalog_store")


class CatalogStore(Protocol):
    def list_items(self, retrieval_filter: Optional[RetrievalFilter] = None) -> List[CatalogItem]:
        ...


class InMemoryCatalogStore:
    """Catalog backed by a list already in memory."""

    def __init__(self, items: Sequence[CatalogItem]):
        self._items = list(items)

    def list_items(self, retrieval_filter: Optional[RetrievalFilter] = None) -> List[CatalogItem]:
        return CatalogFilter.apply(self._items, retrieval_filter)


class JsonCatalogStore:
    """Catalog loaded from a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path).expanduser()
        self._items: Optional[List[CatalogItem]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> List[CatalogItem]:
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, dict):
            raw_items = data.get("items", data.get("laptops", []))
        else:
            raw_items = data

        items = []
        for raw in raw_items:
            try:
                items.append(CatalogItem.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "Skipping invalid catalog record %s: %s",
                    raw.get("id", "?") if isinstance(raw, dict) else "?",
                    e.errors()[0].get("msg", str(e)),
                )
        logger.info("Loaded %d catalog items from %s", len(items), self._path)
        return items

    def list_items(self, retrieval_filter: Optional[RetrievalFilter] = None) -> List[CatalogItem]:
        if self._items is None:
            self._items = self._load()
        return CatalogFilter.apply(self._items, retrieval_filter)
