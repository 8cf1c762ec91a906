"""
Catalog Filter

Structural predicates applied to the candidate set before any scoring.
"""

from typing import Iterable, List, Optional

from pydantic import ValidationError

from ..common.errors import InvalidArgument
from ..common.schemas import CatalogItem, RetrievalFilter


class CatalogFilter:
    """
    Applies a RetrievalFilter to catalog items.

    Matching rules:
    - category / tier: case-insensitive exact match
    - min_price / max_price: inclusive bounds (a bound of 0 is a real bound)
    """

    @staticmethod
    def matches(item: CatalogItem, retrieval_filter: Optional[RetrievalFilter]) -> bool:
        if retrieval_filter is None:
            return True
        f = retrieval_filter
        if f.category is not None and item.category.casefold() != f.category.casefold():
            return False
        if f.tier is not None and item.tier.casefold() != f.tier.casefold():
            return False
        if f.min_price is not None and item.price < f.min_price:
            return False
        if f.max_price is not None and item.price > f.max_price:
            return False
        return True

    @classmethod
    def apply(
        cls,
        items: Iterable[CatalogItem],
        retrieval_filter: Optional[RetrievalFilter],
    ) -> List[CatalogItem]:
        """Eligible items, in their original catalog order"""
        return [item for item in items if cls.matches(item, retrieval_filter)]


def build_filter(
    category: Optional[str] = None,
    tier: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> Optional[RetrievalFilter]:
    """Build a RetrievalFilter from flat tool/CLI arguments; None when nothing is set."""
    if category is None and tier is None and min_price is None and max_price is None:
        return None
    try:
        return RetrievalFilter(category=category, tier=tier, min_price=min_price, max_price=max_price)
    except ValidationError as e:
        raise InvalidArgument(f"invalid filter: {e.errors()[0].get('msg', e)}") from e
