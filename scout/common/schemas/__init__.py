"""
Scout Schemas

Catalog records and retrieval filters shared by every pipeline stage.
"""

from .catalog import CatalogItem, RetrievalFilter

__all__ = [
    "CatalogItem",
    "RetrievalFilter",
]
