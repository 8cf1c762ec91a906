"""
Catalog Schemas

CatalogItem is the read-only product record owned by the catalog store.
Its search_text is the text that gets embedded; it is derived
deterministically from the item's attributes.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


def flatten_specs(specs: Dict[str, Any], prefix: str = "") -> List[str]:
    parts = []
    for key in sorted(specs):
        value = specs[key]
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            parts.extend(flatten_specs(value, prefix=f"{name}."))
        elif isinstance(value, (list, tuple)):
            if value:
                parts.append(f"{name}: {', '.join(str(v) for v in value)}")
        elif value is not None and value != "":
            parts.append(f"{name}: {value}")
    return parts


def _format_price(price: float) -> str:
    return f"{price:g}" if float(price).is_integer() else f"{price:.2f}"


class CatalogItem(BaseModel):
    """A single product record in the catalog"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., validation_alias=AliasChoices("name", "fullName", "model"))
    brand: str = Field(default="", validation_alias=AliasChoices("brand", "brandName"))
    category: str = Field(default="", validation_alias=AliasChoices("category", "segment"))
    tier: str = ""
    price: float = Field(..., ge=0.0)
    specs: Dict[str, Any] = Field(default_factory=dict)
    description: str = ""
    rating: Optional[float] = None

    @property
    def search_text(self) -> str:
        """Deterministic text used for embedding this item."""
        parts = [
            self.name,
            self.brand,
            self.category,
            self.tier,
            f"Price: RM{_format_price(self.price)}",
            *flatten_specs(self.specs),
            self.description,
            f"Rating: {self.rating:g}/5" if self.rating is not None else "",
        ]
        return ". ".join(p for p in parts if p)

    @property
    def summary(self) -> str:
        """Short one-line label for prompts and display"""
        return f"{self.name} - RM{_format_price(self.price)}"


class RetrievalFilter(BaseModel):
    """
    Structural constraints applied before similarity scoring.

    A field left as None places no constraint on that attribute.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    category: Optional[str] = Field(default=None, validation_alias=AliasChoices("category", "segment"))
    tier: Optional[str] = None
    min_price: Optional[float] = Field(default=None, validation_alias=AliasChoices("min_price", "minPrice"))
    max_price: Optional[float] = Field(default=None, validation_alias=AliasChoices("max_price", "maxPrice"))

    @model_validator(mode="after")
    def _check_price_bounds(self) -> "RetrievalFilter":
        for name in ("min_price", "max_price"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError(f"min_price ({self.min_price}) exceeds max_price ({self.max_price})")
        return self

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in (self.category, self.tier, self.min_price, self.max_price))

    def to_dict(self) -> Dict[str, Any]:
        """Only the constraints that are set, in wire (camelCase) form"""
        data = {
            "category": self.category,
            "tier": self.tier,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
        }
        return {k: v for k, v in data.items() if v is not None}
