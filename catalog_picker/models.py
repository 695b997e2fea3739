"""Data model shared by the indexer, ranker and selection layers."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class CatalogEntry:
    """One product template from the catalog source. Read-only."""
    id: Any
    name: str
    category: Optional[str] = None
    image_ref: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "image_ref": self.image_ref,
        }


@dataclass(frozen=True)
class IndexedEntry:
    """A catalog entry plus the fields derived from it at index time."""
    entry: CatalogEntry
    position: int  # index in the catalog snapshot
    normalized_name: str
    name_tokens: FrozenSet[str]
    normalized_category: str
    category_tokens: FrozenSet[str]
    brand_matches: Tuple[str, ...]

    @property
    def id(self) -> Any:
        return self.entry.id

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def category(self) -> Optional[str]:
        return self.entry.category


@dataclass
class ScoredResult:
    """Ranking output for one entry against one query."""
    entry: IndexedEntry
    score: float
    matched_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.entry.entry.to_dict()
        data["score"] = round(self.score, 2)
        data["matched_fields"] = list(self.matched_fields)
        return data


class ProductMode(Enum):
    """How staged rows turn into product drafts at commit time."""
    NORMAL = "normal"
    UNCOUNTABLE = "uncountable"
    VARIATION = "variation"


@dataclass
class SpreadsheetRow:
    """One editable row of the bulk-add spreadsheet.

    Numeric fields are None while blank.
    """
    id: str
    name: str = ""
    category: str = ""
    cost_price: Optional[float] = None
    selling_price: Optional[float] = None
    current_stock: Optional[int] = None
    low_stock_threshold: Optional[int] = None
    image_ref: str = ""
    is_valid: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def is_blank(self) -> bool:
        return not self.name.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "cost_price": self.cost_price,
            "selling_price": self.selling_price,
            "current_stock": self.current_stock,
            "low_stock_threshold": self.low_stock_threshold,
            "image_ref": self.image_ref,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ProductDraft:
    """A validated row, ready for the inventory-creation subsystem."""
    name: str
    category: str
    cost_price: float
    selling_price: float
    current_stock: int
    low_stock_threshold: int
    image_ref: str = ""
    sku: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "cost_price": self.cost_price,
            "selling_price": self.selling_price,
            "current_stock": self.current_stock,
            "low_stock_threshold": self.low_stock_threshold,
            "image_ref": self.image_ref,
            "sku": self.sku,
        }
