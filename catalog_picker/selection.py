"""Bulk-add spreadsheet rows and their link to selected catalog entries."""
import itertools
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from catalog_picker.models import CatalogEntry, ProductDraft, ProductMode, SpreadsheetRow

DEFAULT_ROW_COUNT = 15
DEFAULT_CATEGORY = "General"
DEFAULT_COST_PRICE = 0.0
UNTRACKED_STOCK = -1
DEFAULT_LOW_STOCK_THRESHOLD = 10

NAME_REQUIRED = "Name is required"
CATEGORY_REQUIRED = "Category is required"
PRICE_REQUIRED = "Selling price is required and must be > 0"

# Fields the synchronizer writes; everything else belongs to the operator
OWNED_FIELDS = ("name", "category", "image_ref")
OPERATOR_FIELDS = ("cost_price", "selling_price", "current_stock", "low_stock_threshold")


def validate_row(row: SpreadsheetRow) -> List[str]:
    """Return the human-readable problems that keep a row from committing."""
    errors = []

    if not row.name.strip():
        errors.append(NAME_REQUIRED)

    if not row.category.strip():
        errors.append(CATEGORY_REQUIRED)

    if row.selling_price is None or row.selling_price <= 0:
        errors.append(PRICE_REQUIRED)

    return errors


def apply_validation(row: SpreadsheetRow) -> SpreadsheetRow:
    """Refresh ``is_valid`` and ``errors`` in place and return the row."""
    row.errors = validate_row(row)
    row.is_valid = not row.errors
    return row


def to_draft(row: SpreadsheetRow, mode: ProductMode = ProductMode.NORMAL) -> ProductDraft:
    """Convert a valid row into a product draft for the given mode."""
    if mode is ProductMode.UNCOUNTABLE:
        # Sold by measure; stock is not tracked
        current_stock = UNTRACKED_STOCK
        low_stock_threshold = 0
    elif mode is ProductMode.NORMAL or mode is ProductMode.VARIATION:
        current_stock = UNTRACKED_STOCK if row.current_stock is None else int(row.current_stock)
        low_stock_threshold = (
            DEFAULT_LOW_STOCK_THRESHOLD if row.low_stock_threshold is None else int(row.low_stock_threshold)
        )
    else:
        raise ValueError(f"Unknown product mode: {mode!r}")

    return ProductDraft(
        name=row.name.strip(),
        category=row.category.strip() or DEFAULT_CATEGORY,
        cost_price=DEFAULT_COST_PRICE if row.cost_price is None else float(row.cost_price),
        selling_price=float(row.selling_price),
        current_stock=current_stock,
        low_stock_threshold=low_stock_threshold,
        image_ref=row.image_ref or "",
    )


class Spreadsheet:
    """The editable tabular surface holding draft rows."""

    def __init__(self, initial_rows: int = DEFAULT_ROW_COUNT):
        self.initial_rows = initial_rows
        self.rows: List[SpreadsheetRow] = []
        self._ids = itertools.count()
        self.initialize()

    def _new_row(self, **fields: Any) -> SpreadsheetRow:
        return SpreadsheetRow(id=f"row_{next(self._ids)}", **fields)

    def initialize(self, count: Optional[int] = None) -> None:
        """Start over with a batch of blank rows."""
        count = self.initial_rows if count is None else count
        self._ids = itertools.count()
        self.rows = [self._new_row() for _ in range(count)]

    def append_blank(self, count: int = 1) -> List[SpreadsheetRow]:
        new_rows = [self._new_row() for _ in range(count)]
        self.rows.extend(new_rows)
        return new_rows

    def append(self, **fields: Any) -> SpreadsheetRow:
        row = apply_validation(self._new_row(**fields))
        self.rows.append(row)
        return row

    def find(self, row_id: str) -> Optional[SpreadsheetRow]:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def first_blank(self) -> Optional[SpreadsheetRow]:
        for row in self.rows:
            if row.is_blank:
                return row
        return None

    def replace_rows(self, rows: Sequence[SpreadsheetRow]) -> List[SpreadsheetRow]:
        """Take a full row list from the surface after a manual edit.

        Non-blank rows are revalidated; blank rows carry no errors.
        """
        updated = []
        for row in rows:
            row = replace(row, errors=list(row.errors))
            if row.is_blank:
                row.is_valid = False
                row.errors = []
            else:
                apply_validation(row)
            updated.append(row)

        self.rows = updated
        return self.rows

    def update_row(self, row_id: str, **fields: Any) -> Optional[SpreadsheetRow]:
        """Edit fields of one row, returning the new row list state.

        Returns:
            The updated row, or None if no row has that id
        """
        new_rows = []
        updated = None
        for row in self.rows:
            if row.id == row_id:
                row = replace(row, **fields)
                updated = row
            new_rows.append(row)

        if updated is None:
            return None

        self.replace_rows(new_rows)
        return self.find(row_id)

    def clear(self) -> None:
        self.initialize()

    def get_valid_rows(self, mode: ProductMode = ProductMode.NORMAL) -> List[ProductDraft]:
        """Rows that pass validation, as drafts. Invalid rows stay in place."""
        return [
            to_draft(row, mode)
            for row in self.rows
            if row.is_valid and row.name.strip()
        ]

    def stats(self) -> Dict[str, int]:
        filled = [row for row in self.rows if not row.is_blank]
        valid = [row for row in filled if row.is_valid]
        return {
            "total_rows": len(self.rows),
            "filled_rows": len(filled),
            "valid_rows": len(valid),
            "invalid_rows": len(filled) - len(valid),
        }


class SelectionSynchronizer:
    """Keeps selected catalog entries and spreadsheet rows consistent.

    Each selected entry is bound to exactly one row id. A row that stops
    carrying the entry's name (manual edit) breaks the binding.
    """

    def __init__(self, spreadsheet: Spreadsheet):
        self.spreadsheet = spreadsheet
        self._bindings: "OrderedDict[Any, Tuple[CatalogEntry, str]]" = OrderedDict()

    @property
    def selection(self) -> List[Any]:
        """Selected entry ids, in selection order."""
        return list(self._bindings)

    def is_selected(self, entry_id: Any) -> bool:
        return entry_id in self._bindings

    def bound_row(self, entry_id: Any) -> Optional[SpreadsheetRow]:
        binding = self._bindings.get(entry_id)
        if binding is None:
            return None
        return self.spreadsheet.find(binding[1])

    def select(self, entry: CatalogEntry) -> SpreadsheetRow:
        """Stage an entry in the first blank row, appending one if needed.

        The staged row is always invalid until the operator prices it. A
        reused row drops whatever a previous entry's operator entered.
        Selecting an already-selected entry returns its row unchanged.

        Raises:
            ValueError: If the entry has no name to stage
        """
        existing = self.bound_row(entry.id)
        if existing is not None:
            return existing

        if not (entry.name or "").strip():
            raise ValueError(f"Catalog entry {entry.id!r} has no name to stage")

        fields = {
            "name": entry.name or "",
            "category": entry.category or "",
            "image_ref": entry.image_ref or "",
        }

        row = self.spreadsheet.first_blank()
        if row is None:
            row = self.spreadsheet.append(**fields)
        else:
            for name, value in fields.items():
                setattr(row, name, value)
            for name in OPERATOR_FIELDS:
                setattr(row, name, None)

        row.is_valid = False
        row.errors = [PRICE_REQUIRED]

        self._bindings[entry.id] = (entry, row.id)
        return row

    def deselect(self, entry: CatalogEntry) -> Optional[SpreadsheetRow]:
        """Blank the owned fields of the entry's row and unbind it.

        The row stays in the spreadsheet for reuse.
        """
        binding = self._bindings.pop(entry.id, None)
        if binding is None:
            return None

        row = self.spreadsheet.find(binding[1])
        if row is None:
            return None

        for name in OWNED_FIELDS:
            setattr(row, name, "")
        row.is_valid = False
        row.errors = []
        return row

    def toggle(self, entry: CatalogEntry) -> bool:
        """Select or deselect; returns the new selection state."""
        if self.is_selected(entry.id):
            self.deselect(entry)
            return False
        self.select(entry)
        return True

    def on_rows_externally_edited(self, rows: Sequence[SpreadsheetRow]) -> List[Any]:
        """Drop selections whose bound row vanished or lost the entry's name.

        Args:
            rows: The spreadsheet's rows after the edit

        Returns:
            Entry ids that were deselected
        """
        names_by_row = {row.id: row.name for row in rows}
        dropped = []

        for entry_id, (entry, row_id) in list(self._bindings.items()):
            if names_by_row.get(row_id) != (entry.name or ""):
                del self._bindings[entry_id]
                dropped.append(entry_id)

        return dropped

    def clear(self) -> None:
        """Forget all selections and reset the spreadsheet."""
        self._bindings.clear()
        self.spreadsheet.clear()
