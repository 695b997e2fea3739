"""Catalog session: owns the search pipeline and the bulk-add selection.

The pipeline is a fixed sequence of pure passes run by this class:

    snapshot -> index (memoized) -> rank -> filter by category -> window

Accepting a new term reruns rank and everything after it; a category change
reruns only the filter and window passes; scrolling reruns only the window.
"""
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from catalog_picker.catalog_source import CatalogSource
from catalog_picker.config import Config, get_config
from catalog_picker.errors import CatalogLoadFailure
from catalog_picker.history_store import HistoryStore
from catalog_picker.indexer import CatalogIndex
from catalog_picker.models import (
    CatalogEntry,
    IndexedEntry,
    ProductDraft,
    ProductMode,
    ScoredResult,
    SpreadsheetRow,
)
from catalog_picker.query_controller import QueryController
from catalog_picker.search import SearchEngine, TieredSearchEngine, filter_by_category, rank_stage
from catalog_picker.selection import SelectionSynchronizer, Spreadsheet
from catalog_picker.windowing import PositionedItem, Windower


@dataclass
class SearchView:
    """What the surface renders around the result list."""
    results: List[IndexedEntry]
    scores: Dict[Any, ScoredResult]
    suggestions: List[str]
    history: List[str]
    is_searching: bool
    error: Optional[str]
    selected_ids: List[Any] = field(default_factory=list)
    has_active_search: bool = False
    has_active_filter: bool = False
    history_error: Optional[str] = None

    def to_dict(self, limit: Optional[int] = None) -> Dict[str, Any]:
        results = self.results if limit is None else self.results[:limit]
        items = []
        for entry in results:
            scored = self.scores.get(entry.id)
            item = scored.to_dict() if scored else entry.entry.to_dict()
            item["selected"] = entry.id in self.selected_ids
            items.append(item)

        return {
            "total_results": len(self.results),
            "results": items,
            "suggestions": list(self.suggestions),
            "history": list(self.history),
            "is_searching": self.is_searching,
            "has_active_search": self.has_active_search,
            "has_active_filter": self.has_active_filter,
            "error": self.error,
            "history_error": self.history_error,
        }


@dataclass
class Frame:
    """What the surface draws for the current scroll position."""
    visible_items: List[PositionedItem[IndexedEntry]]
    total_extent: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_extent": self.total_extent,
            "visible_items": [item.to_dict() for item in self.visible_items],
        }


class CatalogSession:
    """One operator's search-and-stage session over a catalog snapshot."""

    def __init__(
        self,
        history_store: HistoryStore,
        config: Optional[Config] = None,
        engine: Optional[SearchEngine] = None,
        request_scroll: Optional[Callable[[float], None]] = None,
    ):
        self.config = config or get_config()
        self.engine = engine or TieredSearchEngine(fuzzy_threshold=self.config.search.fuzzy_threshold)
        self.index = CatalogIndex()
        self.query = QueryController(
            history_store,
            self.config.search,
            on_rerank=self._rerank,
            on_refilter=self._refilter,
            result_count=self._result_count,
        )
        self.windower: Windower[IndexedEntry] = Windower(self.config.window, request_scroll=request_scroll)
        self.spreadsheet = Spreadsheet(self.config.initial_rows)
        self.selection = SelectionSynchronizer(self.spreadsheet)

        self.error: Optional[str] = None
        self.snapshot: Sequence[CatalogEntry] = []
        self._entries_by_id: Dict[Any, CatalogEntry] = {}
        self._ranked: List[IndexedEntry] = []
        self._scored: List[ScoredResult] = []
        self._results: List[IndexedEntry] = []
        self._ranked_generation = 0

    async def start(self) -> None:
        """Restore persisted history."""
        await self.query.load_history()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def load(self, source: CatalogSource) -> bool:
        """Load a snapshot from a source.

        A failed load leaves the previous snapshot in place and records the
        failure in ``error``, which the surface shows instead of "no results".

        Returns:
            True if a new snapshot was loaded
        """
        try:
            entries = await source.load_catalog()
        except CatalogLoadFailure as e:
            print(f"[CatalogSession] {e}", file=sys.stderr)
            self.error = str(e)
            return False

        self.set_catalog(entries)
        return True

    def set_catalog(self, entries: Sequence[CatalogEntry]) -> None:
        """Install a new snapshot and rerun the pipeline against it."""
        self.error = None
        self.snapshot = entries
        indexed = self.index.get(entries)
        self._entries_by_id = {entry.id: entry for entry in entries}
        self.query.set_catalog(indexed)
        self._rerank()

    def entry(self, entry_id: Any) -> Optional[CatalogEntry]:
        return self._entries_by_id.get(entry_id)

    def categories(self) -> List[str]:
        return self.index.categories()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _rerank(self) -> None:
        ranked, scored = rank_stage(
            self.engine,
            self.query.state.debounced_term,
            self.index.entries,
            min_query_length=self.config.search.min_query_length,
            limit=self.config.search.max_results,
        )

        self._ranked = ranked
        self._scored = scored
        self._ranked_generation = self.index.generation
        self._refilter()

    def _refilter(self) -> None:
        self._results = filter_by_category(self._ranked, self.query.state.category_filter)
        self.windower.set_items(self._results)
        if self.windower.state.scroll_offset > 0:
            self.windower.scroll_to_top()

    def _result_count(self) -> int:
        return len(self._results)

    def _ensure_current(self) -> None:
        if self._ranked_generation != self.index.generation:
            self._rerank()

    @property
    def results(self) -> List[IndexedEntry]:
        self._ensure_current()
        return self._results

    def view(self) -> SearchView:
        state = self.query.state
        return SearchView(
            results=self.results,
            scores={result.entry.id: result for result in self._scored},
            suggestions=list(state.suggestions),
            history=list(state.history),
            is_searching=self.query.is_searching,
            error=self.error,
            selected_ids=self.selection.selection,
            has_active_search=self.query.has_active_search,
            has_active_filter=self.query.has_active_filter,
            history_error=self.query.persist_error,
        )

    def frame(self) -> Frame:
        self._ensure_current()
        return Frame(
            visible_items=self.windower.visible_items(),
            total_extent=self.windower.total_extent,
        )

    # ------------------------------------------------------------------
    # Surface events
    # ------------------------------------------------------------------

    def on_query_change(self, term: str) -> None:
        self.query.set_term(term)

    def on_category_change(self, category: Optional[str]) -> None:
        self.query.set_category_filter(category)

    def on_scroll(self, offset: float) -> None:
        self.windower.on_scroll(offset)

    def on_resize(
        self,
        viewport_size: Optional[float] = None,
        width: Optional[float] = None,
    ) -> None:
        if width is not None:
            self.windower.on_surface_width(width)
        if viewport_size is not None:
            self.windower.on_resize(viewport_size=viewport_size)

    def search(self, term: str, category: Optional[str] = None) -> SearchView:
        """Run a query to completion without the debounce delay."""
        self.query.set_category_filter(category)
        self.query.submit(term)
        return self.view()

    def clear_filters(self) -> None:
        self.query.clear_filters()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _require_entry(self, entry_id: Any) -> CatalogEntry:
        entry = self.entry(entry_id)
        if entry is None:
            raise KeyError(f"Unknown catalog entry: {entry_id!r}")
        return entry

    def select(self, entry_id: Any) -> SpreadsheetRow:
        """Stage an entry and credit the current search term with the pick."""
        row = self.selection.select(self._require_entry(entry_id))
        if self.query.state.debounced_term.strip():
            self.query.mark_selection(self.query.state.debounced_term)
        return row

    def deselect(self, entry_id: Any) -> Optional[SpreadsheetRow]:
        return self.selection.deselect(self._require_entry(entry_id))

    def toggle(self, entry_id: Any) -> bool:
        if self.selection.is_selected(entry_id):
            self.deselect(entry_id)
            return False
        self.select(entry_id)
        return True

    def edit_rows(self, rows: Sequence[SpreadsheetRow]) -> List[Any]:
        """Apply a manual edit of the whole row list.

        Returns:
            Entry ids whose selection the edit broke
        """
        new_rows = self.spreadsheet.replace_rows(rows)
        return self.selection.on_rows_externally_edited(new_rows)

    def update_row(self, row_id: str, **fields: Any) -> Optional[SpreadsheetRow]:
        """Apply a manual edit of one row."""
        row = self.spreadsheet.update_row(row_id, **fields)
        if row is not None:
            self.selection.on_rows_externally_edited(self.spreadsheet.rows)
        return row

    def get_valid_rows(self, mode: ProductMode = ProductMode.NORMAL) -> List[ProductDraft]:
        return self.spreadsheet.get_valid_rows(mode)

    def stats(self) -> Dict[str, int]:
        stats = self.spreadsheet.stats()
        stats["selected_count"] = len(self.selection.selection)
        return stats

    def commit(self, mode: ProductMode = ProductMode.NORMAL) -> List[ProductDraft]:
        """Hand off valid rows and start a fresh bulk-add session."""
        drafts = self.get_valid_rows(mode)
        self.selection.clear()
        return drafts

    def clear_selection(self) -> None:
        self.selection.clear()
