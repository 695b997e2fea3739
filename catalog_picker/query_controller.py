"""Query controller: debounced search terms, history, analytics and suggestions."""
import asyncio
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from catalog_picker.brands import BRAND_ALIASES
from catalog_picker.config import SearchConfig
from catalog_picker.history_store import HistoryStore
from catalog_picker.indexer import normalize_text
from catalog_picker.models import IndexedEntry
from catalog_picker.search import ALL_CATEGORIES

MAX_NAME_SUGGESTION_LENGTH = 50
MIN_WORD_SUGGESTION_LENGTH = 3


@dataclass
class SearchRecord:
    """One accepted search term and how many results it produced."""
    term: str
    timestamp: str
    result_count: int
    selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchRecord":
        return cls(
            term=str(data["term"]),
            timestamp=str(data.get("timestamp", "")),
            result_count=int(data.get("result_count", 0)),
            selected=bool(data.get("selected", False)),
        )


@dataclass
class QueryState:
    """Search session state. Written only by QueryController."""
    raw_term: str = ""
    debounced_term: str = ""
    category_filter: str = ALL_CATEGORIES
    history: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    analytics: List[SearchRecord] = field(default_factory=list)


def compute_suggestions(
    term: str,
    entries: Sequence[IndexedEntry],
    categories: Iterable[str],
    history: Iterable[str],
    limit: int = 12,
    min_length: int = 2,
) -> List[str]:
    """Merge brand, product-name, category and history suggestions for a term.

    Args:
        term: Partial search term as typed
        entries: Indexed catalog entries
        categories: Distinct category names
        history: Search history, most recent first
        limit: Maximum number of suggestions
        min_length: Terms shorter than this get no suggestions

    Returns:
        Deduplicated suggestions ordered by earliest match position, then
        by length
    """
    if not term or len(term.strip()) < min_length:
        return []

    query = normalize_text(term)
    if not query:
        return []

    seen: Dict[str, str] = {}

    def add(candidate: str) -> None:
        key = normalize_text(candidate)
        if key and key not in seen:
            seen[key] = candidate

    for brand, variants in BRAND_ALIASES.items():
        if query in brand or brand in query:
            add(brand)
            for variant in variants:
                if query in variant:
                    add(variant)

    for entry in entries:
        if query not in entry.normalized_name:
            continue
        for word in entry.name.split():
            if len(word) >= MIN_WORD_SUGGESTION_LENGTH and query in normalize_text(word):
                add(word)
        if len(entry.name) <= MAX_NAME_SUGGESTION_LENGTH:
            add(entry.name)

    for category in categories:
        if query in normalize_text(category):
            add(category)

    for past_term in history:
        if query in normalize_text(past_term):
            add(past_term)

    def relevance(item):
        key, suggestion = item
        position = key.find(query)
        # Brands found inside a longer query do not contain it; list them last
        return (position if position >= 0 else len(key) + len(query), len(suggestion))

    ranked = sorted(seen.items(), key=relevance)
    return [suggestion for _, suggestion in ranked[:limit]]


class QueryController:
    """Owns QueryState and decides when the result pipeline must rerun.

    ``set_term`` echoes the raw term immediately and accepts it after the
    debounce delay. Every call bumps a pending token; an acceptance carrying
    an older token is dropped, so only the latest term is ever ranked.
    """

    def __init__(
        self,
        store: HistoryStore,
        config: Optional[SearchConfig] = None,
        on_rerank: Optional[Callable[[], None]] = None,
        on_refilter: Optional[Callable[[], None]] = None,
        result_count: Optional[Callable[[], int]] = None,
    ):
        self.config = config or SearchConfig()
        self.state = QueryState()
        self._store = store
        self._on_rerank = on_rerank
        self._on_refilter = on_refilter
        self._result_count = result_count
        self._entries: Sequence[IndexedEntry] = []
        self._categories: List[str] = []
        self._pending_token = 0
        self._persist_task: Optional[asyncio.Task] = None
        self._dirty_keys: List[str] = []
        self.persist_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def set_catalog(self, entries: Sequence[IndexedEntry]) -> None:
        """Point suggestions at a new catalog index."""
        self._entries = entries
        self._categories = sorted({e.category for e in entries if e.category})
        self.state.suggestions = self.suggest(self.state.raw_term)

    # ------------------------------------------------------------------
    # Terms
    # ------------------------------------------------------------------

    @property
    def pending_token(self) -> int:
        return self._pending_token

    @property
    def is_searching(self) -> bool:
        """True while a typed term is waiting for acceptance."""
        raw = self.state.raw_term
        return raw != self.state.debounced_term and len(raw.strip()) >= self.config.min_query_length

    @property
    def has_active_search(self) -> bool:
        return len(self.state.raw_term.strip()) >= self.config.min_query_length

    @property
    def has_active_filter(self) -> bool:
        return self.state.category_filter != ALL_CATEGORIES

    def _update_raw(self, term: str) -> int:
        self.state.raw_term = term
        self.state.suggestions = self.suggest(term)
        self._pending_token += 1
        return self._pending_token

    def set_term(self, term: str) -> None:
        """Record a keystroke and schedule its debounced acceptance.

        Must be called from a running event loop.
        """
        token = self._update_raw(term)
        loop = asyncio.get_running_loop()
        loop.call_later(self.config.debounce_ms / 1000, self.accept, token)

    def submit(self, term: str) -> None:
        """Set and accept a term at once, skipping the debounce delay."""
        token = self._update_raw(term)
        self.accept(token)

    def accept_pending(self) -> None:
        """Accept the latest raw term now."""
        self.accept(self._pending_token)

    def accept(self, token: int) -> bool:
        """Accept the raw term if ``token`` is still the latest one.

        Args:
            token: Token handed out when the term was set

        Returns:
            True if the accepted term changed and a rerank was triggered
        """
        if token != self._pending_token:
            return False

        term = self.state.raw_term
        if term == self.state.debounced_term:
            return False

        self.state.debounced_term = term
        self._remember(term)

        if self._on_rerank:
            self._on_rerank()

        self._log_search(term)
        return True

    def set_category_filter(self, category: Optional[str]) -> None:
        """Change the category filter; results are refiltered, not reranked."""
        category = category or ALL_CATEGORIES
        if category == self.state.category_filter:
            return

        self.state.category_filter = category
        if self._on_refilter:
            self._on_refilter()

    def clear_filters(self) -> None:
        """Reset term and category filter together with a single update."""
        term_changed = self.state.debounced_term != "" or self.state.raw_term != ""
        category_changed = self.state.category_filter != ALL_CATEGORIES

        self._pending_token += 1
        self.state.raw_term = ""
        self.state.debounced_term = ""
        self.state.category_filter = ALL_CATEGORIES
        self.state.suggestions = []

        if term_changed:
            if self._on_rerank:
                self._on_rerank()
        elif category_changed:
            if self._on_refilter:
                self._on_refilter()

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def suggest(self, term: str) -> List[str]:
        """Suggestions for a term against the current catalog and history."""
        return compute_suggestions(
            term,
            self._entries,
            self._categories,
            self.state.history,
            limit=self.config.suggestion_limit,
            min_length=self.config.suggestion_min_length,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def load_history(self) -> List[str]:
        """Restore history and search analytics from the store.

        History is bounded and deduplicated; malformed analytics records
        are skipped.

        Returns:
            The restored history, most recent first
        """
        stored = await self._store.get(self.config.history_key)

        history: List[str] = []
        for term in stored:
            if isinstance(term, str) and term and term not in history:
                history.append(term)

        self.state.history = history[:self.config.history_limit]

        records = []
        for data in await self._store.get(self.config.analytics_key):
            try:
                records.append(SearchRecord.from_dict(data))
            except (KeyError, TypeError, ValueError):
                continue
        self.state.analytics = records[:self.config.analytics_limit]

        return list(self.state.history)

    def _remember(self, term: str) -> None:
        term = term.strip()
        if len(term) < self.config.history_min_length or term in self.state.history:
            return

        self.state.history = [term] + self.state.history[:self.config.history_limit - 1]
        self._persist(self.config.history_key)

    def clear_history(self) -> None:
        """Forget all history and search analytics."""
        self.state.history = []
        self.state.analytics = []
        self._persist(self.config.history_key)
        self._persist(self.config.analytics_key)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def _log_search(self, term: str) -> None:
        term = term.strip()
        if not term:
            return

        count = self._result_count() if self._result_count else 0
        record = SearchRecord(term=term, timestamp=datetime.utcnow().isoformat(), result_count=count)
        self.state.analytics = [record] + self.state.analytics[:self.config.analytics_limit - 1]
        self._persist(self.config.analytics_key)

    def mark_selection(self, term: str) -> int:
        """Flag logged searches for ``term`` as having led to a selection.

        Returns:
            Number of records marked
        """
        term = term.strip()
        marked = 0
        for record in self.state.analytics:
            if record.term == term and not record.selected:
                record.selected = True
                marked += 1

        if marked:
            self._persist(self.config.analytics_key)
        return marked

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _stored_value(self, key: str) -> List[Any]:
        if key == self.config.analytics_key:
            return [record.to_dict() for record in self.state.analytics]
        return list(self.state.history)

    def _persist(self, key: str) -> None:
        if key not in self._dirty_keys:
            self._dirty_keys.append(key)
        if self._persist_task is None or self._persist_task.done():
            self._persist_task = asyncio.get_running_loop().create_task(self._write_dirty())

    async def _write_dirty(self) -> None:
        # Writes the latest values until no newer change is pending
        error = None
        while self._dirty_keys:
            key = self._dirty_keys.pop(0)
            try:
                await self._store.set(key, self._stored_value(key))
            except Exception as e:
                print(f"[QueryController] Could not persist {key}: {e}", file=sys.stderr)
                error = str(e)
        self.persist_error = error

    async def flush(self) -> None:
        """Wait for pending history and analytics writes."""
        if self._persist_task is not None:
            await self._persist_task
