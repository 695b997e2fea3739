"""Catalog indexer: normalizes raw entries into searchable tokens."""
import re
import sys
from typing import FrozenSet, List, Optional, Sequence

from catalog_picker.brands import brands_in
from catalog_picker.models import CatalogEntry, IndexedEntry


_NON_WORD = re.compile(r"[^\w\s]")
_MULTI_SPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Lowercase text, turn punctuation into spaces and collapse whitespace.

    Args:
        text: Raw text (None is treated as empty)

    Returns:
        Normalized text
    """
    if not text:
        return ""
    text = _NON_WORD.sub(" ", text.lower())
    return _MULTI_SPACE.sub(" ", text).strip()


def tokenize(text: Optional[str]) -> FrozenSet[str]:
    """Split text into unigrams plus contiguous bigrams and trigrams.

    The n-grams let multi-word brand phrases ("fresh fri", "close up")
    match as single tokens.

    Args:
        text: Raw text

    Returns:
        Set of tokens
    """
    words = [word for word in normalize_text(text).split(" ") if word]
    tokens = set(words)

    for i in range(len(words) - 1):
        tokens.add(f"{words[i]} {words[i + 1]}")
        if i < len(words) - 2:
            tokens.add(f"{words[i]} {words[i + 1]} {words[i + 2]}")

    return frozenset(tokens)


def index_entry(entry: CatalogEntry, position: int) -> IndexedEntry:
    """Build the derived search fields for one catalog entry."""
    normalized_name = normalize_text(entry.name)
    normalized_category = normalize_text(entry.category)

    return IndexedEntry(
        entry=entry,
        position=position,
        normalized_name=normalized_name,
        name_tokens=tokenize(entry.name),
        normalized_category=normalized_category,
        category_tokens=tokenize(entry.category),
        brand_matches=tuple(brands_in(normalized_name)),
    )


def index_entries(entries: Sequence[CatalogEntry]) -> List[IndexedEntry]:
    """Index a catalog snapshot, one IndexedEntry per entry, same order.

    Entries without a usable name are indexed with empty tokens instead of
    being dropped, so the index always matches the snapshot count.
    """
    indexed = []
    malformed = 0

    for position, entry in enumerate(entries):
        if not (entry.name or "").strip():
            malformed += 1
        indexed.append(index_entry(entry, position))

    if malformed:
        print(
            f"[CatalogIndex] {malformed} entries without a name indexed with empty tokens",
            file=sys.stderr,
        )

    return indexed


class CatalogIndex:
    """Memoized index over the current catalog snapshot.

    The index is rebuilt only when a snapshot with a different identity is
    passed in. Each rebuild bumps ``generation`` so that consumers holding
    ranking output from an older snapshot can tell it is stale.
    """

    def __init__(self):
        self._snapshot: Optional[Sequence[CatalogEntry]] = None
        self._entries: List[IndexedEntry] = []
        self.generation = 0

    def get(self, snapshot: Sequence[CatalogEntry]) -> List[IndexedEntry]:
        """Return the index for a snapshot, building it if the snapshot changed.

        Args:
            snapshot: The catalog snapshot (compared by identity)

        Returns:
            Indexed entries for the snapshot
        """
        if snapshot is not self._snapshot:
            self._entries = index_entries(snapshot)
            # Hold the snapshot so its identity cannot be recycled
            self._snapshot = snapshot
            self.generation += 1
            print(
                f"[CatalogIndex] Indexed {len(self._entries)} entries (generation {self.generation})",
                file=sys.stderr,
            )

        return self._entries

    @property
    def entries(self) -> List[IndexedEntry]:
        return self._entries

    def categories(self) -> List[str]:
        """Distinct non-empty categories, sorted."""
        return sorted({e.category for e in self._entries if e.category})
