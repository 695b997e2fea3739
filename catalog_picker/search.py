"""Search engine module for the product catalog."""
import math
from typing import List, Optional, Protocol, Sequence, Tuple

from catalog_picker.brands import brands_in
from catalog_picker.indexer import normalize_text
from catalog_picker.models import IndexedEntry, ScoredResult


# Score bands. Each tier's floor is above everything the tiers below it can
# add up to, so a better class of match always wins.
EXACT_SCORE = 100_000.0
PREFIX_SCORE = 60_000.0
CONTAINS_SCORE = 30_000.0
LENGTH_RATIO_WEIGHT = 10_000.0

TOKEN_EQUAL_SCORE = 3_000.0
TOKEN_PREFIX_SCORE = 2_000.0
TOKEN_CONTAINS_SCORE = 1_000.0
TOKEN_SCORE_CAP = 15_000.0
MIN_QUERY_WORD_LENGTH = 2

BRAND_SCORE = 500.0

CATEGORY_EQUAL_SCORE = 300.0
CATEGORY_PREFIX_SCORE = 200.0
CATEGORY_CONTAINS_SCORE = 100.0

FUZZY_THRESHOLD = 0.7
FUZZY_MIN_QUERY_LENGTH = 3
FUZZY_WEIGHT = 50

ALL_CATEGORIES = "all"


class SearchEngine(Protocol):
    """Protocol for search engines to allow extensibility."""

    def rank(
        self,
        query: str,
        entries: Sequence[IndexedEntry],
        limit: Optional[int] = None,
    ) -> List[ScoredResult]:
        """Rank indexed entries against a query.

        Args:
            query: Search query string
            entries: Indexed catalog entries
            limit: Maximum number of results to return

        Returns:
            Entries with a positive score, best first
        """
        ...


class TieredSearchEngine:
    """Heuristic ranker with strictly ordered match tiers.

    Tiers, best first: exact name, name prefix, name substring, token
    matches, brand aliases, category, and a character-overlap fallback for
    typos that only runs when nothing else matched.
    """

    def __init__(
        self,
        fuzzy_threshold: float = FUZZY_THRESHOLD,
        fuzzy_min_length: int = FUZZY_MIN_QUERY_LENGTH,
    ):
        self.fuzzy_threshold = fuzzy_threshold
        self.fuzzy_min_length = fuzzy_min_length

    def _score_name(self, query: str, entry: IndexedEntry) -> float:
        name = entry.normalized_name
        if not name:
            return 0.0
        if name == query:
            return EXACT_SCORE

        position = name.find(query)
        if position < 0:
            return 0.0

        length_ratio = len(query) / len(name)
        if position == 0:
            return PREFIX_SCORE + length_ratio * LENGTH_RATIO_WEIGHT
        return CONTAINS_SCORE + length_ratio * LENGTH_RATIO_WEIGHT

    def _score_tokens(self, query_words: List[str], entry: IndexedEntry) -> float:
        """Sum the best token match of every query word."""
        score = 0.0

        for word in query_words:
            if len(word) < MIN_QUERY_WORD_LENGTH:
                continue

            best = 0.0
            for token in entry.name_tokens:
                if token == word:
                    best = TOKEN_EQUAL_SCORE
                    break
                if token.startswith(word):
                    best = max(best, TOKEN_PREFIX_SCORE)
                elif word in token:
                    best = max(best, TOKEN_CONTAINS_SCORE)
            score += best

        return min(score, TOKEN_SCORE_CAP)

    def _score_category(self, query: str, entry: IndexedEntry) -> float:
        category = entry.normalized_category
        if not category or query not in category:
            return 0.0
        if category == query:
            return CATEGORY_EQUAL_SCORE
        if category.startswith(query):
            return CATEGORY_PREFIX_SCORE
        return CATEGORY_CONTAINS_SCORE

    def _score_fuzzy(self, query: str, entry: IndexedEntry) -> float:
        if len(query) < self.fuzzy_min_length or not entry.normalized_name:
            return 0.0

        query_chars = set(query)
        name_chars = set(entry.normalized_name)
        overlap = len(query_chars & name_chars) / max(len(query_chars), 1)

        if overlap > self.fuzzy_threshold:
            return float(math.floor(overlap * FUZZY_WEIGHT))
        return 0.0

    def score_entry(
        self,
        query: str,
        entry: IndexedEntry,
        query_brands: Optional[List[str]] = None,
    ) -> Tuple[float, List[str]]:
        """Score one entry against a normalized query.

        Args:
            query: Normalized query (see indexer.normalize_text)
            entry: Indexed entry
            query_brands: Brand keys found in the query, if already computed

        Returns:
            Tuple of (score, matched fields)
        """
        if query_brands is None:
            query_brands = brands_in(query)

        score = 0.0
        matched_fields = []

        name_score = self._score_name(query, entry)
        if name_score:
            score += name_score
            matched_fields.append("name")

        token_score = self._score_tokens(query.split(" "), entry)
        if token_score:
            score += token_score
            matched_fields.append("token")

        if query_brands and any(brand in entry.brand_matches for brand in query_brands):
            score += BRAND_SCORE
            matched_fields.append("brand")

        category_score = self._score_category(query, entry)
        if category_score:
            score += category_score
            matched_fields.append("category")

        if score == 0:
            fuzzy_score = self._score_fuzzy(query, entry)
            if fuzzy_score:
                score += fuzzy_score
                matched_fields.append("fuzzy")

        return score, matched_fields

    def rank(
        self,
        query: str,
        entries: Sequence[IndexedEntry],
        limit: Optional[int] = None,
    ) -> List[ScoredResult]:
        """Rank entries using the tiered heuristics.

        Args:
            query: Raw search query
            entries: Indexed catalog entries
            limit: Maximum number of results to return

        Returns:
            Entries with a positive score, sorted by score (highest first);
            equal scores keep catalog order
        """
        normalized_query = normalize_text(query)
        if not normalized_query or not entries:
            return []

        query_brands = brands_in(normalized_query)

        results = []
        for entry in entries:
            score, matched_fields = self.score_entry(normalized_query, entry, query_brands)
            if score > 0:
                results.append(ScoredResult(entry=entry, score=score, matched_fields=matched_fields))

        # list.sort is stable, so ties keep catalog order
        results.sort(key=lambda result: result.score, reverse=True)

        if limit is not None:
            results = results[:limit]

        return results


def filter_by_category(entries: Sequence[IndexedEntry], category: Optional[str]) -> List[IndexedEntry]:
    """Keep entries in the given category; the neutral filter keeps all.

    Args:
        entries: Entries in display order
        category: Category name, or None / "all" for no filtering

    Returns:
        Filtered entries, order preserved
    """
    if not category or category == ALL_CATEGORIES:
        return list(entries)
    return [entry for entry in entries if entry.category == category]


def rank_stage(
    engine: SearchEngine,
    query: str,
    entries: Sequence[IndexedEntry],
    min_query_length: int = 1,
    limit: Optional[int] = None,
) -> Tuple[List[IndexedEntry], List[ScoredResult]]:
    """Ranking pass of the pipeline, bypassed for short queries.

    Args:
        engine: Ranking engine
        query: Raw search query
        entries: Indexed catalog entries
        min_query_length: Queries shorter than this skip ranking
        limit: Maximum number of ranked results

    Returns:
        Tuple of (ordered entries, scored results behind them). When ranking
        is bypassed the scored list is empty and the entries are the whole
        catalog in original order.
    """
    term = (query or "").strip()
    if len(term) < max(min_query_length, 1):
        return list(entries), []

    scored = engine.rank(term, entries, limit=limit)
    return [result.entry for result in scored], scored


def run_query(
    engine: SearchEngine,
    query: str,
    entries: Sequence[IndexedEntry],
    category: Optional[str] = None,
    min_query_length: int = 1,
    limit: Optional[int] = None,
) -> Tuple[List[IndexedEntry], List[ScoredResult]]:
    """Rank then filter by category in one call.

    Returns:
        Tuple of (entries to display, scored results before filtering)
    """
    ordered, scored = rank_stage(engine, query, entries, min_query_length, limit)
    return filter_by_category(ordered, category), scored
