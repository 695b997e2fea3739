"""Tests for indexer module."""
import pytest

from catalog_picker.indexer import CatalogIndex, index_entries, index_entry, normalize_text, tokenize
from catalog_picker.models import CatalogEntry


class TestNormalizeText:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_text("Kabras-Sugar, 2KG!") == "kabras sugar 2kg"

    def test_collapses_whitespace(self):
        assert normalize_text("  Omo    Detergent \t 1kg ") == "omo detergent 1kg"

    def test_none_and_empty(self):
        assert normalize_text(None) == ""
        assert normalize_text("") == ""


class TestTokenize:
    def test_unigrams_bigrams_trigrams(self):
        tokens = tokenize("Fresh Fri Cooking Oil")
        assert "fresh" in tokens
        assert "fresh fri" in tokens
        assert "fresh fri cooking" in tokens
        assert "cooking oil" in tokens
        assert "fresh fri cooking oil" not in tokens

    def test_empty(self):
        assert tokenize("") == frozenset()
        assert tokenize(None) == frozenset()


class TestIndexEntry:
    def test_derived_fields(self):
        entry = CatalogEntry(id=1, name="Kabras Sugar 2kg", category="Foods")
        indexed = index_entry(entry, 0)

        assert indexed.id == 1
        assert indexed.normalized_name == "kabras sugar 2kg"
        assert indexed.normalized_category == "foods"
        assert "sugar" in indexed.name_tokens
        assert "kabras" in indexed.brand_matches

    def test_nameless_entry_kept_with_empty_tokens(self):
        entries = [
            CatalogEntry(id=1, name="Omo Detergent 1kg"),
            CatalogEntry(id=2, name=""),
        ]
        indexed = index_entries(entries)

        assert len(indexed) == 2
        assert indexed[1].name_tokens == frozenset()
        assert indexed[1].normalized_name == ""
        assert [e.position for e in indexed] == [0, 1]


class TestCatalogIndex:
    def test_memoizes_on_snapshot_identity(self, sample_catalog):
        index = CatalogIndex()
        first = index.get(sample_catalog)
        second = index.get(sample_catalog)

        assert first is second
        assert index.generation == 1

    def test_new_snapshot_rebuilds(self, sample_catalog):
        index = CatalogIndex()
        index.get(sample_catalog)
        rebuilt = index.get(list(sample_catalog[:2]))

        assert len(rebuilt) == 2
        assert index.generation == 2

    def test_one_indexed_entry_per_catalog_entry(self, sample_catalog):
        index = CatalogIndex()
        assert len(index.get(sample_catalog)) == len(sample_catalog)

    def test_categories(self, sample_catalog):
        index = CatalogIndex()
        index.get(sample_catalog)
        assert index.categories() == ["beverages", "foods", "homecare", "personal care"]
