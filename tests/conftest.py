"""Shared fixtures for tests."""
import json
import pytest

from catalog_picker.config import Config, SearchConfig, WindowConfig
from catalog_picker.indexer import index_entries
from catalog_picker.models import CatalogEntry


SAMPLE_CATALOG = {
    "templates": [
        {"id": 1, "name": "Kabras Sugar 2kg", "category": "foods", "image_url": "https://cdn.example.com/kabras.png"},
        {"id": 2, "name": "Omo Detergent 1kg", "category": "homecare"},
        {"id": 3, "name": "Exe Maize Flour 2kg", "category": "foods"},
        {"id": 4, "name": "Fresh Fri Cooking Oil 1L", "category": "foods"},
        {"id": 5, "name": "Colgate Toothpaste 100ml", "category": "personal care"},
        {"id": 6, "name": "Ketepa Tea Leaves 250g", "category": "beverages"},
    ]
}


@pytest.fixture
def sample_catalog():
    """Return the sample catalog as parsed entries."""
    return [
        CatalogEntry(id=1, name="Kabras Sugar 2kg", category="foods", image_ref="https://cdn.example.com/kabras.png"),
        CatalogEntry(id=2, name="Omo Detergent 1kg", category="homecare"),
        CatalogEntry(id=3, name="Exe Maize Flour 2kg", category="foods"),
        CatalogEntry(id=4, name="Fresh Fri Cooking Oil 1L", category="foods"),
        CatalogEntry(id=5, name="Colgate Toothpaste 100ml", category="personal care"),
        CatalogEntry(id=6, name="Ketepa Tea Leaves 250g", category="beverages"),
    ]


@pytest.fixture
def indexed_catalog(sample_catalog):
    return index_entries(sample_catalog)


@pytest.fixture
def sample_catalog_path(tmp_path):
    """Create a temporary catalog file with sample data."""
    catalog_file = tmp_path / "catalog.json"
    catalog_file.write_text(json.dumps(SAMPLE_CATALOG, indent=2))
    return catalog_file


@pytest.fixture
def history_db_path(tmp_path):
    """Return path for a temporary history database."""
    return tmp_path / "test_history.db"


@pytest.fixture
def config(history_db_path):
    """Config with defaults, independent of the environment."""
    return Config(
        search=SearchConfig(),
        window=WindowConfig(),
        history_db_path=history_db_path,
    )


@pytest.fixture
def sample_catalog_payload():
    """Return the sample catalog as the JSON payload a source serves."""
    return SAMPLE_CATALOG
