"""Configuration for the catalog picker."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class SearchConfig:
    """Configuration for ranking, debounce, history and suggestions."""
    # Query acceptance
    debounce_ms: int = 150
    min_query_length: int = 1
    max_results: int = 1000

    # History
    history_key: str = "catalog_search_history"
    history_limit: int = 10
    history_min_length: int = 3

    # Search analytics
    analytics_key: str = "catalog_search_analytics"
    analytics_limit: int = 100

    # Suggestions
    suggestion_limit: int = 12
    suggestion_min_length: int = 2

    # Typo tolerance
    fuzzy_threshold: float = 0.7

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """Create config from environment variables."""
        return cls(
            debounce_ms=int(os.environ.get("CATALOG_DEBOUNCE_MS", "150")),
            min_query_length=int(os.environ.get("CATALOG_MIN_QUERY_LENGTH", "1")),
            max_results=int(os.environ.get("CATALOG_MAX_RESULTS", "1000")),
            history_limit=int(os.environ.get("CATALOG_HISTORY_LIMIT", "10")),
            analytics_limit=int(os.environ.get("CATALOG_ANALYTICS_LIMIT", "100")),
            suggestion_limit=int(os.environ.get("CATALOG_SUGGESTION_LIMIT", "12")),
            fuzzy_threshold=float(os.environ.get("CATALOG_FUZZY_THRESHOLD", "0.7")),
        )


@dataclass
class WindowConfig:
    """Configuration for the windowed result surface."""
    item_size: float = 280.0  # Row height in surface units
    viewport_size: float = 800.0
    overscan: int = 5
    columns: int = 1
    frame_interval: float = 1 / 60  # Seconds; scroll recompute at most once per frame

    @classmethod
    def from_env(cls) -> "WindowConfig":
        """Create config from environment variables."""
        return cls(
            item_size=float(os.environ.get("CATALOG_ITEM_SIZE", "280")),
            viewport_size=float(os.environ.get("CATALOG_VIEWPORT_SIZE", "800")),
            overscan=int(os.environ.get("CATALOG_OVERSCAN", "5")),
            columns=int(os.environ.get("CATALOG_COLUMNS", "1")),
        )


@dataclass
class Config:
    """Main configuration for the catalog picker."""
    search: SearchConfig = field(default_factory=SearchConfig.from_env)
    window: WindowConfig = field(default_factory=WindowConfig.from_env)
    catalog_path: Optional[Path] = None  # JSON catalog file
    catalog_url: Optional[str] = None  # HTTP catalog endpoint, used when no path is set
    history_db_path: Optional[Path] = None  # None = use default
    initial_rows: int = 15  # Blank spreadsheet rows per bulk-add session
    request_timeout: float = 30.0  # Seconds

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        catalog_path_str = os.environ.get("CATALOG_PATH")
        db_path_str = os.environ.get("CATALOG_HISTORY_DB")

        return cls(
            search=SearchConfig.from_env(),
            window=WindowConfig.from_env(),
            catalog_path=Path(catalog_path_str) if catalog_path_str else None,
            catalog_url=os.environ.get("CATALOG_URL") or None,
            history_db_path=Path(db_path_str) if db_path_str else None,
            initial_rows=int(os.environ.get("CATALOG_INITIAL_ROWS", "15")),
            request_timeout=float(os.environ.get("CATALOG_REQUEST_TIMEOUT", "30.0")),
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance.

    Returns:
        Config loaded from environment
    """
    global _config

    if _config is None:
        _config = Config.from_env()

    return _config
