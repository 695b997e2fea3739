"""Catalog sources: where the product-template snapshot comes from."""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import httpx

from catalog_picker.errors import CatalogLoadFailure
from catalog_picker.models import CatalogEntry


class CatalogSource(Protocol):
    """Anything that can produce a full catalog snapshot."""

    async def load_catalog(self) -> List[CatalogEntry]:
        ...


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_entry(raw: Dict[str, Any], position: int) -> CatalogEntry:
    """Build a CatalogEntry from one raw record.

    Missing names become "" rather than an error; the indexer keeps such
    entries with empty tokens.

    Args:
        raw: Raw record (keys: id, name, category, image_url / image_ref)
        position: Position in the payload, used when the record has no id

    Returns:
        Parsed entry
    """
    entry_id = raw.get("id")
    if entry_id is None:
        entry_id = position

    return CatalogEntry(
        id=entry_id,
        name=str(raw.get("name") or ""),
        category=_text_or_none(raw.get("category")),
        image_ref=_text_or_none(raw.get("image_ref") or raw.get("image_url")),
    )


def parse_catalog(payload: Any, source: str) -> List[CatalogEntry]:
    """Parse a catalog payload.

    Accepts either a list of records or an object with a "templates" or
    "products" list.

    Raises:
        CatalogLoadFailure: If the payload has no recognizable record list
    """
    records = payload
    if isinstance(payload, dict):
        records = payload.get("templates", payload.get("products"))

    if not isinstance(records, list):
        raise CatalogLoadFailure(source, "expected a list of catalog records")

    entries = []
    for position, raw in enumerate(records):
        if not isinstance(raw, dict):
            raise CatalogLoadFailure(source, f"record {position} is not an object")
        entries.append(parse_entry(raw, position))

    return entries


class JsonFileCatalogSource:
    """Reads the catalog from a JSON file on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_catalog_sync(self) -> List[CatalogEntry]:
        """Load and parse the catalog file.

        Raises:
            CatalogLoadFailure: If the file is missing or malformed
        """
        if not self.path.exists():
            raise CatalogLoadFailure(str(self.path), "file not found")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise CatalogLoadFailure(str(self.path), f"invalid JSON: {e}") from e
        except OSError as e:
            raise CatalogLoadFailure(str(self.path), str(e)) from e

        return parse_catalog(payload, str(self.path))

    async def load_catalog(self) -> List[CatalogEntry]:
        return self.load_catalog_sync()


class HttpCatalogSource:
    """Fetches the catalog as JSON from an HTTP endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def load_catalog(self) -> List[CatalogEntry]:
        """Fetch and parse the catalog.

        Raises:
            CatalogLoadFailure: On HTTP errors, timeouts or a malformed body
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": "CatalogPicker/1.0 (catalog snapshot)"},
                transport=self._transport,
            ) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise CatalogLoadFailure(self.url, f"HTTP error: {e}") from e
        except ValueError as e:
            raise CatalogLoadFailure(self.url, f"invalid JSON: {e}") from e

        return parse_catalog(payload, self.url)
