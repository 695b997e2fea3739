"""MCP server exposing catalog search and bulk-add staging as tools."""
import json
import sys
from typing import Any, Dict, List, Optional

import aiosqlite
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from catalog_picker.catalog_source import CatalogSource, HttpCatalogSource, JsonFileCatalogSource
from catalog_picker.config import get_config
from catalog_picker.history_store import MemoryHistoryStore, SqliteHistoryStore
from catalog_picker.models import ProductMode
from catalog_picker.session import CatalogSession

DEFAULT_RESULT_LIMIT = 20
EDITABLE_ROW_FIELDS = {
    "name": str,
    "category": str,
    "cost_price": float,
    "selling_price": float,
    "current_stock": int,
    "low_stock_threshold": int,
    "image_ref": str,
}


# Global state
_session: Optional[CatalogSession] = None
_history_store: Optional[SqliteHistoryStore] = None


def get_catalog_source() -> Optional[CatalogSource]:
    """Build the configured catalog source.

    Returns:
        A file source if CATALOG_PATH is set, else an HTTP source if
        CATALOG_URL is set, else None
    """
    config = get_config()

    if config.catalog_path is not None:
        return JsonFileCatalogSource(config.catalog_path)
    if config.catalog_url:
        return HttpCatalogSource(config.catalog_url, timeout=config.request_timeout)
    return None


async def get_session() -> CatalogSession:
    """Get or create the server's catalog session.

    Returns:
        Session with history restored and the catalog loaded (or its load
        error recorded)
    """
    global _session, _history_store

    if _session is None:
        config = get_config()

        try:
            _history_store = SqliteHistoryStore(config.history_db_path)
            await _history_store.initialize()
            store = _history_store
        except (OSError, aiosqlite.Error) as e:
            print(f"[Server] Search history will not persist: {e}", file=sys.stderr)
            _history_store = None
            store = MemoryHistoryStore()

        _session = CatalogSession(store, config)
        await _session.start()

        source = get_catalog_source()
        if source is None:
            _session.error = "No catalog configured. Set CATALOG_PATH or CATALOG_URL."
        else:
            await _session.load(source)

    return _session


def _text(payload: Any) -> List[TextContent]:
    if isinstance(payload, str):
        return [TextContent(type="text", text=payload)]
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


def _coerce_row_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and convert row edits coming from a tool call.

    Raises:
        ValueError: On unknown fields or unconvertible values
    """
    coerced = {}
    for name, value in fields.items():
        if name not in EDITABLE_ROW_FIELDS:
            raise ValueError(f"Unknown row field: {name}")

        if value is None or value == "":
            coerced[name] = "" if EDITABLE_ROW_FIELDS[name] is str else None
        else:
            coerced[name] = EDITABLE_ROW_FIELDS[name](value)

    return coerced


async def health_check_tool() -> List[TextContent]:
    session = await get_session()
    return _text({
        "catalog_entries": len(session.snapshot),
        "indexed_entries": len(session.index.entries),
        "history_persisted": _history_store is not None,
        "error": session.error,
    })


async def search_catalog_tool(
    query: str,
    category: Optional[str] = None,
    limit: int = DEFAULT_RESULT_LIMIT,
) -> List[TextContent]:
    """Tool handler for search_catalog.

    Args:
        query: Search query; empty returns the catalog in original order
        category: Optional category filter
        limit: Maximum number of results to include

    Returns:
        List of TextContent with the search view as JSON
    """
    session = await get_session()

    if session.error and not session.snapshot:
        return _text(f"Error: {session.error}")

    session.search(query, category)
    await session.query.flush()
    return _text(session.view().to_dict(limit=limit))


async def get_suggestions_tool(term: str) -> List[TextContent]:
    session = await get_session()
    return _text({"term": term, "suggestions": session.query.suggest(term)})


async def get_search_analytics_tool() -> List[TextContent]:
    session = await get_session()
    return _text({
        "analytics": [record.to_dict() for record in session.query.state.analytics],
        "history_error": session.query.persist_error,
    })


async def list_categories_tool() -> List[TextContent]:
    session = await get_session()
    return _text({"categories": session.categories()})


async def get_window_tool(
    scroll_offset: float = 0.0,
    viewport_size: Optional[float] = None,
    width: Optional[float] = None,
) -> List[TextContent]:
    """Tool handler for get_window: the visible slice of the current results."""
    session = await get_session()
    session.on_resize(viewport_size=viewport_size, width=width)
    session.on_scroll(scroll_offset)
    session.windower.run_frame()
    return _text(session.frame().to_dict())


async def toggle_entry_tool(entry_id: Any) -> List[TextContent]:
    session = await get_session()

    try:
        selected = session.toggle(entry_id)
    except (KeyError, ValueError) as e:
        return _text(f"Error: {e}")
    await session.query.flush()

    row = session.selection.bound_row(entry_id)
    return _text({
        "entry_id": entry_id,
        "selected": selected,
        "row": row.to_dict() if row else None,
        "selection": session.selection.selection,
    })


async def get_rows_tool() -> List[TextContent]:
    session = await get_session()
    return _text({
        "rows": [row.to_dict() for row in session.spreadsheet.rows],
        "stats": session.stats(),
    })


async def update_row_tool(row_id: str, fields: Dict[str, Any]) -> List[TextContent]:
    session = await get_session()

    try:
        changes = _coerce_row_fields(fields)
    except (TypeError, ValueError) as e:
        return _text(f"Error: {e}")

    row = session.update_row(row_id, **changes)
    if row is None:
        return _text(f"Error: row not found: {row_id}")

    return _text({"row": row.to_dict(), "selection": session.selection.selection})


async def get_valid_rows_tool(mode: str = ProductMode.NORMAL.value) -> List[TextContent]:
    session = await get_session()

    try:
        product_mode = ProductMode(mode)
    except ValueError:
        return _text(f"Error: unknown mode: {mode}")

    drafts = session.get_valid_rows(product_mode)
    return _text({"mode": product_mode.value, "products": [draft.to_dict() for draft in drafts]})


async def clear_session_tool() -> List[TextContent]:
    session = await get_session()
    session.clear_selection()
    session.clear_filters()
    return _text("Selection and spreadsheet cleared.")


TOOLS = [
    Tool(
        name="health_check",
        description="Report catalog and index sizes and any catalog load error.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="search_catalog",
        description="Rank catalog entries against a query, optionally filtered by category. Returns scored results, suggestions and search history.",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query"},
                "category": {"type": "string", "description": "Category to filter by ('all' for none)"},
                "limit": {"type": "integer", "description": "Maximum results to return", "default": DEFAULT_RESULT_LIMIT},
            },
            "required": ["query"],
        },
    ),
    Tool(
        name="get_suggestions",
        description="Suggest brands, product names, categories and past searches for a partial term.",
        inputSchema={
            "type": "object",
            "properties": {"term": {"type": "string", "description": "Partial search term"}},
            "required": ["term"],
        },
    ),
    Tool(
        name="get_search_analytics",
        description="List recent accepted searches with their result counts and whether they led to a selection.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="list_categories",
        description="List the distinct catalog categories.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="get_window",
        description="Return the visible slice of the current results for a scroll position, with absolute offsets.",
        inputSchema={
            "type": "object",
            "properties": {
                "scroll_offset": {"type": "number", "description": "Scroll position"},
                "viewport_size": {"type": "number", "description": "Viewport height"},
                "width": {"type": "number", "description": "Surface width, for grid layout"},
            },
        },
    ),
    Tool(
        name="toggle_entry",
        description="Select or deselect a catalog entry, staging it in the bulk-add spreadsheet.",
        inputSchema={
            "type": "object",
            "properties": {"entry_id": {"description": "Catalog entry id"}},
            "required": ["entry_id"],
        },
    ),
    Tool(
        name="get_rows",
        description="List the bulk-add spreadsheet rows with their validation state.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="update_row",
        description="Edit fields of a spreadsheet row (e.g. set a selling price).",
        inputSchema={
            "type": "object",
            "properties": {
                "row_id": {"type": "string", "description": "Row id"},
                "fields": {"type": "object", "description": "Field values to set"},
            },
            "required": ["row_id", "fields"],
        },
    ),
    Tool(
        name="get_valid_rows",
        description="Return the rows that pass validation as product drafts.",
        inputSchema={
            "type": "object",
            "properties": {
                "mode": {
                    "type": "string",
                    "enum": [mode.value for mode in ProductMode],
                    "description": "How rows become products",
                },
            },
        },
    ),
    Tool(
        name="clear_session",
        description="Clear the selection, the spreadsheet and the search filters.",
        inputSchema={"type": "object", "properties": {}},
    ),
]


def create_server() -> Server:
    """Create and configure the MCP server.

    Returns:
        Configured Server instance
    """
    server = Server("catalog-picker")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        arguments = arguments or {}

        if name == "health_check":
            return await health_check_tool()
        elif name == "search_catalog":
            return await search_catalog_tool(
                arguments.get("query", ""),
                arguments.get("category"),
                int(arguments.get("limit", DEFAULT_RESULT_LIMIT)),
            )
        elif name == "get_suggestions":
            return await get_suggestions_tool(arguments.get("term", ""))
        elif name == "get_search_analytics":
            return await get_search_analytics_tool()
        elif name == "list_categories":
            return await list_categories_tool()
        elif name == "get_window":
            return await get_window_tool(
                float(arguments.get("scroll_offset", 0.0)),
                arguments.get("viewport_size"),
                arguments.get("width"),
            )
        elif name == "toggle_entry":
            if "entry_id" not in arguments:
                return _text("Error: 'entry_id' parameter is required")
            return await toggle_entry_tool(arguments["entry_id"])
        elif name == "get_rows":
            return await get_rows_tool()
        elif name == "update_row":
            row_id = arguments.get("row_id")
            if not row_id:
                return _text("Error: 'row_id' parameter is required")
            return await update_row_tool(row_id, arguments.get("fields") or {})
        elif name == "get_valid_rows":
            return await get_valid_rows_tool(arguments.get("mode", ProductMode.NORMAL.value))
        elif name == "clear_session":
            return await clear_session_tool()
        else:
            raise ValueError(f"Unknown tool: {name}")

    return server


async def main():
    """Main entry point for the MCP server."""
    server = create_server()

    try:
        async with stdio_server() as (read_stream, write_stream):
            initialization_options = server.create_initialization_options()
            await server.run(read_stream, write_stream, initialization_options)
    finally:
        if _history_store is not None:
            await _history_store.close()
