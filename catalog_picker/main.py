"""Main entry point for the catalog-picker MCP server."""
import asyncio

from catalog_picker.server import main


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
