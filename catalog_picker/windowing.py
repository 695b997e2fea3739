"""Windowing engine: the visible slice of a long ordered list."""
import asyncio
import math
from dataclasses import dataclass, replace
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from catalog_picker.config import WindowConfig

T = TypeVar("T")

# Responsive grid breakpoints: (max surface width, columns)
GRID_BREAKPOINTS = ((640, 2), (1024, 3))
WIDE_GRID_COLUMNS = 5
GRID_GUTTER = 20  # Horizontal padding per column
MIN_CELL_WIDTH = 160
CELL_TEXT_HEIGHT = 80  # Space under the image square


@dataclass(frozen=True)
class WindowState:
    """Scroll geometry of the surface. Sizes share one unit (e.g. pixels)."""
    scroll_offset: float = 0.0
    viewport_size: float = 800.0
    item_size: float = 280.0
    overscan: int = 5
    columns: int = 1


@dataclass(frozen=True)
class VisibleRange:
    """Half-open item index range ``[start_index, end_index)``."""
    start_index: int
    end_index: int

    def __len__(self) -> int:
        return max(0, self.end_index - self.start_index)

    def __contains__(self, index: int) -> bool:
        return self.start_index <= index < self.end_index


@dataclass(frozen=True)
class PositionedItem(Generic[T]):
    """An item plus the absolute position the surface should draw it at."""
    index: int
    item: T
    offset: float  # Along the scroll axis
    column: int = 0

    def to_dict(self) -> dict:
        item = self.item
        if hasattr(item, "to_dict"):
            item = item.to_dict()
        elif hasattr(item, "entry"):
            item = item.entry.to_dict()
        return {"index": self.index, "offset": self.offset, "column": self.column, "item": item}


@dataclass(frozen=True)
class GridLayout:
    columns: int
    cell_width: int
    item_size: int


def grid_layout(surface_width: float) -> GridLayout:
    """Pick column count and cell size for a surface width.

    Args:
        surface_width: Available width of the rendering surface

    Returns:
        Layout with square image cells plus a text strip
    """
    columns = WIDE_GRID_COLUMNS
    for max_width, breakpoint_columns in GRID_BREAKPOINTS:
        if surface_width < max_width:
            columns = breakpoint_columns
            break

    cell_width = max(int((surface_width - GRID_GUTTER * columns) // columns), MIN_CELL_WIDTH)
    return GridLayout(columns=columns, cell_width=cell_width, item_size=cell_width + CELL_TEXT_HEIGHT)


def row_count(item_count: int, columns: int = 1) -> int:
    return math.ceil(item_count / max(columns, 1)) if item_count > 0 else 0


def total_extent(item_count: int, state: WindowState) -> float:
    """Length of the whole list along the scroll axis."""
    return row_count(item_count, state.columns) * state.item_size


def compute_visible_range(item_count: int, state: WindowState) -> VisibleRange:
    """Compute which items to render for a scroll position.

    Rows are ``start = max(0, floor(offset / size) - overscan)`` through
    ``end = min(rows, ceil((offset + viewport) / size) + overscan)``, then
    widened to item indices. The result always lies within
    ``[0, item_count)``.

    Args:
        item_count: Number of items in the list
        state: Current window geometry

    Returns:
        Visible item range
    """
    if item_count <= 0 or state.item_size <= 0:
        return VisibleRange(0, 0)

    columns = max(state.columns, 1)
    rows = row_count(item_count, columns)
    offset = max(state.scroll_offset, 0.0)

    start_row = max(0, math.floor(offset / state.item_size) - state.overscan)
    end_row = min(rows, math.ceil((offset + state.viewport_size) / state.item_size) + state.overscan)
    start_row = min(start_row, end_row)

    return VisibleRange(
        start_index=min(start_row * columns, item_count),
        end_index=min(end_row * columns, item_count),
    )


def position_items(items: Sequence[T], visible: VisibleRange, state: WindowState) -> List[PositionedItem[T]]:
    """Attach absolute positions to the items inside a visible range."""
    columns = max(state.columns, 1)
    positioned = []

    for index in range(visible.start_index, min(visible.end_index, len(items))):
        row, column = divmod(index, columns)
        positioned.append(PositionedItem(
            index=index,
            item=items[index],
            offset=row * state.item_size,
            column=column,
        ))

    return positioned


def scroll_target(index: int, item_count: int, state: WindowState) -> float:
    """Offset that brings ``index`` to the top, clamped to the scrollable span."""
    if item_count <= 0:
        return 0.0

    index = min(max(index, 0), item_count - 1)
    row = index // max(state.columns, 1)
    max_offset = max(0.0, total_extent(item_count, state) - state.viewport_size)
    return min(row * state.item_size, max_offset)


class Windower(Generic[T]):
    """Owns WindowState for one list surface.

    Scroll events are coalesced: the latest offset is committed at most
    once per frame. Resizes and list changes recompute immediately.
    ``scroll_to_*`` only ask the surface to scroll; the scroll event it
    fires back is what moves ``scroll_offset``.
    """

    def __init__(
        self,
        config: Optional[WindowConfig] = None,
        request_scroll: Optional[Callable[[float], None]] = None,
        on_change: Optional[Callable[[VisibleRange], None]] = None,
    ):
        config = config or WindowConfig()
        self.state = WindowState(
            viewport_size=config.viewport_size,
            item_size=config.item_size,
            overscan=config.overscan,
            columns=max(config.columns, 1),
        )
        self.frame_interval = config.frame_interval
        self._items: Sequence[T] = []
        self._request_scroll = request_scroll
        self._on_change = on_change
        self._pending_offset: Optional[float] = None
        self._frame_handle: Optional[asyncio.TimerHandle] = None
        self.range = VisibleRange(0, 0)
        self.recompute_count = 0

    @property
    def items(self) -> Sequence[T]:
        return self._items

    @property
    def total_extent(self) -> float:
        return total_extent(len(self._items), self.state)

    def set_items(self, items: Sequence[T]) -> None:
        """Replace the list being windowed (e.g. after a rerank)."""
        self._items = items
        self._recompute()

    def visible_items(self) -> List[PositionedItem[T]]:
        return position_items(self._items, self.range, self.state)

    def _recompute(self) -> None:
        self.range = compute_visible_range(len(self._items), self.state)
        self.recompute_count += 1
        if self._on_change:
            self._on_change(self.range)

    # ------------------------------------------------------------------
    # Surface events
    # ------------------------------------------------------------------

    def on_scroll(self, offset: float) -> None:
        """Record a scroll event; the recompute runs on the next frame.

        Must be called from a running event loop.
        """
        self._pending_offset = offset
        if self._frame_handle is None:
            loop = asyncio.get_running_loop()
            self._frame_handle = loop.call_later(self.frame_interval, self.run_frame)

    def run_frame(self) -> None:
        """Commit the latest pending scroll offset, if any."""
        if self._frame_handle is not None:
            self._frame_handle.cancel()
            self._frame_handle = None

        if self._pending_offset is None:
            return

        offset = self._pending_offset
        self._pending_offset = None
        self.state = replace(self.state, scroll_offset=offset)
        self._recompute()

    def on_resize(
        self,
        viewport_size: Optional[float] = None,
        item_size: Optional[float] = None,
        columns: Optional[int] = None,
    ) -> None:
        """Apply new surface geometry and recompute at once."""
        changes = {}
        if viewport_size is not None:
            changes["viewport_size"] = viewport_size
        if item_size is not None:
            changes["item_size"] = item_size
        if columns is not None:
            changes["columns"] = max(columns, 1)

        self.state = replace(self.state, **changes)
        self._recompute()

    def on_surface_width(self, width: float) -> GridLayout:
        """Re-layout a grid surface for a new width."""
        layout = grid_layout(width)
        self.on_resize(item_size=layout.item_size, columns=layout.columns)
        return layout

    # ------------------------------------------------------------------
    # Scroll requests
    # ------------------------------------------------------------------

    def scroll_to_index(self, index: int) -> float:
        """Ask the surface to bring an item to the top.

        Returns:
            The requested offset
        """
        target = scroll_target(index, len(self._items), self.state)
        if self._request_scroll:
            self._request_scroll(target)
        return target

    def scroll_to_top(self) -> float:
        if self._request_scroll:
            self._request_scroll(0.0)
        return 0.0
