"""Tests for windowing module."""
import asyncio

import pytest

from catalog_picker.config import WindowConfig
from catalog_picker.windowing import (
    VisibleRange,
    WindowState,
    Windower,
    compute_visible_range,
    grid_layout,
    position_items,
    scroll_target,
    total_extent,
)


class TestComputeVisibleRange:
    def test_formula(self):
        state = WindowState(scroll_offset=1000, viewport_size=500, item_size=100, overscan=2)
        assert compute_visible_range(100, state) == VisibleRange(8, 17)

    def test_clamped_at_start(self):
        state = WindowState(scroll_offset=0, viewport_size=500, item_size=100, overscan=5)
        assert compute_visible_range(100, state).start_index == 0

    def test_clamped_at_end(self):
        state = WindowState(scroll_offset=9800, viewport_size=500, item_size=100, overscan=2)
        assert compute_visible_range(100, state) == VisibleRange(96, 100)

    def test_offset_past_the_end_stays_in_bounds(self):
        state = WindowState(scroll_offset=100_000, viewport_size=500, item_size=100, overscan=2)
        visible = compute_visible_range(100, state)
        assert 0 <= visible.start_index <= visible.end_index <= 100

    def test_empty_list(self):
        assert compute_visible_range(0, WindowState()) == VisibleRange(0, 0)

    def test_covers_every_item_in_the_viewport(self):
        item_count = 57
        for overscan in (0, 3):
            for offset in range(0, 6000, 37):
                state = WindowState(scroll_offset=offset, viewport_size=430, item_size=100, overscan=overscan)
                visible = compute_visible_range(item_count, state)

                for i in range(item_count):
                    top, bottom = i * 100, (i + 1) * 100
                    if top < offset + 430 and bottom > offset:
                        assert i in visible, f"item {i} missing at offset {offset}"

    def test_continuous_scroll_leaves_no_gaps(self):
        item_count = 1000
        rendered = set()
        for offset in range(0, 1000 * 280, 800):
            state = WindowState(scroll_offset=offset, viewport_size=800, item_size=280, overscan=5)
            visible = compute_visible_range(item_count, state)
            assert 0 <= visible.start_index <= visible.end_index <= item_count
            rendered.update(range(visible.start_index, visible.end_index))

        assert rendered == set(range(item_count))

    def test_grid_rows(self):
        state = WindowState(scroll_offset=0, viewport_size=150, item_size=100, overscan=0, columns=3)
        assert compute_visible_range(10, state) == VisibleRange(0, 6)


class TestPositions:
    def test_absolute_offsets(self):
        items = list("abcdefghij")
        state = WindowState(item_size=50)
        positioned = position_items(items, VisibleRange(2, 5), state)

        assert [p.index for p in positioned] == [2, 3, 4]
        assert [p.offset for p in positioned] == [100, 150, 200]
        assert positioned[0].item == "c"

    def test_grid_columns(self):
        items = list(range(10))
        state = WindowState(item_size=100, columns=3)
        positioned = position_items(items, VisibleRange(3, 6), state)

        assert [(p.offset, p.column) for p in positioned] == [(100, 0), (100, 1), (100, 2)]

    def test_total_extent(self):
        assert total_extent(10, WindowState(item_size=100)) == 1000
        assert total_extent(10, WindowState(item_size=100, columns=3)) == 400
        assert total_extent(0, WindowState(item_size=100)) == 0


class TestGridLayout:
    @pytest.mark.parametrize("width,columns,item_size", [
        (500, 2, 310),
        (800, 3, 326),
        (1400, 5, 340),
        (300, 2, 240),
    ])
    def test_breakpoints(self, width, columns, item_size):
        layout = grid_layout(width)
        assert layout.columns == columns
        assert layout.item_size == item_size


class TestScrollTarget:
    def test_brings_index_to_top(self):
        state = WindowState(viewport_size=500, item_size=100)
        assert scroll_target(10, 100, state) == 1000

    def test_clamped_to_scrollable_span(self):
        state = WindowState(viewport_size=500, item_size=100)
        assert scroll_target(99, 100, state) == 9500
        assert scroll_target(-5, 100, state) == 0

    def test_empty_list(self):
        assert scroll_target(3, 0, WindowState()) == 0


@pytest.fixture
def requests():
    return []


@pytest.fixture
def windower(requests):
    w = Windower(
        WindowConfig(item_size=100, viewport_size=500, overscan=2, frame_interval=0.01),
        request_scroll=requests.append,
    )
    w.set_items(list(range(100)))
    return w


@pytest.mark.asyncio
class TestWindower:
    async def test_scroll_events_coalesced_per_frame(self, windower):
        before = windower.recompute_count
        windower.on_scroll(100)
        windower.on_scroll(500)
        windower.on_scroll(1000)

        assert windower.recompute_count == before
        await asyncio.sleep(0.05)

        assert windower.recompute_count == before + 1
        assert windower.state.scroll_offset == 1000
        assert windower.range == VisibleRange(8, 17)

    async def test_run_frame_commits_immediately(self, windower):
        windower.on_scroll(1000)
        windower.run_frame()
        assert windower.state.scroll_offset == 1000

        count = windower.recompute_count
        await asyncio.sleep(0.05)
        assert windower.recompute_count == count

    async def test_resize_recomputes_at_once(self, windower):
        before = windower.recompute_count
        windower.on_resize(viewport_size=1000)

        assert windower.recompute_count == before + 1
        assert windower.range == VisibleRange(0, 12)

    async def test_surface_width_sets_grid(self, windower):
        layout = windower.on_surface_width(800)
        assert windower.state.columns == layout.columns == 3
        assert windower.state.item_size == layout.item_size

    async def test_scroll_to_index_only_requests(self, windower, requests):
        target = windower.scroll_to_index(20)

        assert target == 2000
        assert requests == [2000]
        assert windower.state.scroll_offset == 0

    async def test_scroll_to_top_only_requests(self, windower, requests):
        windower.on_scroll(3000)
        windower.run_frame()
        windower.scroll_to_top()

        assert requests == [0.0]
        assert windower.state.scroll_offset == 3000

    async def test_visible_items(self, windower):
        items = windower.visible_items()
        assert [p.index for p in items] == list(range(0, 7))
        assert items[3].offset == 300

    async def test_on_change_callback(self):
        ranges = []
        w = Windower(WindowConfig(item_size=100, viewport_size=500, overscan=0), on_change=ranges.append)
        w.set_items(list(range(20)))
        assert ranges == [VisibleRange(0, 5)]
