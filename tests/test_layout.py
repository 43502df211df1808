"""Tests for thermdash.layout geometry."""

from __future__ import annotations

import pytest

from thermdash.layout import (
    BARS,
    HEADER_LINES,
    MIN_ROW_HEIGHT,
    Geometry,
    arrange_rows,
    bar_width,
    compute_geometry,
    history_window_offset,
    row_count,
    row_height,
)

# ── Grid arrangement ───────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("count", "expected"),
    [
        (1, [(BARS, 0)]),
        (2, [(BARS, 0), (1,)]),
        (4, [(BARS, 0), (1, 2), (3,)]),
        (5, [(BARS, 0), (1, 2), (3, 4)]),
    ],
)
def test_arrange_rows(count: int, expected: list[tuple[str | int, ...]]) -> None:
    rows = arrange_rows(count)
    assert rows == expected
    assert len(rows) == row_count(count)


def test_every_sensor_placed_once() -> None:
    for count in range(1, 17):
        slots = [s for row in arrange_rows(count) for s in row if s != BARS]
        assert slots == list(range(count))


# ── Row height ─────────────────────────────────────────────────────────────


class TestRowHeight:
    def test_divides_available_height(self) -> None:
        assert row_height(40, 5, 36) == 13

    def test_min_rows_applies(self) -> None:
        assert row_height(10, 5, 36) == 12

    def test_floor_on_tiny_terminal(self) -> None:
        for count in range(1, 20):
            assert row_height(1, count, 1) >= MIN_ROW_HEIGHT

    def test_monotonic_in_height(self) -> None:
        for count in (1, 4, 7):
            heights = [row_height(h, count, 1) for h in range(1, 200)]
            assert heights == sorted(heights)


# ── Bar width ──────────────────────────────────────────────────────────────


class TestBarWidth:
    def test_fills_half_width(self) -> None:
        assert bar_width(120, 5) == 10

    def test_narrow_terminal_clamped(self) -> None:
        assert bar_width(10, 8) == 1

    def test_always_positive(self) -> None:
        for count in range(1, 33):
            for width in range(0, 300, 7):
                assert bar_width(width, count) >= 1


# ── History window offset ──────────────────────────────────────────────────


class TestHistoryWindowOffset:
    def test_bounds(self) -> None:
        for length in (1, 2, 200, 500):
            for width in range(0, 1200, 3):
                offset = history_window_offset(width, length)
                assert 0 <= offset < length

    def test_non_decreasing_as_width_shrinks(self) -> None:
        offsets = [history_window_offset(w, 500) for w in range(1200, -1, -1)]
        assert offsets == sorted(offsets)

    def test_wide_terminal_shows_everything(self) -> None:
        assert history_window_offset(2000, 500) == 0

    def test_resize_120_to_40(self) -> None:
        wide = history_window_offset(120, 500)
        narrow = history_window_offset(40, 500)
        assert wide == 500 - 102
        assert narrow == 500 - 22
        assert narrow > wide


# ── compute_geometry ───────────────────────────────────────────────────────


class TestComputeGeometry:
    def test_values(self) -> None:
        g = compute_geometry(120, 40, 5, 36, 500)
        assert g == Geometry(rows=3, row_height=13, bar_width=10, history_offset=398)

    def test_idempotent(self) -> None:
        args = (97, 33, 7, 36, 200)
        assert compute_geometry(*args) == compute_geometry(*args)

    def test_positive_for_any_size(self) -> None:
        for count in (1, 2, 3, 8, 16):
            for width, height in ((1, 1), (20, 5), (80, 24), (300, 100)):
                g = compute_geometry(width, height, count, 1, 500)
                assert g.row_height >= 1
                assert g.bar_width >= 1

    def test_grid_fits_below_header(self) -> None:
        for count in (1, 2, 5, 8, 16):
            rows = row_count(count)
            for height in range(MIN_ROW_HEIGHT * rows + HEADER_LINES, 120):
                g = compute_geometry(120, height, count, 1, 500)
                assert HEADER_LINES + g.rows * g.row_height <= height

    def test_odd_height_five_sensors(self) -> None:
        g = compute_geometry(120, 39, 5, 1, 500)
        assert g.row_height == 12
        assert HEADER_LINES + g.rows * g.row_height == 37
