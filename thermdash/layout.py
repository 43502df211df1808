"""Geometry for the chart grid.

Everything here is a pure function of the terminal size, the sensor count
and the configured height bound, so it can be recomputed on every resize.

Grid: the first row holds the summary bar chart and sensor 0's history,
the remaining sensors follow two per row, and an odd last sensor gets a row
of its own.
"""

from __future__ import annotations

from dataclasses import dataclass

BARS = "bars"

# Border plus at least two plot rows per chart.
MIN_ROW_HEIGHT = 4

# Status line drawn above the grid.
HEADER_LINES = 1

# Columns a history chart loses to borders and the y-axis labels.
_HISTORY_CHROME = 18


@dataclass(frozen=True)
class Geometry:
    rows: int
    row_height: int
    bar_width: int
    history_offset: int


def row_count(sensor_count: int) -> int:
    return (sensor_count + 2) // 2


def arrange_rows(sensor_count: int) -> list[tuple[str | int, ...]]:
    """Slots per grid row: ``"bars"`` for the bar chart, ints for sensors."""
    rows: list[tuple[str | int, ...]] = [(BARS, 0)]
    for i in range(1, sensor_count, 2):
        if sensor_count - i > 1:
            rows.append((i, i + 1))
        else:
            rows.append((i,))
    return rows


def row_height(term_height: int, sensor_count: int, min_rows: int) -> int:
    rows = row_count(sensor_count)
    height = max(term_height, min_rows)
    if height < MIN_ROW_HEIGHT * rows:
        height = MIN_ROW_HEIGHT * rows
    return height // rows


def bar_width(term_width: int, sensor_count: int) -> int:
    width = ((term_width // 2) - 3 - sensor_count) // sensor_count
    return max(1, width)


def history_window_offset(term_width: int, history_length: int) -> int:
    """Index of the oldest history point that fits in a chart this wide."""
    visible = (term_width // 2) * 2 - _HISTORY_CHROME
    visible = max(1, min(visible, history_length))
    return history_length - visible


def compute_geometry(
    term_width: int,
    term_height: int,
    sensor_count: int,
    min_rows: int,
    history_length: int,
) -> Geometry:
    return Geometry(
        rows=row_count(sensor_count),
        row_height=row_height(term_height - HEADER_LINES, sensor_count, min_rows),
        bar_width=bar_width(term_width, sensor_count),
        history_offset=history_window_offset(term_width, history_length),
    )
