"""Interactive terminal dashboard for per-core CPU temperatures.

Shows a bar chart of the current coretemp readings next to one history
chart per sensor. History points are N-second averages of the 1-second
samples. The chart grid follows the terminal size; Up/Down grow or shrink
the chart rows.

Usage:
    uv run thermdash
    uv run thermdash --avg 10 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import logging
import sys
import time
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any

import psutil

from thermdash.config import ConfigError, dump_default_config, load_config, validate_config
from thermdash.controller import (
    GROW,
    QUIT,
    SHRINK,
    TICK,
    DashboardController,
    Event,
    ViewModel,
    resize,
)
from thermdash.layout import BARS
from thermdash.sensors import (
    DiscoveryError,
    SensorReadError,
    SensorSet,
    Severity,
    discover_sensors,
)

__version__ = "1.0.0"
PROJECT_URL = "https://github.com/andmarios/i7tt"

logger = logging.getLogger("thermdash")

# ── Constants ──────────────────────────────────────────────────────────────

SPARK = " ▁▂▃▄▅▆▇█"
BAR_FILL = "█"
SAMPLE_INTERVAL = 1.0

_DEFAULT_LOG = Path.home() / ".cache" / "thermdash" / "thermdash.log"

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5
C_LINE = 6

SEVERITY_COLORS: dict[Severity, int] = {
    Severity.NOMINAL: C_NORMAL,
    Severity.WARNING: C_WARNING,
    Severity.CRITICAL: C_CRITICAL,
}


# ── Logging ────────────────────────────────────────────────────────────────


def setup_logging(path: Path | None, level: str = "INFO") -> logging.Logger:
    """Send the ``thermdash`` logger to a file.

    curses owns stderr while the dashboard runs, so there is no stream
    handler. If the file cannot be opened logging is silently disabled.
    """
    log = logging.getLogger("thermdash")
    log.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    log.propagate = False
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    if path is None:
        log.addHandler(logging.NullHandler())
        return log
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        log.addHandler(logging.NullHandler())
        return log
    fh.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    log.addHandler(fh)
    return log


# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_LINE, curses.COLOR_MAGENTA, -1)


# ── Plot helpers ───────────────────────────────────────────────────────────


def bar_cells(value: float, top: float, height: int) -> int:
    """Number of full cells a bar of *value* fills in a *height*-row chart."""
    if height <= 0 or top <= 0:
        return 0
    return max(0, min(height, int(round(value / top * height))))


def visible_points(window: Sequence[float], filled: int) -> list[float | None]:
    """Blank out the leading points that no average has been written to yet."""
    empty = max(0, len(window) - filled)
    return [None if i < empty else v for i, v in enumerate(window)]


def plot_range(values: Sequence[float | None]) -> tuple[float, float]:
    """Y-axis bounds for a history chart, ignoring points with no data."""
    data = [v for v in values if v is not None]
    if not data:
        return 0.0, 1.0
    lo, hi = min(data), max(data)
    if hi - lo < 1.0:
        lo, hi = lo - 0.5, hi + 0.5
    return lo, hi


def column_cells(value: float | None, lo: float, hi: float, height: int) -> list[str]:
    """Characters for one history column, top row first.

    The filled part is measured in eighths of a cell so partial rows use the
    block glyphs from ``SPARK``.
    """
    if height <= 0:
        return []
    if value is None or hi <= lo:
        return [" "] * height
    frac = min(max((value - lo) / (hi - lo), 0.0), 1.0)
    eighths = max(1, int(round(frac * height * 8)))
    full, part = divmod(eighths, 8)
    cells = [" "] * height
    for row in range(min(full, height)):
        cells[height - 1 - row] = BAR_FILL
    if part and full < height:
        cells[height - 1 - full] = SPARK[part]
    return cells


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_box(
    win: curses.window,
    y: int,
    x: int,
    h: int,
    w: int,
    title: str = "",
) -> curses.window | None:
    """Draw a bordered box and return the inner sub-window."""
    max_y, max_x = win.getmaxyx()
    h = min(h, max_y - y)
    w = min(w, max_x - x)
    if h < 3 or w < 4:
        return None
    try:
        sub = win.subwin(h, w, y, x)
        sub.box()
        if title:
            title = title[: max(0, w - 4)]
            sub.addstr(0, 2, title, curses.color_pair(C_TITLE) | curses.A_BOLD)
        return sub
    except curses.error:
        return None


# ── Panel renderers ────────────────────────────────────────────────────────


def draw_bar_panel(
    win: curses.window, y: int, x: int, w: int, h: int, view: ViewModel
) -> None:
    box = _draw_box(win, y, x, h, w, " CPU Temperatures (°C) ")
    if not box:
        return
    box_h, box_w = box.getmaxyx()
    inner_h = box_h - 2
    plot_h = inner_h - 2
    color = curses.color_pair(SEVERITY_COLORS[view.severity]) | curses.A_BOLD
    bw = view.geometry.bar_width

    for i, sensor in enumerate(view.sensors):
        bx = 2 + i * (bw + 1)
        if bx + bw > box_w - 1:
            break
        value = view.samples[i]
        filled = bar_cells(value, view.bar_max, plot_h)
        for row in range(filled):
            _safe(box, plot_h - row, bx, BAR_FILL * bw, color)
        _safe(box, inner_h - 1, bx, f"{value:^{bw}d}"[:bw], curses.color_pair(C_DIM) | curses.A_BOLD)
        _safe(box, inner_h, bx, f"{sensor.label:^{bw}s}"[:bw], curses.color_pair(C_LINE))


def draw_history_panel(
    win: curses.window,
    y: int,
    x: int,
    w: int,
    h: int,
    view: ViewModel,
    index: int,
) -> None:
    label = view.sensors[index].label
    box = _draw_box(win, y, x, h, w, f" {label}, {view.average_period} sec avg (°C) ")
    if not box:
        return
    box_h, box_w = box.getmaxyx()
    plot_h = box_h - 2
    axis_w = 6
    plot_w = box_w - 2 - axis_w
    if plot_h < 1 or plot_w < 1:
        return

    values = visible_points(view.windows[index], view.filled)[-plot_w:]
    lo, hi = plot_range(values)
    dim = curses.color_pair(C_DIM)
    _safe(box, 1, 1, f"{hi:5.1f}", dim)
    if plot_h > 1:
        _safe(box, plot_h, 1, f"{lo:5.1f}", dim)

    attr = curses.color_pair(C_LINE) | curses.A_BOLD
    for col, value in enumerate(values):
        for row, ch in enumerate(column_cells(value, lo, hi, plot_h)):
            if ch != " ":
                _safe(box, 1 + row, 1 + axis_w + col, ch, attr)


# ── Header ─────────────────────────────────────────────────────────────────


def _draw_header(win: curses.window, w: int, view: ViewModel) -> None:
    ts = time.strftime("%H:%M:%S")
    attr = curses.color_pair(C_TITLE) | curses.A_REVERSE
    _safe(win, 0, 0, " " * (w - 1), attr)
    _safe(win, 0, 1, "thermdash", attr | curses.A_BOLD)
    hint = f"CPU {view.cpu_load:4.1f}%  Up/Down: height  q: quit"
    _safe(win, 0, max(0, w - len(hint) - 2), hint, attr)
    _safe(win, 0, (w - len(ts)) // 2, ts, attr)


# ── Renderer ───────────────────────────────────────────────────────────────


class CursesRenderer:
    """Draws a ViewModel onto the curses screen."""

    def __init__(self, stdscr: curses.window) -> None:
        self.stdscr = stdscr

    def render(self, view: ViewModel) -> None:
        scr = self.stdscr
        max_y, max_x = scr.getmaxyx()
        scr.erase()

        if max_y < 5 or max_x < 20:
            _safe(scr, 0, 0, "Terminal too small"[: max_x - 1])
            scr.refresh()
            return

        _draw_header(scr, max_x, view)
        col_w = max_x // 2
        row_h = view.geometry.row_height
        for r, slots in enumerate(view.rows):
            y = 1 + r * row_h
            if y >= max_y:
                break
            for c, slot in enumerate(slots):
                x = c * col_w
                if slot == BARS:
                    draw_bar_panel(scr, y, x, col_w, row_h, view)
                else:
                    draw_history_panel(scr, y, x, col_w, row_h, view, int(slot))
        scr.refresh()


# ── Event source ───────────────────────────────────────────────────────────


def decode_key(stdscr: curses.window, key: int) -> Event | None:
    if key in (ord("q"), ord("Q")):
        return QUIT
    if key == curses.KEY_UP:
        return GROW
    if key == curses.KEY_DOWN:
        return SHRINK
    if key == curses.KEY_RESIZE:
        max_y, max_x = stdscr.getmaxyx()
        return resize(max_x, max_y)
    return None


def curses_events(
    stdscr: curses.window,
    interval: float = SAMPLE_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
) -> Iterator[Event]:
    """Merge the sampling timer and key presses into one event stream.

    ``getch`` blocks until a key arrives or the next tick is due, whichever
    comes first. A tick that is handled late pushes the following one back;
    missed ticks are not replayed.
    """
    deadline = clock() + interval
    while True:
        now = clock()
        remaining = deadline - now
        if remaining <= 0:
            deadline += interval
            if deadline <= now:
                deadline = now + interval
            yield TICK
            continue
        stdscr.timeout(max(1, int(remaining * 1000)))
        event = decode_key(stdscr, stdscr.getch())
        if event is not None:
            yield event


# ── Main loop ──────────────────────────────────────────────────────────────


def _dashboard_loop(
    stdscr: curses.window, sensors: SensorSet, config: dict[str, Any]
) -> None:
    _init_colors()
    curses.curs_set(0)
    stdscr.keypad(True)

    # Warm-up psutil internal deltas
    psutil.cpu_percent(interval=None)

    max_y, max_x = stdscr.getmaxyx()
    controller = DashboardController(
        sensors, config, CursesRenderer(stdscr), width=max_x, height=max_y
    )
    controller.run(curses_events(stdscr))


# ── CLI entry point ────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thermdash",
        description="Live per-core CPU temperature dashboard with rolling averages.",
    )
    parser.add_argument(
        "-a",
        "--avg",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Averaging period in seconds (default: 30)",
    )
    parser.add_argument(
        "--history",
        type=int,
        default=None,
        metavar="N",
        help="Averaged points kept per sensor (default: 500)",
    )
    parser.add_argument(
        "--min-height",
        type=int,
        default=None,
        metavar="ROWS",
        help="Minimum dashboard height in rows (default: 36)",
    )
    parser.add_argument(
        "--root",
        default=None,
        metavar="PATH",
        help="sysfs tree to scan for coretemp sensors",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=_DEFAULT_LOG,
        metavar="PATH",
        help=f"Log file (default: {_DEFAULT_LOG})",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    if args.version:
        print(f"thermdash {__version__}")
        print(PROJECT_URL)
        return
    if args.print_config:
        print(dump_default_config(), end="")
        return

    overrides = {
        "average_period": args.avg,
        "history_length": args.history,
        "min_height": args.min_height,
        "sensor_root": args.root,
    }
    try:
        config = load_config(args.config)
        config.update({k: v for k, v in overrides.items() if v is not None})
        validate_config(config)
    except ConfigError as e:
        print(f"thermdash: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    setup_logging(args.log_file, config["log_level"])
    logger.info(
        "starting: avg=%ds history=%d min_height=%d root=%s",
        config["average_period"],
        config["history_length"],
        config["min_height"],
        config["sensor_root"],
    )

    try:
        sensors = discover_sensors(config["sensor_root"])
    except DiscoveryError as e:
        logger.error("discovery failed: %s", e)
        print(f"thermdash: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    try:
        curses.wrapper(_dashboard_loop, sensors, config)
    except SensorReadError as e:
        logger.error("%s", e)
        print(f"thermdash: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        pass
    logger.info("stopped")


if __name__ == "__main__":
    main()
