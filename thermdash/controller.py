"""Event loop state machine driving sampling, averaging and layout.

The controller owns all mutable dashboard state. Events come in one at a
time from an event source (curses in production, a list in tests). A tick
that completes an averaging period also runs the averaging step before
``handle`` returns, so no tick ever sees an unflushed period.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

import psutil

from thermdash.aggregation import AggregationEngine
from thermdash.layout import Geometry, arrange_rows, compute_geometry
from thermdash.sensors import SampleSet, Sensor, SensorSet, Severity, classify_severity, read_all

logger = logging.getLogger("thermdash")


# ── Events ─────────────────────────────────────────────────────────────────


class EventKind(enum.Enum):
    TICK = "tick"
    AVERAGE = "average"
    RESIZE = "resize"
    GROW = "grow"
    SHRINK = "shrink"
    QUIT = "quit"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    width: int = 0
    height: int = 0


TICK = Event(EventKind.TICK)
AVERAGE = Event(EventKind.AVERAGE)
GROW = Event(EventKind.GROW)
SHRINK = Event(EventKind.SHRINK)
QUIT = Event(EventKind.QUIT)


def resize(width: int, height: int) -> Event:
    return Event(EventKind.RESIZE, width, height)


class Status(enum.Enum):
    RUNNING = "running"
    TERMINATING = "terminating"


# ── State and view model ───────────────────────────────────────────────────


@dataclass(frozen=True)
class ViewModel:
    """Everything a renderer needs for one frame."""

    sensors: SensorSet
    samples: SampleSet
    severity: Severity
    windows: list[list[float]]
    geometry: Geometry
    rows: list[tuple[str | int, ...]]
    average_period: int
    bar_max: int
    cpu_load: float
    height: int
    filled: int = 0


class Renderer(Protocol):
    def render(self, view: ViewModel) -> None: ...


@dataclass
class DashboardState:
    sensors: SensorSet
    engine: AggregationEngine
    geometry: Geometry
    width: int
    height: int
    samples: SampleSet = ()
    severity: Severity = Severity.NOMINAL
    cpu_load: float = 0.0
    status: Status = Status.RUNNING
    windows: list[list[float]] = field(default_factory=lambda: list[list[float]]())


def read_cpu_load() -> float:
    """Overall CPU utilisation since the previous call, in percent."""
    return float(psutil.cpu_percent(interval=None))


# ── Controller ─────────────────────────────────────────────────────────────


class DashboardController:
    """Single-threaded driver for one dashboard run."""

    def __init__(
        self,
        sensors: SensorSet,
        config: dict[str, Any],
        renderer: Renderer,
        *,
        width: int,
        height: int,
        reader: Callable[[SensorSet], SampleSet] = read_all,
        load_reader: Callable[[], float] = read_cpu_load,
    ) -> None:
        self.config = config
        self.renderer = renderer
        self.reader = reader
        self.load_reader = load_reader
        self.min_height = int(config["min_height"])
        self.history_length = int(config["history_length"])
        self.rows = arrange_rows(len(sensors))

        engine = AggregationEngine(
            len(sensors), int(config["average_period"]), self.history_length
        )
        self.state = DashboardState(
            sensors=sensors,
            engine=engine,
            geometry=self._geometry(width, height, len(sensors)),
            width=width,
            height=height,
            samples=(0,) * len(sensors),
        )
        # Set by a tick that closes an averaging period, cleared by handle()
        self._average_due = False
        self._reslice()

    # ── Helpers ────────────────────────────────────────────────────────

    def _geometry(self, width: int, height: int, count: int) -> Geometry:
        return compute_geometry(width, height, count, self.min_height, self.history_length)

    def _reslice(self) -> None:
        st = self.state
        offset = st.geometry.history_offset
        st.windows = [st.engine.window(i, offset) for i in range(len(st.sensors))]

    def _relayout(self) -> None:
        st = self.state
        geometry = self._geometry(st.width, st.height, len(st.sensors))
        if geometry != st.geometry:
            logger.debug("geometry %dx%d -> %s", st.width, st.height, geometry)
        st.geometry = geometry
        self._reslice()

    def view(self) -> ViewModel:
        st = self.state
        first: Sensor = st.sensors[0]
        return ViewModel(
            sensors=st.sensors,
            samples=st.samples,
            severity=st.severity,
            windows=st.windows,
            geometry=st.geometry,
            rows=self.rows,
            average_period=st.engine.average_period,
            bar_max=first.critical_c - 10,
            cpu_load=st.cpu_load,
            height=st.height,
            filled=st.engine.filled,
        )

    def render(self) -> None:
        self.renderer.render(self.view())

    # ── Event handlers ─────────────────────────────────────────────────

    def _on_tick(self) -> None:
        st = self.state
        samples = self.reader(st.sensors)
        st.samples = samples
        st.severity = classify_severity(st.sensors, samples)
        st.cpu_load = self.load_reader()
        self._average_due = st.engine.accumulate(samples)
        self.render()

    def _on_average(self) -> None:
        points = self.state.engine.flush()
        logger.debug("averages %s", ", ".join(f"{p:.1f}" for p in points))
        self._reslice()
        self.render()

    def _on_resize(self, width: int, height: int) -> None:
        self.state.width = width
        self.state.height = height
        self._relayout()
        self.render()

    def _on_grow(self) -> None:
        st = self.state
        st.height = max(st.height, self.min_height) + st.geometry.rows
        self._relayout()
        self.render()

    def _on_shrink(self) -> None:
        st = self.state
        st.height = max(self.min_height, st.height - st.geometry.rows)
        self._relayout()
        self.render()

    def handle(self, event: Event) -> None:
        """Apply one event. Events after quit are ignored."""
        if self.state.status is Status.TERMINATING:
            return
        kind = event.kind
        if kind is EventKind.TICK:
            self._on_tick()
            if self._average_due:
                self._average_due = False
                self._on_average()
        elif kind is EventKind.AVERAGE:
            self._on_average()
        elif kind is EventKind.RESIZE:
            self._on_resize(event.width, event.height)
        elif kind is EventKind.GROW:
            self._on_grow()
        elif kind is EventKind.SHRINK:
            self._on_shrink()
        elif kind is EventKind.QUIT:
            logger.info("quit requested")
            self.state.status = Status.TERMINATING

    def run(self, events: Iterable[Event]) -> None:
        """Consume events until quit (or until the source runs dry)."""
        self.render()
        for event in events:
            self.handle(event)
            if self.state.status is Status.TERMINATING:
                return
