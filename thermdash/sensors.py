"""Coretemp sensor discovery, sampling and severity classification.

Sensors are found once at startup by walking the sysfs platform tree for
``coretemp`` hwmon files. After that the set is frozen: every sampling tick
reads the same ``temp<N>_input`` files in the same order.
"""

from __future__ import annotations

import enum
import logging
import os
import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, replace

logger = logging.getLogger("thermdash")

DEFAULT_SENSOR_ROOT = "/sys/devices/platform"

# Degrees below max at which a reading turns the bar chart yellow.
WARNING_MARGIN = 25

_FALLBACK_LIMIT = 100

_SENSOR_FILE = re.compile(r"coretemp.*temp([0-9]+)_(input|label|crit|max)$")

SampleSet = tuple[int, ...]


# ── Errors ─────────────────────────────────────────────────────────────────


class DiscoveryError(RuntimeError):
    """No usable sensors were found (or their metadata could not be read)."""


class SensorReadError(RuntimeError):
    """A live reading failed mid-run."""

    def __init__(self, index: int, reason: str = "") -> None:
        self.index = index
        msg = f"failed to read sensor #{index}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Sensor:
    index: int
    label: str
    critical_c: int
    max_c: int
    input_path: str = ""


class SensorSet(Sequence[Sensor]):
    """Immutable, ordered collection of discovered sensors."""

    def __init__(self, sensors: Sequence[Sensor]) -> None:
        if not sensors:
            raise DiscoveryError("no coretemp sensors found")
        self._sensors = tuple(replace(s, index=i) for i, s in enumerate(sensors))

    def __len__(self) -> int:
        return len(self._sensors)

    def __getitem__(self, index):  # type: ignore[override]
        return self._sensors[index]

    def __iter__(self) -> Iterator[Sensor]:
        return iter(self._sensors)

    @property
    def labels(self) -> list[str]:
        return [s.label for s in self._sensors]

    def __repr__(self) -> str:
        return f"SensorSet({', '.join(self.labels)})"


class Severity(enum.Enum):
    NOMINAL = "nominal"
    WARNING = "warning"
    CRITICAL = "critical"


# ── Discovery ──────────────────────────────────────────────────────────────


def _read_strip(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read().strip()


def millidegrees_to_celsius(value: int) -> int:
    """Scale millidegrees to whole degrees, truncating toward zero."""
    if value < 0:
        return -(-value // 1000)
    return value // 1000


def _find_sensor_files(root: str) -> dict[tuple[str, int], dict[str, str]]:
    """Map (hwmon dir, temp number) -> {"input": path, "label": path, ...}.

    Keyed by directory as well as number: every CPU package has its own
    coretemp chip and each one numbers its inputs from temp1.
    """
    found: dict[tuple[str, int], dict[str, str]] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            path = os.path.join(dirpath, name)
            m = _SENSOR_FILE.search(os.path.relpath(path, root))
            if m is None:
                continue
            found.setdefault((dirpath, int(m.group(1))), {}).setdefault(m.group(2), path)
    return found


def _read_limit(files: dict[str, str], kind: str) -> int | None:
    path = files.get(kind)
    if path is None:
        return None
    try:
        return millidegrees_to_celsius(int(_read_strip(path)))
    except (OSError, ValueError) as e:
        raise DiscoveryError(f"cannot read {path}: {e}") from e


def discover_sensors(root: str = DEFAULT_SENSOR_ROOT) -> SensorSet:
    """Find coretemp inputs under *root* and load their static metadata.

    Sensors are ordered by chip directory, then by temp number. Label, crit
    and max are read exactly once here; only ``input_path`` is read again on
    every tick.

    Raises:
        DiscoveryError: If no input file exists or static metadata is unreadable.
    """
    sensors: list[Sensor] = []
    for (_, number), files in sorted(_find_sensor_files(root).items()):
        input_path = files.get("input")
        if input_path is None:
            continue

        label = f"temp{number}"
        if "label" in files:
            try:
                label = _read_strip(files["label"]) or label
            except OSError as e:
                raise DiscoveryError(f"cannot read {files['label']}: {e}") from e

        crit = _read_limit(files, "crit")
        high = _read_limit(files, "max")
        if crit is None and high is None:
            logger.warning(
                "%s has no crit/max limits, assuming %d °C", label, _FALLBACK_LIMIT
            )
            crit = high = _FALLBACK_LIMIT
        elif crit is None:
            crit = high
        elif high is None:
            high = crit

        sensors.append(Sensor(
            index=len(sensors),
            label=label,
            critical_c=int(crit),  # type: ignore[arg-type]
            max_c=int(high),  # type: ignore[arg-type]
            input_path=input_path,
        ))

    sensor_set = SensorSet(sensors)
    for s in sensor_set:
        logger.info(
            "sensor #%d %s crit=%d max=%d (%s)",
            s.index, s.label, s.critical_c, s.max_c, s.input_path,
        )
    return sensor_set


# ── Sampling ───────────────────────────────────────────────────────────────


def _read_millidegrees(sensor: Sensor) -> int:
    return int(_read_strip(sensor.input_path))


def read_all(
    sensors: SensorSet,
    read_raw: Callable[[Sensor], int] = _read_millidegrees,
) -> SampleSet:
    """Read one whole-degree value per sensor, in sensor order.

    A single failed read aborts the tick: nothing is returned for the
    sensors that did succeed.
    """
    values: list[int] = []
    for sensor in sensors:
        try:
            raw = read_raw(sensor)
        except (OSError, ValueError) as e:
            raise SensorReadError(sensor.index, str(e)) from e
        values.append(millidegrees_to_celsius(raw))
    return tuple(values)


def classify_severity(sensors: SensorSet, samples: Sequence[int]) -> Severity:
    """Worst state over the current samples: at/over max, or within 25 °C of it."""
    warning = False
    for sensor, value in zip(sensors, samples):
        if value >= sensor.max_c:
            return Severity.CRITICAL
        if value >= sensor.max_c - WARNING_MARGIN:
            warning = True
    return Severity.WARNING if warning else Severity.NOMINAL
