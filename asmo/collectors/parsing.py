"""Parsers for procfs/sysfs text and the privileged batch response.

Every parser degrades to zero on malformed input; a bad field never aborts
a tick.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, NamedTuple

from asmo.models.stats import BatteryStatus, CounterSnapshot

# Section markers and sentinel echoed by the batched command.
NET_BEGIN = "NET_DATA"
NET_END = "NET_END"
DISPLAY_BEGIN = "DISPLAY_DATA"
DISPLAY_END = "DISPLAY_END"
END_OF_BATCH = "END_OF_BATCH"

LOOPBACK_INTERFACE = "lo"

_CPU_STAT_FIELDS = 8
_IDLE_FIELDS = (3, 4)  # idle, iowait
_NET_RX_FIELD = 0
_NET_TX_FIELD = 8


# ── scalar helpers ──────────────────────────────────────


def parse_number(text: str) -> float:
    """Parse the first whitespace-delimited token as a float, else ``0.0``."""
    token = text.split(maxsplit=1)[0] if text.strip() else ""
    try:
        value = float(token)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def parse_int(text: str) -> int:
    token = text.split(maxsplit=1)[0] if text.strip() else ""
    try:
        return int(token)
    except ValueError:
        return 0


def saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


# ── CPU counters ────────────────────────────────────────


def parse_cpu_stat(rest: str) -> CounterSnapshot:
    """Turn the numeric part of a ``/proc/stat`` cpu line into (total, idle)."""
    total = 0
    idle = 0
    for i, token in enumerate(rest.split()[:_CPU_STAT_FIELDS]):
        if not token.isdigit():
            continue
        value = int(token)
        total += value
        if i in _IDLE_FIELDS:
            idle += value
    return CounterSnapshot(total=total, idle=idle)


def compute_usage(previous: CounterSnapshot, current: CounterSnapshot) -> float | None:
    """Busy percentage between two counter readings.

    Returns ``None`` when no ticks elapsed. Counters that appear to go
    backwards contribute a zero delta, so the result stays within [0, 100].
    """
    delta_total = saturating_sub(current.total, previous.total)
    if delta_total == 0:
        return None
    delta_idle = saturating_sub(current.idle, previous.idle)
    busy = saturating_sub(delta_total, delta_idle)
    return busy / delta_total * 100.0


def core_index(tag: str) -> int | None:
    """``cpu3`` -> 3; the aggregate ``cpu`` line and anything else -> None."""
    suffix = tag[3:]
    if not tag.startswith("cpu") or not suffix.isdigit():
        return None
    return int(suffix)


# ── network ─────────────────────────────────────────────


def parse_net_dev_line(line: str) -> tuple[int, int] | None:
    """Return (rx_bytes, tx_bytes) for a ``/proc/net/dev`` interface line.

    Header lines, malformed lines and the loopback interface yield ``None``.
    """
    iface, sep, rest = line.partition(":")
    if not sep or iface.strip() == LOOPBACK_INTERFACE:
        return None
    fields = rest.split()
    if len(fields) <= _NET_TX_FIELD + 1:
        return None
    return parse_int(fields[_NET_RX_FIELD]), parse_int(fields[_NET_TX_FIELD])


# ── memory / gpu files ──────────────────────────────────


class MemoryReading(NamedTuple):
    total_mb: float = 0.0
    available_mb: float = 0.0
    swap_total_mb: float = 0.0
    swap_free_mb: float = 0.0

    @property
    def used_mb(self) -> float:
        return max(self.total_mb - self.available_mb, 0.0)

    @property
    def swap_used_mb(self) -> float:
        return max(self.swap_total_mb - self.swap_free_mb, 0.0)


_MEMINFO_KEYS = {
    "MemTotal:": "total_mb",
    "MemAvailable:": "available_mb",
    "SwapTotal:": "swap_total_mb",
    "SwapFree:": "swap_free_mb",
}


def parse_meminfo(text: str) -> MemoryReading:
    values: dict[str, float] = {}
    for line in text.splitlines():
        key, _, rest = line.partition(" ")
        attr = _MEMINFO_KEYS.get(key)
        if attr is not None:
            values[attr] = parse_number(rest) / 1024.0  # kB -> MiB
    return MemoryReading(**values)


def parse_gpubusy(text: str) -> float:
    """``<busy> <total>`` -> busy percentage, ``0.0`` when total is zero."""
    tokens = text.split()
    busy = parse_int(tokens[0]) if tokens else 0
    total = parse_int(tokens[1]) if len(tokens) > 1 else 0
    if total <= 0:
        return 0.0
    return busy / total * 100.0


# ── batch response ──────────────────────────────────────


class Section(Enum):
    NONE = "none"
    NETWORK = "network"
    DISPLAY = "display"


_MARKERS: dict[str, Section] = {
    NET_BEGIN: Section.NETWORK,
    NET_END: Section.NONE,
    DISPLAY_BEGIN: Section.DISPLAY,
    DISPLAY_END: Section.NONE,
}


@dataclass
class BatchReading:
    """Everything extracted from one privileged batch response."""

    uptime_seconds: int = 0
    battery_level: int = 0
    battery_status: BatteryStatus = BatteryStatus.UNKNOWN
    battery_temp: float = 0.0
    rx_bytes: int = 0
    tx_bytes: int = 0
    brightness: float | None = None
    refresh_rate: float | None = None
    counters: dict[int, CounterSnapshot] = field(default_factory=dict)


def parse_batch(lines: Iterable[str], core_count: int) -> BatchReading:
    """Parse the response to the batched command.

    Marker lines switch between the plain, network and display sections.
    Parsing stops at the end-of-batch sentinel if it is present.
    """
    reading = BatchReading()
    section = Section.NONE

    for raw in lines:
        line = raw.strip()
        if line == END_OF_BATCH:
            break
        if line in _MARKERS:
            section = _MARKERS[line]
            continue

        if section is Section.NETWORK:
            counters = parse_net_dev_line(line)
            if counters is not None:
                reading.rx_bytes += counters[0]
                reading.tx_bytes += counters[1]
            continue

        if section is Section.DISPLAY:
            key, sep, value = line.partition("=")
            if not sep:
                continue
            # First match wins; dumpsys repeats these for every display.
            if key == "mBrightness" and reading.brightness is None:
                reading.brightness = parse_number(value)
            elif key == "mActiveRenderFrameRate" and reading.refresh_rate is None:
                reading.refresh_rate = parse_number(value)
            continue

        tag, _, rest = line.partition(" ")
        rest = rest.strip()
        if tag == "UPTIME":
            reading.uptime_seconds = int(parse_number(rest))
        elif tag == "level:":
            reading.battery_level = parse_int(rest)
        elif tag == "status:":
            reading.battery_status = BatteryStatus.from_code(parse_int(rest))
        elif tag == "temperature:":
            reading.battery_temp = parse_number(rest) / 10.0
        else:
            idx = core_index(tag)
            if idx is not None and idx < core_count:
                reading.counters[idx] = parse_cpu_stat(rest)

    return reading
