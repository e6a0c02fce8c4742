"""Direct sysfs/procfs reads that need no elevated privilege."""

from __future__ import annotations

import logging
from pathlib import Path

import psutil

from asmo.collectors.parsing import MemoryReading, parse_gpubusy, parse_meminfo, parse_number

logger = logging.getLogger(__name__)

_GIB = 1024.0 ** 3


def _read_text(path: str | Path) -> str:
    try:
        return Path(path).read_text(errors="replace")
    except OSError:
        logger.debug("Cannot read %s", path)
        return ""


def read_thermal(path: str | Path) -> float:
    """Thermal zone temperature in degrees Celsius (file holds milli-degrees)."""
    return parse_number(_read_text(path)) / 1000.0


def read_gpu_load(path: str | Path) -> float:
    return parse_gpubusy(_read_text(path))


def read_memory(path: str | Path) -> MemoryReading:
    return parse_meminfo(_read_text(path))


def read_cpu_freqs(count: int, template: str) -> list[float]:
    """Current frequency of each core in MHz (files hold kHz)."""
    return [
        parse_number(_read_text(template.format(index=i))) / 1000.0
        for i in range(count)
    ]


def read_storage(path: str | Path) -> tuple[float, float]:
    """Return (free_gb, total_gb) for the filesystem holding ``path``."""
    try:
        usage = psutil.disk_usage(str(path))
    except OSError:
        logger.debug("Cannot stat filesystem at %s", path)
        return 0.0, 0.0
    return usage.free / _GIB, usage.total / _GIB
