"""One-shot device discovery, run once before the sampler starts."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from asmo.collectors.parsing import parse_number
from asmo.config import settings
from asmo.models.device import DevicePaths, StaticCoreInfo, StaticDeviceProfile

logger = logging.getLogger(__name__)

LSCPU_COMMAND = ["lscpu", "--extended=CPU,MODELNAME,MINMHZ,MAXMHZ"]

_CPU_ZONE_MARKERS = ("cpuss-0", "aoss-0")
_GPU_ZONE_MARKERS = ("gpuss-0",)


class DeviceProbeError(RuntimeError):
    """The static device profile could not be built."""


def _run(argv: list[str]) -> str:
    try:
        result = subprocess.run(argv, capture_output=True, text=True, timeout=10, check=False)
    except (OSError, subprocess.TimeoutExpired):
        logger.debug("Probe command failed: %s", argv[0])
        return ""
    return result.stdout


def getprop(key: str) -> str:
    return _run(["getprop", key]).strip()


def probe_thermal_paths(root: str | Path) -> DevicePaths:
    """Pick the CPU and GPU thermal zones by their ``type`` string.

    Zones are scanned in name order and a later match replaces an earlier one.
    """
    root = Path(root)
    cpu_temp = str(root / "thermal_zone0" / "temp")
    gpu_temp = str(root / "thermal_zone1" / "temp")

    try:
        zones = sorted(p for p in root.iterdir() if p.name.startswith("thermal_zone"))
    except OSError:
        logger.warning("Cannot list thermal zones under %s, using defaults", root)
        zones = []

    for zone in zones:
        try:
            zone_type = (zone / "type").read_text().strip().lower()
        except OSError:
            continue
        if any(marker in zone_type for marker in _CPU_ZONE_MARKERS):
            cpu_temp = str(zone / "temp")
        elif any(marker in zone_type for marker in _GPU_ZONE_MARKERS):
            gpu_temp = str(zone / "temp")

    return DevicePaths(cpu_temp=cpu_temp, gpu_temp=gpu_temp)


def parse_lscpu(output: str) -> list[StaticCoreInfo]:
    """Parse ``lscpu --extended=CPU,MODELNAME,MINMHZ,MAXMHZ`` output.

    The model name may contain spaces, so it is everything between the CPU
    index and the two trailing frequency columns.
    """
    cores: list[tuple[int, StaticCoreInfo]] = []
    for line in output.splitlines()[1:]:
        tokens = line.split()
        if len(tokens) < 4 or not tokens[0].isdigit():
            continue
        index = int(tokens[0])
        cores.append(
            (
                index,
                StaticCoreInfo(
                    name=f"cpu{index}",
                    model_name=" ".join(tokens[1:-2]),
                    min_freq=parse_number(tokens[-2]),
                    max_freq=parse_number(tokens[-1]),
                ),
            )
        )
    cores.sort(key=lambda pair: pair[0])
    return [core for _, core in cores]


def read_kernel_version(path: str | Path) -> str:
    try:
        tokens = Path(path).read_text().split()
    except OSError:
        return "unknown"
    return tokens[2] if len(tokens) > 2 else "unknown"


def discover_device() -> tuple[StaticDeviceProfile, DevicePaths]:
    """Build the immutable device profile and thermal paths.

    Raises DeviceProbeError when no CPU cores can be found.
    """
    paths = probe_thermal_paths(settings.thermal_root)
    cores = parse_lscpu(_run(LSCPU_COMMAND))
    if not cores:
        raise DeviceProbeError("lscpu reported no CPU cores")

    profile = StaticDeviceProfile(
        manufacturer=getprop("ro.product.manufacturer"),
        product_model=getprop("ro.product.model"),
        soc_model=getprop("ro.soc.model"),
        kernel_version=read_kernel_version(settings.proc_version_path),
        android_version=getprop("ro.build.version.release"),
        cores=tuple(cores),
    )
    logger.info(
        "Discovered %s %s (%s), %d cores, cpu thermal=%s gpu thermal=%s",
        profile.manufacturer or "?",
        profile.product_model or "?",
        profile.soc_model or "?",
        len(profile.cores),
        paths.cpu_temp,
        paths.gpu_temp,
    )
    return profile, paths
