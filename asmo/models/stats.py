from __future__ import annotations

from enum import StrEnum
from typing import NamedTuple

from pydantic import BaseModel

from asmo.models.device import StaticDeviceProfile


class BatteryStatus(StrEnum):
    CHARGING = "Charging"
    DISCHARGING = "Discharging"
    NOT_CHARGING = "Not charging"
    FULL = "Full"
    UNKNOWN = "Unknown"

    @classmethod
    def from_code(cls, code: int) -> BatteryStatus:
        """Map a ``dumpsys battery`` status code, falling back to UNKNOWN."""
        return BATTERY_STATUS_CODES.get(code, cls.UNKNOWN)


BATTERY_STATUS_CODES: dict[int, BatteryStatus] = {
    2: BatteryStatus.CHARGING,
    3: BatteryStatus.DISCHARGING,
    4: BatteryStatus.NOT_CHARGING,
    5: BatteryStatus.FULL,
}


class CounterSnapshot(NamedTuple):
    """Cumulative ``/proc/stat`` ticks for one core."""

    total: int = 0
    idle: int = 0


class CoreSample(BaseModel):
    name: str
    usage: float = 0.0  # percent
    model_name: str = ""
    cur_freq: float = 0.0  # MHz
    min_freq: float = 0.0
    max_freq: float = 0.0

    model_config = {"frozen": True}


class SystemStats(BaseModel):
    """One published telemetry snapshot. Never mutated after construction."""

    manufacturer: str = ""
    product_model: str = ""
    soc_model: str = ""
    kernel_version: str = ""
    android_version: str = ""
    uptime_seconds: int = 0
    battery_level: int = 0
    battery_status: BatteryStatus = BatteryStatus.UNKNOWN
    battery_temp: float = 0.0
    cpu_temp: float = 0.0
    gpu_temp: float = 0.0
    gpu_load: float = 0.0
    memory_used_mb: float = 0.0
    memory_total_mb: float = 0.0
    swap_used_mb: float = 0.0
    swap_total_mb: float = 0.0
    tx_bytes_mb: float = 0.0
    rx_bytes_mb: float = 0.0
    storage_free_gb: float = 0.0
    storage_total_gb: float = 0.0
    refresh_rate: float = 0.0
    brightness: float = 0.0
    cores: tuple[CoreSample, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def initial(cls, profile: StaticDeviceProfile) -> SystemStats:
        """Placeholder published before the first tick completes."""
        return cls(
            manufacturer=profile.manufacturer,
            product_model=profile.product_model,
            soc_model=profile.soc_model,
            kernel_version=profile.kernel_version,
            android_version=profile.android_version,
            cores=tuple(
                CoreSample(
                    name=core.name,
                    model_name=core.model_name,
                    min_freq=core.min_freq,
                    max_freq=core.max_freq,
                )
                for core in profile.cores
            ),
        )
