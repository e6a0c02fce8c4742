from __future__ import annotations

from pydantic import BaseModel


class StaticCoreInfo(BaseModel):
    """Per-core facts that never change while the process runs."""

    name: str
    model_name: str = ""
    min_freq: float = 0.0  # MHz
    max_freq: float = 0.0  # MHz

    model_config = {"frozen": True}


class StaticDeviceProfile(BaseModel):
    """Identity strings and core topology probed once at startup.

    ``cores`` is ordered by core index; that order indexes every per-tick
    array the sampler produces.
    """

    manufacturer: str = ""
    product_model: str = ""
    soc_model: str = ""
    kernel_version: str = "unknown"
    android_version: str = ""
    cores: tuple[StaticCoreInfo, ...] = ()

    model_config = {"frozen": True}


class DevicePaths(BaseModel):
    """Thermal-zone files polled every tick."""

    cpu_temp: str
    gpu_temp: str

    model_config = {"frozen": True}
