from .device import DevicePaths, StaticCoreInfo, StaticDeviceProfile
from .stats import BATTERY_STATUS_CODES, BatteryStatus, CoreSample, CounterSnapshot, SystemStats

__all__ = [
    "DevicePaths",
    "StaticCoreInfo",
    "StaticDeviceProfile",
    "BATTERY_STATUS_CODES",
    "BatteryStatus",
    "CoreSample",
    "CounterSnapshot",
    "SystemStats",
]
