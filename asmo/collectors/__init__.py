from .base import BaseCollector, CollectorStopped
from .discovery import DeviceProbeError, discover_device
from .sampler import BATCH_COMMAND, TelemetrySampler
from .shell import PrivilegedShell, ShellClosedError

__all__ = [
    "BaseCollector",
    "CollectorStopped",
    "DeviceProbeError",
    "discover_device",
    "BATCH_COMMAND",
    "TelemetrySampler",
    "PrivilegedShell",
    "ShellClosedError",
]
