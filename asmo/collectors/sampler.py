from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator, Sequence

from asmo.collectors.base import BaseCollector
from asmo.collectors.parsing import END_OF_BATCH, compute_usage, parse_batch
from asmo.collectors.readers import (
    read_cpu_freqs,
    read_gpu_load,
    read_memory,
    read_storage,
    read_thermal,
)
from asmo.collectors.shell import PrivilegedShell, ShellClosedError
from asmo.config import settings
from asmo.engine.channel import SnapshotChannel
from asmo.models.device import DevicePaths, StaticDeviceProfile
from asmo.models.stats import CoreSample, CounterSnapshot, SystemStats

logger = logging.getLogger(__name__)

_MIB = 1024.0 * 1024.0

BATCH_COMMAND = (
    "echo UPTIME $(cat /proc/uptime); "
    "cat /proc/stat; "
    "dumpsys battery | grep -E 'level|status|temp'; "
    "echo NET_DATA; cat /proc/net/dev; echo NET_END; "
    "echo DISPLAY_DATA; "
    "dumpsys display | grep -oE 'mBrightness=[0-9.]+|mActiveRenderFrameRate=[0-9.]+'; "
    "echo DISPLAY_END; "
    f"echo '{END_OF_BATCH}'\n"
)


class TelemetrySampler(BaseCollector):
    """Samples device telemetry once per tick and publishes a SystemStats.

    Privileged values (uptime, per-core CPU ticks, battery, network,
    display) come from one batched command written to a persistent
    elevated shell; the rest is read directly from sysfs/procfs. The
    shell lives for as long as the sampling loop and is reaped when it ends.
    """

    name = "telemetry_sampler"

    def __init__(
        self,
        channel: SnapshotChannel,
        profile: StaticDeviceProfile,
        paths: DevicePaths,
        interval: float | None = None,
        *,
        shell_command: Sequence[str] | None = None,
        batch_command: str = BATCH_COMMAND,
        storage_tick_interval: int | None = None,
        storage_path: str | None = None,
        gpu_busy_path: str | None = None,
        meminfo_path: str | None = None,
        cpu_freq_path_template: str | None = None,
    ) -> None:
        super().__init__(channel, interval=interval if interval is not None else settings.poll_interval)
        self._profile = profile
        self._paths = paths
        self.shell_command = list(shell_command or settings.shell_command)
        self.batch_command = batch_command
        self.storage_tick_interval = max(storage_tick_interval or settings.storage_tick_interval, 1)
        self.storage_path = storage_path or settings.storage_path
        self.gpu_busy_path = gpu_busy_path or settings.gpu_busy_path
        self.meminfo_path = meminfo_path or settings.meminfo_path
        self.cpu_freq_path_template = cpu_freq_path_template or settings.cpu_freq_path_template

        core_count = len(profile.cores)
        self._counters: list[CounterSnapshot] = [CounterSnapshot()] * core_count
        self._usages: list[float] = [0.0] * core_count
        self._tick = 0
        self._storage: tuple[float, float] = (0.0, 0.0)
        self._shell: PrivilegedShell | None = None

    # ── session ─────────────────────────────────────────

    def session(self) -> contextlib.AbstractAsyncContextManager[PrivilegedShell]:
        return self._shell_session()

    @contextlib.asynccontextmanager
    async def _shell_session(self) -> AsyncIterator[PrivilegedShell]:
        async with PrivilegedShell(
            self.shell_command,
            shutdown_timeout=settings.shell_shutdown_timeout,
        ) as shell:
            self._shell = shell
            try:
                yield shell
            finally:
                self._shell = None

    # ── sampling ────────────────────────────────────────

    async def collect(self) -> SystemStats:
        if self._shell is None:
            raise ShellClosedError("sampler has no open privileged shell")

        core_count = len(self._profile.cores)
        cpu_temp = read_thermal(self._paths.cpu_temp)
        gpu_temp = read_thermal(self._paths.gpu_temp)
        gpu_load = read_gpu_load(self.gpu_busy_path)
        memory = read_memory(self.meminfo_path)
        cur_freqs = read_cpu_freqs(core_count, self.cpu_freq_path_template)
        if self._tick % self.storage_tick_interval == 0:
            self._storage = read_storage(self.storage_path)

        lines = await self._shell.run_batch(self.batch_command)
        batch = parse_batch(lines, core_count)
        self.update_usages(batch.counters)

        storage_free_gb, storage_total_gb = self._storage
        profile = self._profile
        snapshot = SystemStats(
            manufacturer=profile.manufacturer,
            product_model=profile.product_model,
            soc_model=profile.soc_model,
            kernel_version=profile.kernel_version,
            android_version=profile.android_version,
            uptime_seconds=batch.uptime_seconds,
            battery_level=batch.battery_level,
            battery_status=batch.battery_status,
            battery_temp=batch.battery_temp,
            cpu_temp=cpu_temp,
            gpu_temp=gpu_temp,
            gpu_load=gpu_load,
            memory_used_mb=memory.used_mb,
            memory_total_mb=memory.total_mb,
            swap_used_mb=memory.swap_used_mb,
            swap_total_mb=memory.swap_total_mb,
            tx_bytes_mb=batch.tx_bytes / _MIB,
            rx_bytes_mb=batch.rx_bytes / _MIB,
            storage_free_gb=storage_free_gb,
            storage_total_gb=storage_total_gb,
            refresh_rate=batch.refresh_rate or 0.0,
            brightness=batch.brightness or 0.0,
            cores=self._core_samples(cur_freqs),
        )
        self._tick += 1
        return snapshot

    def update_usages(self, counters: dict[int, CounterSnapshot]) -> None:
        """Fold one tick's counters into the per-core usage table.

        A core with no elapsed ticks keeps its previous usage; a core
        missing from the batch reads 0. New counters always replace the
        stored ones.
        """
        for idx in range(len(self._usages)):
            current = counters.get(idx)
            if current is None:
                # Offline cores drop out of /proc/stat.
                self._usages[idx] = 0.0
                continue
            usage = compute_usage(self._counters[idx], current)
            if usage is not None:
                self._usages[idx] = usage
            self._counters[idx] = current

    def _core_samples(self, cur_freqs: list[float]) -> tuple[CoreSample, ...]:
        return tuple(
            CoreSample(
                name=info.name,
                usage=self._usages[i],
                model_name=info.model_name,
                cur_freq=cur_freqs[i] if i < len(cur_freqs) else 0.0,
                min_freq=info.min_freq,
                max_freq=info.max_freq,
            )
            for i, info in enumerate(self._profile.cores)
        )

    @property
    def usages(self) -> list[float]:
        return list(self._usages)
