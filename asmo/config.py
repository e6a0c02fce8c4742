from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- app ---
    app_name: str = "asmo"

    # --- server ---
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["*"]

    # --- sampler ---
    poll_interval: float = 0.5  # seconds between ticks
    storage_tick_interval: int = 60  # ticks between storage refreshes
    shell_command: list[str] = ["rish"]
    shell_shutdown_timeout: float = 2.0

    # --- data sources ---
    storage_path: str = "/data"
    gpu_busy_path: str = "/sys/class/kgsl/kgsl-3d0/gpubusy"
    meminfo_path: str = "/proc/meminfo"
    cpu_freq_path_template: str = "/sys/devices/system/cpu/cpu{index}/cpufreq/scaling_cur_freq"
    thermal_root: str = "/sys/class/thermal"
    proc_version_path: str = "/proc/version"

    model_config = {"env_prefix": "ASMO_"}


settings = Settings()
