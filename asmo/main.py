from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from asmo.api.routes import router
from asmo.collectors import TelemetrySampler, discover_device
from asmo.config import settings
from asmo.engine import SnapshotChannel
from asmo.models import SystemStats

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── startup ───────────────────────────────────────
    # DeviceProbeError propagates: without a profile there is nothing to serve.
    profile, paths = discover_device()

    channel = SnapshotChannel(SystemStats.initial(profile))
    sampler = TelemetrySampler(channel, profile, paths, interval=settings.poll_interval)
    await sampler.start()

    # Store on app.state for route access
    app.state.profile = profile
    app.state.channel = channel
    app.state.sampler = sampler

    logger.info("%s started, sampling %d cores", settings.app_name, len(profile.cores))

    yield

    # ── shutdown ──────────────────────────────────────
    await sampler.stop()
    logger.info("%s shut down", settings.app_name)


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(router)
