from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Callable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from asmo.config import settings
from asmo.engine.channel import SnapshotChannel
from asmo.engine.resolver import PathNotFoundError, enumerate_endpoints, resolve, to_tree

logger = logging.getLogger(__name__)

router = APIRouter()

INDEX_HINTS = {
    "multi_field": "Combine fields with commas: /battery_level,cpu_temp,gpu_load",
    "wildcard": "Use * or 'all' for arrays: /cores/*/usage  /cores/all/usage,cur_freq",
    "usage": "GET any endpoint to retrieve its data.",
}


def _package_version() -> str:
    try:
        return version("asmo")
    except PackageNotFoundError:
        logger.debug("asmo is not installed as a distribution, reporting version 0.0.0")
        return "0.0.0"


def _channel(request: Request) -> SnapshotChannel:
    return request.app.state.channel


def error_response(status_code: int, message: str, path: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "path": f"/{path}",
            "hint": "GET / for available endpoints",
        },
    )


def _render(build: Callable[[], Any], path: str) -> JSONResponse:
    try:
        return JSONResponse(content=build())
    except PathNotFoundError:
        return error_response(404, "not found", path)
    except (TypeError, ValueError):
        logger.exception("Failed to serialize response for /%s", path)
        return error_response(500, "serialization failed", path)


# ── routes ────────────────────────────────────────────


@router.get("/")
async def index(request: Request) -> JSONResponse:
    def build() -> dict:
        tree = to_tree(_channel(request).latest)
        return {
            "name": settings.app_name,
            "version": _package_version(),
            "endpoints": ["/stats", *enumerate_endpoints(tree)],
            **INDEX_HINTS,
        }

    return _render(build, "")


@router.get("/stats")
async def stats(request: Request) -> JSONResponse:
    return _render(lambda: to_tree(_channel(request).latest), "stats")


@router.get("/{path:path}")
async def resolve_path(path: str, request: Request) -> JSONResponse:
    return _render(lambda: resolve(to_tree(_channel(request).latest), path), path)
