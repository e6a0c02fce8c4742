"""Tests for asmo.api routes."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from asmo.engine import SnapshotChannel
from asmo.main import app
from asmo.models import BatteryStatus, CoreSample, SystemStats


def _stats(**overrides) -> SystemStats:
    fields = dict(
        manufacturer="Acme",
        product_model="Phone 1",
        soc_model="SM8750",
        kernel_version="6.6.30",
        android_version="15",
        uptime_seconds=3600,
        battery_level=85,
        battery_status=BatteryStatus.CHARGING,
        battery_temp=30.1,
        cpu_temp=34.400002,
        gpu_temp=31.5,
        gpu_load=12.0,
        memory_used_mb=5120.5,
        memory_total_mb=7812.0,
        cores=tuple(
            CoreSample(
                name=f"cpu{i}",
                usage=10.0 * (i + 1),
                model_name="Oryon",
                cur_freq=1800.0 + i,
                min_freq=384.0,
                max_freq=3532.8,
            )
            for i in range(4)
        ),
    )
    fields.update(overrides)
    return SystemStats(**fields)


# ── fixtures ───────────────────────────────────────────


@pytest.fixture
def channel():
    """Inject a channel on app.state so routes work without the full lifespan."""
    channel = SnapshotChannel(_stats())
    app.state.channel = channel
    yield channel
    del app.state.channel


@pytest.fixture
async def client(channel):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ── index ──────────────────────────────────────────────


class TestIndex:
    @pytest.mark.asyncio
    async def test_index_lists_endpoints(self, client: AsyncClient):
        resp = await client.get("/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "asmo"
        assert "version" in data
        assert data["endpoints"][0] == "/stats"
        assert "/battery_level" in data["endpoints"]
        assert "/cores/cpu3/usage" in data["endpoints"]
        assert {"multi_field", "wildcard", "usage"} <= set(data)

    @pytest.mark.asyncio
    async def test_every_listed_endpoint_resolves(self, client: AsyncClient):
        endpoints = (await client.get("/")).json()["endpoints"]
        for endpoint in endpoints:
            resp = await client.get(endpoint)
            assert resp.status_code == 200, endpoint


# ── stats / fields ─────────────────────────────────────


class TestStats:
    @pytest.mark.asyncio
    async def test_full_snapshot(self, client: AsyncClient):
        resp = await client.get("/stats")
        assert resp.status_code == 200
        data = resp.json()
        assert data["manufacturer"] == "Acme"
        assert data["battery_status"] == "Charging"
        assert len(data["cores"]) == 4

    @pytest.mark.asyncio
    async def test_short_float_form(self, client: AsyncClient):
        resp = await client.get("/cpu_temp")
        assert resp.text == '{"cpu_temp":34.4}'

    @pytest.mark.asyncio
    async def test_single_field(self, client: AsyncClient):
        resp = await client.get("/battery_level")
        assert resp.status_code == 200
        assert resp.json() == {"battery_level": 85}

    @pytest.mark.asyncio
    async def test_multi_field(self, client: AsyncClient):
        resp = await client.get("/battery_level,gpu_temp,uptime_seconds")
        assert resp.json() == {"battery_level": 85, "gpu_temp": 31.5, "uptime_seconds": 3600}

    @pytest.mark.asyncio
    async def test_multi_field_partial(self, client: AsyncClient):
        resp = await client.get("/battery_level,does_not_exist")
        assert resp.status_code == 200
        assert resp.json() == {"battery_level": 85}

    @pytest.mark.asyncio
    async def test_reflects_latest_publish(self, client: AsyncClient, channel: SnapshotChannel):
        channel.publish(_stats(battery_level=42))
        resp = await client.get("/battery_level")
        assert resp.json() == {"battery_level": 42}


# ── cores ──────────────────────────────────────────────


class TestCores:
    @pytest.mark.asyncio
    async def test_core_by_name(self, client: AsyncClient):
        resp = await client.get("/cores/cpu2")
        assert resp.status_code == 200
        assert resp.json()["name"] == "cpu2"
        assert resp.json()["usage"] == 30.0

    @pytest.mark.asyncio
    async def test_core_field(self, client: AsyncClient):
        resp = await client.get("/cores/cpu1/cur_freq")
        assert resp.json() == {"cur_freq": 1801.0}

    @pytest.mark.asyncio
    async def test_core_multi_field(self, client: AsyncClient):
        resp = await client.get("/cores/cpu0/usage,max_freq")
        assert resp.json() == {"usage": 10.0, "max_freq": 3532.8}

    @pytest.mark.asyncio
    async def test_wildcard_one_per_core_in_order(self, client: AsyncClient):
        resp = await client.get("/cores/*/usage")
        assert resp.status_code == 200
        data = resp.json()
        assert [item["name"] for item in data] == ["cpu0", "cpu1", "cpu2", "cpu3"]
        assert [item["usage"] for item in data] == [10.0, 20.0, 30.0, 40.0]

    @pytest.mark.asyncio
    async def test_all_multi_field(self, client: AsyncClient):
        resp = await client.get("/cores/all/usage,cur_freq")
        assert resp.json()[3] == {"name": "cpu3", "usage": 40.0, "cur_freq": 1803.0}


# ── errors ─────────────────────────────────────────────


class TestErrors:
    @pytest.mark.asyncio
    async def test_not_found_echoes_path(self, client: AsyncClient):
        resp = await client.get("/nonexistent")
        assert resp.status_code == 404
        data = resp.json()
        assert data["error"] == "not found"
        assert data["path"] == "/nonexistent"
        assert "GET /" in data["hint"]

    @pytest.mark.asyncio
    async def test_unknown_core(self, client: AsyncClient):
        resp = await client.get("/cores/cpu99/usage")
        assert resp.status_code == 404
        assert resp.json()["path"] == "/cores/cpu99/usage"

    @pytest.mark.asyncio
    async def test_serialization_failure(self, client: AsyncClient):
        with patch("asmo.api.routes.to_tree", return_value={"cpu_temp": object()}):
            resp = await client.get("/cpu_temp")
        assert resp.status_code == 500
        assert resp.json()["error"] == "serialization failed"


class TestVersion:
    def test_uninstalled_version_is_logged(self, caplog):
        import logging
        from importlib.metadata import PackageNotFoundError

        from asmo.api import routes

        with patch("asmo.api.routes.version", side_effect=PackageNotFoundError("asmo")), \
             caplog.at_level(logging.DEBUG, logger="asmo.api.routes"):
            assert routes._package_version() == "0.0.0"
        assert "not installed" in caplog.text
