"""Tests covering integration setup/unload lifecycle."""

from __future__ import annotations

import logging
from importlib import import_module
from unittest.mock import AsyncMock, patch

import pytest
from homeassistant.exceptions import ConfigEntryNotReady

from custom_components.ts130f.const import DOMAIN, ShadeState
from custom_components.ts130f.transport import WindowCoveringListener

ts130f = import_module("custom_components.ts130f.__init__")


def _close_scheduled(hass) -> None:
    # The hass double never runs the coroutines handed to async_create_task
    for call in hass.async_create_task.call_args_list:
        call.args[0].close()


async def _setup(hass, config_entry, clusters):
    with patch.object(
        ts130f, "get_cluster", side_effect=lambda _hass, _ieee, ep: clusters.get(ep)
    ):
        assert await ts130f.async_setup_entry(hass, config_entry)
    _close_scheduled(hass)
    return hass.data[DOMAIN][config_entry.entry_id]


@pytest.fixture
def clusters(mock_zigpy_device):
    return {
        endpoint: mock_zigpy_device.endpoints[endpoint].in_clusters[0x0102]
        for endpoint in (1, 2)
    }


@pytest.fixture
def dispatcher_send():
    with patch.object(ts130f, "async_dispatcher_send") as send:
        yield send


@pytest.mark.asyncio
async def test_async_setup_registers_services(hass) -> None:
    assert await ts130f.async_setup(hass, {})
    assert hass.data[DOMAIN] == {}
    assert hass.services.has_service(DOMAIN, "open")
    assert hass.services.has_service(DOMAIN, "start_calibration")


@pytest.mark.asyncio
async def test_setup_entry_builds_runtime(
    hass, config_entry, clusters, dispatcher_send, device_ieee
) -> None:
    runtime = await _setup(hass, config_entry, clusters)

    assert runtime.device_ieee == device_ieee
    assert runtime.name == "Living room curtains"
    assert runtime.hub.enumerate_endpoints() == {1, 2}
    assert len(runtime.unsubscribers) == 2
    for cluster in clusters.values():
        (listener,), _ = cluster.add_listener.call_args
        assert isinstance(listener, WindowCoveringListener)
    config_entry.async_on_unload.assert_called_once()


@pytest.mark.asyncio
async def test_setup_entry_logs_ready_banner(
    hass, config_entry, clusters, dispatcher_send, caplog
) -> None:
    with caplog.at_level(logging.INFO, logger="custom_components.ts130f"):
        await _setup(hass, config_entry, clusters)
    assert "TS130F Living room curtains ready" in caplog.text
    assert "endpoints=[1, 2]" in caplog.text


@pytest.mark.asyncio
async def test_setup_entry_configures_every_endpoint(
    hass, config_entry, clusters, dispatcher_send
) -> None:
    await _setup(hass, config_entry, clusters)
    # configure reporting plus refresh, per gang
    assert hass.async_create_task.call_count == 4


@pytest.mark.asyncio
async def test_setup_entry_uses_frame_delay_option(
    hass, config_entry, clusters, dispatcher_send
) -> None:
    config_entry.options = {"frame_delay_ms": 250}
    runtime = await _setup(hass, config_entry, clusters)
    batch = runtime.hub.session(1).refresh()
    assert [marker.ms for marker in batch.markers] == [250, 250, 250]


@pytest.mark.asyncio
async def test_setup_entry_with_one_missing_gang(
    hass, config_entry, clusters, dispatcher_send, caplog
) -> None:
    runtime = await _setup(hass, config_entry, {1: clusters[1]})
    assert len(runtime.unsubscribers) == 1
    assert "Endpoint 2 of" in caplog.text


@pytest.mark.asyncio
async def test_listener_frames_notify(
    hass, config_entry, clusters, dispatcher_send, device_ieee
) -> None:
    runtime = await _setup(hass, config_entry, clusters)
    (listener,), _ = clusters[2].add_listener.call_args
    listener.attribute_updated(0x0008, 70)

    dispatcher_send.assert_any_call(
        hass, "ts130f_state_changed_entry-1", 2, "position_user", 30
    )
    hass.bus.async_fire.assert_any_call(
        "ts130f_state_changed",
        {
            "device_ieee": device_ieee,
            "endpoint": 2,
            "field": "shade_state",
            "value": str(ShadeState.PARTIALLY_OPEN),
        },
    )
    assert runtime.hub.session(2).position_user == 30
    assert runtime.hub.session(1).position_user is None


@pytest.mark.asyncio
async def test_setup_entry_not_ready_without_clusters(hass, config_entry) -> None:
    with patch.object(ts130f, "get_cluster", return_value=None):
        with pytest.raises(ConfigEntryNotReady):
            await ts130f.async_setup_entry(hass, config_entry)
    assert DOMAIN not in hass.data


@pytest.mark.asyncio
async def test_unload_entry_removes_listeners(
    hass, config_entry, clusters, dispatcher_send
) -> None:
    await _setup(hass, config_entry, clusters)

    assert await ts130f.async_unload_entry(hass, config_entry)
    assert config_entry.entry_id not in hass.data[DOMAIN]
    for cluster in clusters.values():
        cluster.remove_listener.assert_called_once()


@pytest.mark.asyncio
async def test_options_update_reloads_entry(hass, config_entry) -> None:
    hass.config_entries.async_reload = AsyncMock()
    await ts130f.options_update_listener(hass, config_entry)
    hass.config_entries.async_reload.assert_awaited_once_with("entry-1")
