"""Tests for the zigpy transport and cluster listener."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from custom_components.ts130f.commands import CommandBatchBuilder
from custom_components.ts130f.const import ATTR_CALIBRATION_MODE, ATTR_POSITION_LIFT_PERCENTAGE
from custom_components.ts130f.transport import (
    WindowCoveringListener,
    ZHATransport,
    attribute_frame,
)


@pytest.fixture
def delivered() -> list[dict]:
    return []


@pytest.fixture
def zha_transport(hass, mock_window_covering_cluster, delivered) -> ZHATransport:
    return ZHATransport(
        hass,
        lambda endpoint: mock_window_covering_cluster if endpoint == 1 else None,
        delivered.append,
    )


def test_send_schedules_task(hass, zha_transport) -> None:
    zha_transport.send(CommandBatchBuilder(1).open())
    hass.async_create_task.assert_called_once()
    # Close the coroutine handed to the mock to avoid a "never awaited" warning
    hass.async_create_task.call_args.args[0].close()


def test_send_ignores_empty_batch(hass, zha_transport) -> None:
    zha_transport.send(CommandBatchBuilder(1).start_position_change("sideways"))
    hass.async_create_task.assert_not_called()


@pytest.mark.asyncio
async def test_command_and_default_response(zha_transport, mock_window_covering_cluster, delivered):
    await zha_transport.async_send(CommandBatchBuilder(1).set_position(30))

    mock_window_covering_cluster.command.assert_awaited_once_with(0x05, 70)
    assert delivered == [
        {"endpoint": 1, "clusterInt": 0x0102, "command": "0B", "data": [0x00, 0]}
    ]


@pytest.mark.asyncio
async def test_write_then_read_back(zha_transport, mock_window_covering_cluster, delivered):
    mock_window_covering_cluster.read_attributes_raw.return_value = SimpleNamespace(
        attribute_records=[
            SimpleNamespace(
                attrid=ATTR_CALIBRATION_MODE, status=0, value=SimpleNamespace(value=0)
            )
        ]
    )
    sleep = AsyncMock()
    with patch("custom_components.ts130f.transport.asyncio.sleep", sleep):
        await zha_transport.async_send(CommandBatchBuilder(1, delay_ms=100).start_calibration())

    (attrs,), _ = mock_window_covering_cluster.write_attributes_raw.call_args
    assert attrs[0].attrid == ATTR_CALIBRATION_MODE
    assert attrs[0].value.value == 0
    mock_window_covering_cluster.read_attributes_raw.assert_awaited_once_with(
        [ATTR_CALIBRATION_MODE]
    )
    sleep.assert_awaited_once_with(0.1)
    assert delivered == [
        {"endpoint": 1, "clusterInt": 0x0102, "command": "04", "data": [0]},
        attribute_frame(1, ATTR_CALIBRATION_MODE, 0),
    ]


@pytest.mark.asyncio
async def test_failed_read_record_is_not_delivered(
    zha_transport, mock_window_covering_cluster, delivered, caplog
):
    mock_window_covering_cluster.read_attributes_raw.return_value = SimpleNamespace(
        attribute_records=[SimpleNamespace(attrid=0xF00A, status=0x86, value=None)]
    )
    await zha_transport.async_send(CommandBatchBuilder(1).read_attribute(0xF00A))
    assert delivered == []
    assert "failed with status 0x86" in caplog.text


@pytest.mark.asyncio
async def test_configure_reporting(zha_transport, mock_window_covering_cluster):
    await zha_transport.async_send(CommandBatchBuilder(1).configure_reporting())
    mock_window_covering_cluster.configure_reporting.assert_awaited_once_with(
        ATTR_POSITION_LIFT_PERCENTAGE, 1, 3600, 1
    )


@pytest.mark.asyncio
async def test_frame_failure_does_not_abort_batch(
    zha_transport, mock_window_covering_cluster, delivered, caplog
):
    mock_window_covering_cluster.write_attributes_raw.side_effect = asyncio.TimeoutError()
    with patch("custom_components.ts130f.transport.asyncio.sleep", AsyncMock()):
        await zha_transport.async_send(CommandBatchBuilder(1).set_motor_reversal(True))
    mock_window_covering_cluster.read_attributes_raw.assert_awaited_once()
    assert "Frame failed" in caplog.text


@pytest.mark.asyncio
async def test_missing_cluster_drops_frame(zha_transport, delivered, caplog):
    await zha_transport.async_send(CommandBatchBuilder(2).open())
    assert delivered == []
    assert "No WindowCovering cluster for endpoint 2" in caplog.text


@pytest.mark.asyncio
async def test_batches_are_serialized(hass, delivered):
    order: list[str] = []
    gate = asyncio.Event()

    async def slow_command(command_id, *args):
        order.append(f"start-{command_id}")
        if command_id == 0x00:
            await gate.wait()
        order.append(f"end-{command_id}")
        return None

    cluster = MagicMock()
    cluster.command = slow_command
    transport = ZHATransport(hass, lambda endpoint: cluster, delivered.append)

    first = asyncio.create_task(transport.async_send(CommandBatchBuilder(1).open()))
    second = asyncio.create_task(transport.async_send(CommandBatchBuilder(1).stop()))
    await asyncio.sleep(0)
    gate.set()
    await asyncio.gather(first, second)

    assert order == ["start-0", "end-0", "start-2", "end-2"]


# =============================================================================
# Listener
# =============================================================================


def test_listener_forwards_attribute_updates(delivered) -> None:
    listener = WindowCoveringListener(2, delivered.append)
    listener.attribute_updated(ATTR_POSITION_LIFT_PERCENTAGE, 70, None)
    assert delivered == [attribute_frame(2, ATTR_POSITION_LIFT_PERCENTAGE, 70)]


def test_listener_forwards_default_response_only(delivered) -> None:
    listener = WindowCoveringListener(1, delivered.append)
    listener.general_command(
        SimpleNamespace(command_id=0x0B), SimpleNamespace(command_id=0x01, status=0x00)
    )
    listener.general_command(SimpleNamespace(command_id=0x0A), [])
    assert delivered == [
        {"endpoint": 1, "clusterInt": 0x0102, "command": "0B", "data": [0x01, 0x00]}
    ]
