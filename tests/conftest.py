"""Test fixtures and configuration for TS130F integration tests.

Fixtures are organized by complexity: plain engine doubles first, then
zigpy cluster mocks, then Home Assistant doubles.
"""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.ts130f.commands import Batch
from custom_components.ts130f.hub import CurtainHub

DEVICE_IEEE = "a4:c1:38:12:34:56:78:9a"

# =============================================================================
# ENGINE FIXTURES - For tests of the synchronous protocol core
# =============================================================================


class RecordingTransport:
    """Transport double that records every batch handed to it."""

    def __init__(self) -> None:
        self.batches: list[Batch] = []

    def send(self, batch: Batch) -> None:
        self.batches.append(batch)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifications() -> list[tuple[int, str, Any]]:
    return []


@pytest.fixture
def hub(transport, notifications) -> CurtainHub:
    """Hub for a two-gang device recording sent batches and notifications."""

    def _notify(endpoint: int, field: str, value: Any) -> None:
        notifications.append((endpoint, field, value))

    return CurtainHub(transport, _notify, endpoints=(1, 2))


# =============================================================================
# ZIGBEE/ZHA MOCK FIXTURES - Mock zigpy clusters and devices
# =============================================================================


@pytest.fixture
def mock_window_covering_cluster():
    """Mock WindowCovering cluster with the raw zigpy APIs the transport uses."""
    cluster = MagicMock()
    cluster.cluster_id = 0x0102
    cluster.name = "WindowCovering"
    cluster.command = AsyncMock(return_value=SimpleNamespace(command_id=0x00, status=0))
    cluster.write_attributes_raw = AsyncMock(
        return_value=SimpleNamespace(status_records=[SimpleNamespace(status=0)])
    )
    cluster.read_attributes_raw = AsyncMock(return_value=SimpleNamespace(attribute_records=[]))
    cluster.configure_reporting = AsyncMock(return_value=[[SimpleNamespace(status=0)]])
    return cluster


@pytest.fixture
def mock_zigpy_device(mock_window_covering_cluster):
    """zigpy device with two gangs; each gang has its own cluster mock."""
    second = MagicMock()
    second.cluster_id = 0x0102
    second.add_listener = MagicMock()
    second.remove_listener = MagicMock()
    endpoints = {
        0: SimpleNamespace(in_clusters={}, out_clusters={}),
        1: SimpleNamespace(
            in_clusters={0x0000: MagicMock(), 0x0102: mock_window_covering_cluster},
            out_clusters={},
        ),
        2: SimpleNamespace(in_clusters={0x0102: second}, out_clusters={0x000A: MagicMock()}),
    }
    return SimpleNamespace(endpoints=endpoints)


# =============================================================================
# HOME ASSISTANT FIXTURES - Lightweight doubles
# =============================================================================


@pytest.fixture
def hass():
    """Minimal Home Assistant double (data container plus bus/services mocks)."""
    registered: dict[tuple[str, str], Any] = {}

    def _register(domain, service, handler, schema=None):
        registered[(domain, service)] = SimpleNamespace(handler=handler, schema=schema)

    services = SimpleNamespace(
        registered=registered,
        async_register=MagicMock(side_effect=_register),
        has_service=lambda domain, service: (domain, service) in registered,
    )
    return SimpleNamespace(
        data={},
        services=services,
        bus=SimpleNamespace(async_fire=MagicMock()),
        async_create_task=MagicMock(),
        config_entries=MagicMock(),
    )


@pytest.fixture
def device_ieee() -> str:
    return DEVICE_IEEE


@pytest.fixture
def config_entry():
    """Config entry double for a two-gang TS130F."""
    entry = MagicMock()
    entry.entry_id = "entry-1"
    entry.title = "Living room curtains"
    entry.version = 1
    entry.domain = "ts130f"
    entry.data = {
        "device_ieee": DEVICE_IEEE,
        "name": "Living room curtains",
        "endpoints": [1, 2],
    }
    entry.options = {}
    return entry
