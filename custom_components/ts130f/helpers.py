"""ZHA access helpers for the TS130F integration.

Leaf module: reaches the zigpy device and clusters through the ZHA gateway
and normalizes IEEE addresses. Imports nothing from the rest of the
integration except const.py.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from zigpy.types import EUI64

from .const import CLUSTER_WINDOW_COVERING

if TYPE_CHECKING:
    from zigpy.zcl import Cluster

_LOGGER = logging.getLogger(__name__)


def normalize_ieee(device_ieee: str) -> str:
    """Return the canonical "aa:bb:..." form of an IEEE address.

    Raises:
        HomeAssistantError: If the address is not a valid EUI64
    """
    try:
        return str(EUI64.convert(str(device_ieee).strip()))
    except (ValueError, TypeError) as err:
        raise HomeAssistantError(f"Invalid device IEEE address: {device_ieee}") from err


def resolve_zha_gateway(zha_data: Any) -> Any | None:
    """Extract the ZHA gateway from hass.data["zha"].

    Home Assistant has stored ZHA runtime data in several layouts:
        - an object exposing .gateway / .gateway_proxy directly
        - {"gateway": gateway}
        - {entry_id: HAZHAData}

    Each layout is tried in turn; the first gateway found wins.
    """
    if not zha_data:
        return None

    candidates: list[Any] = [zha_data]
    if isinstance(zha_data, dict):
        candidates.extend(zha_data.values())

    for candidate in candidates:
        if not candidate:
            continue
        for attr_name in ("gateway_proxy", "gateway"):
            gateway = getattr(candidate, attr_name, None)
            if gateway:
                return gateway
        if isinstance(candidate, dict) and candidate.get("gateway"):
            return candidate["gateway"]

    _LOGGER.warning(
        "No ZHA gateway found in hass.data; ZHA data layout may have changed"
    )
    return None


def _gateway_devices(gateway: Any) -> dict[Any, Any] | None:
    if hasattr(gateway, "application_controller"):
        return gateway.application_controller.devices
    if hasattr(gateway, "gateway"):
        # ZHAGatewayProxy wrapping the zigpy gateway
        return gateway.gateway.devices
    return None


def get_zigpy_device(hass: HomeAssistant, device_ieee: str) -> Any | None:
    """Return the zigpy device for an IEEE address, or None."""
    gateway = resolve_zha_gateway(hass.data.get("zha"))
    if gateway is None:
        _LOGGER.error("ZHA gateway not found")
        return None

    devices = _gateway_devices(gateway)
    if devices is None:
        _LOGGER.error(
            "Gateway object has no known device access pattern: %s",
            type(gateway).__name__,
        )
        return None

    try:
        device_eui64 = EUI64.convert(device_ieee)
    except (ValueError, TypeError) as err:
        raise HomeAssistantError(f"Invalid device IEEE address: {device_ieee}") from err

    device = devices.get(device_eui64)
    if device is None:
        _LOGGER.error("Device not found in ZHA gateway: %s", device_ieee)
    return device


def get_cluster(
    hass: HomeAssistant,
    device_ieee: str,
    endpoint_id: int,
    cluster_id: int = CLUSTER_WINDOW_COVERING,
) -> Cluster | None:
    """Return a zigpy input cluster of the device, or None if missing."""
    device = get_zigpy_device(hass, device_ieee)
    if device is None:
        return None

    endpoint = device.endpoints.get(endpoint_id)
    if endpoint is None:
        _LOGGER.error("Endpoint %d not found for device: %s", endpoint_id, device_ieee)
        return None

    cluster = endpoint.in_clusters.get(cluster_id)
    if cluster is None:
        _LOGGER.error(
            "Cluster 0x%04X not found on endpoint %d for device: %s",
            cluster_id,
            endpoint_id,
            device_ieee,
        )
    return cluster
