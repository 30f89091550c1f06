"""TS130F Dual Curtain Integration for Home Assistant.

Drives the LoraTap/Tuya TS130F two-gang Zigbee curtain switch
(manufacturer _TZ3000_esynmmox) paired with ZHA. Each gang is one endpoint
with its own WindowCovering cluster; this integration layers the vendor
calibration attributes and inverted "window shade" positions on top.

Architecture:
    - codec.py / position.py / calibration.py: pure value translation
    - commands.py: outbound command batches with inter-frame spacing
    - router.py / session.py: inbound frame routing and per-gang state
    - hub.py: the engine wiring the above to a transport and a notifier
    - transport.py: zigpy execution of batches and capture of replies
    - services.py: Home Assistant services addressing a device and gang

How It Works:
    1. async_setup registers the services (once per HA start)
    2. async_setup_entry builds a CurtainHub for the configured device,
       attaches a WindowCoveringListener to each gang's cluster and runs
       hub.configure() (configure reporting, then read current state)
    3. Every state change is sent on a dispatcher signal and fired as a
       ts130f_state_changed bus event for automations
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.dispatcher import async_dispatcher_send

from .const import (
    ATTR_ENDPOINT,
    ATTR_FIELD,
    ATTR_VALUE,
    CONF_DEVICE_IEEE,
    CONF_ENDPOINTS,
    CONF_NAME,
    DEFAULT_ENDPOINTS,
    DOMAIN,
    EVENT_TS130F_STATE_CHANGED,
    INTER_FRAME_DELAY_MS,
    OPTION_FRAME_DELAY_MS,
    SIGNAL_STATE_CHANGED,
)
from .helpers import get_cluster
from .hub import CurtainHub
from .logtools import info_banner
from .services import async_setup_services
from .transport import WindowCoveringListener, ZHATransport

if TYPE_CHECKING:
    from homeassistant.helpers.typing import ConfigType

_LOGGER = logging.getLogger(__name__)

# Config is entry-only; no YAML configuration
CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


@dataclass
class TS130FRuntime:
    """Per-entry runtime objects stored in hass.data[DOMAIN]."""

    device_ieee: str
    name: str
    hub: CurtainHub
    transport: ZHATransport
    unsubscribers: list[Callable[[], None]] = field(default_factory=list)


def signal_for_entry(entry_id: str) -> str:
    return f"{SIGNAL_STATE_CHANGED}_{entry_id}"


def _event_value(value: Any) -> Any:
    if isinstance(value, (bool, int, float)) or value is None:
        return value
    return str(value)


def _make_notifier(
    hass: HomeAssistant, entry: ConfigEntry, device_ieee: str
) -> Callable[[int, str, Any], None]:
    signal = signal_for_entry(entry.entry_id)

    def _notify(endpoint: int, field_name: str, value: Any) -> None:
        value = _event_value(value)
        async_dispatcher_send(hass, signal, endpoint, field_name, value)
        hass.bus.async_fire(
            EVENT_TS130F_STATE_CHANGED,
            {
                CONF_DEVICE_IEEE: device_ieee,
                ATTR_ENDPOINT: endpoint,
                ATTR_FIELD: field_name,
                ATTR_VALUE: value,
            },
        )

    return _notify


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up the TS130F integration (services only)."""
    hass.data.setdefault(DOMAIN, {})
    async_setup_services(hass)
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up one TS130F device from a config entry."""
    device_ieee: str = entry.data[CONF_DEVICE_IEEE]
    name: str = entry.data.get(CONF_NAME, device_ieee)
    endpoints = [int(ep) for ep in entry.data.get(CONF_ENDPOINTS, DEFAULT_ENDPOINTS)]
    delay_ms = int(entry.options.get(OPTION_FRAME_DELAY_MS, INTER_FRAME_DELAY_MS))

    _LOGGER.debug(
        "Setting up TS130F entry %s (%s, endpoints=%s, delay=%sms)",
        entry.entry_id,
        device_ieee,
        endpoints,
        delay_ms,
    )

    clusters = {
        endpoint: get_cluster(hass, device_ieee, endpoint) for endpoint in endpoints
    }
    if not any(clusters.values()):
        raise ConfigEntryNotReady(
            f"No WindowCovering cluster reachable for {device_ieee}"
        )

    # The hub and the transport reference each other through closures
    hub_ref: list[CurtainHub] = []

    def _deliver(raw: Any) -> None:
        hub_ref[0].on_frame_received(raw)

    transport = ZHATransport(
        hass,
        lambda endpoint: get_cluster(hass, device_ieee, endpoint),
        _deliver,
    )
    hub = CurtainHub(
        transport,
        _make_notifier(hass, entry, device_ieee),
        endpoints,
        delay_ms,
    )
    hub_ref.append(hub)

    runtime = TS130FRuntime(
        device_ieee=device_ieee, name=name, hub=hub, transport=transport
    )

    for endpoint, cluster in clusters.items():
        if cluster is None:
            _LOGGER.warning(
                "Endpoint %s of %s has no WindowCovering cluster", endpoint, device_ieee
            )
            continue
        listener = WindowCoveringListener(endpoint, _deliver)
        cluster.add_listener(listener)
        runtime.unsubscribers.append(
            lambda cluster=cluster, listener=listener: cluster.remove_listener(listener)
        )

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = runtime

    entry.async_on_unload(entry.add_update_listener(options_update_listener))

    hub.configure()

    info_banner(
        _LOGGER,
        f"TS130F {name} ready",
        device_ieee=device_ieee,
        endpoints=endpoints,
        delay_ms=delay_ms,
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.debug("Unloading TS130F config entry: %s", entry.entry_id)
    runtime: TS130FRuntime | None = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if runtime is not None:
        for unsubscribe in runtime.unsubscribers:
            unsubscribe()
        runtime.unsubscribers.clear()
    return True


async def options_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry so the new spacing applies to the hub."""
    await hass.config_entries.async_reload(entry.entry_id)
