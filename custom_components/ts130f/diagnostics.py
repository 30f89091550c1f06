"""Diagnostics support for the TS130F integration.

Exposes the redacted config entry, the per-gang session state and the ZHA
endpoint layout of the device.
"""

from __future__ import annotations

import logging
from typing import Any, cast

from homeassistant.components import diagnostics
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_DEVICE_IEEE, DOMAIN
from .helpers import get_zigpy_device

REDACT_KEYS = {CONF_DEVICE_IEEE}
_LOGGER = logging.getLogger(__name__)


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry (redacted)."""
    data: dict[str, Any] = {
        "entry": {
            "title": entry.title,
            "version": entry.version,
            "domain": entry.domain,
            "data": dict(entry.data),
            "options": dict(entry.options),
        }
    }

    runtime = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    if runtime is not None:
        data["hub"] = runtime.hub.snapshot()
    else:
        data["hub"] = None

    try:
        device = get_zigpy_device(hass, entry.data[CONF_DEVICE_IEEE])
        if device is not None:
            data["zha_endpoints"] = {
                int(ep_id): {
                    "in_clusters": [hex(cid) for cid in ep.in_clusters.keys()],
                    "out_clusters": [hex(cid) for cid in ep.out_clusters.keys()],
                }
                for ep_id, ep in device.endpoints.items()
                if ep_id != 0
            }
    except Exception as err:
        # best effort
        _LOGGER.debug("Diagnostics: endpoint dump unavailable: %s", err)

    return cast(dict[str, Any], diagnostics.async_redact_data(data, REDACT_KEYS))
