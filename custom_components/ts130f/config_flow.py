"""Config flow for the TS130F dual curtain integration.

One config entry per physical TS130F. The user step offers every TS130F
that ZHA knows and that is not configured yet; without any, the IEEE
address is typed in.

Entry data:
    device_ieee   canonical IEEE address (unique id of the entry)
    name          display name used in logs and diagnostics
    endpoints     gang endpoints, default [1, 2]

Options:
    frame_delay_ms   spacing between frames of one batch (0..1000 ms)
"""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.data_entry_flow import FlowResult
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import device_registry as dr

from .const import (
    CONF_DEVICE_IEEE,
    CONF_ENDPOINTS,
    CONF_NAME,
    DEFAULT_ENDPOINTS,
    DOMAIN,
    FRAME_DELAY_MS_MAX,
    INTER_FRAME_DELAY_MS,
    MODEL,
    OPTION_FRAME_DELAY_MS,
)
from .helpers import normalize_ieee

_LOGGER = logging.getLogger(__name__)


def parse_endpoints(value: Any) -> list[int]:
    """Parse "1, 2" (or an iterable of ints) into a sorted endpoint list.

    Raises:
        ValueError: If the list is empty or an entry is not in 1..240
    """
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    else:
        items = list(value or [])
    endpoints = sorted({int(item) for item in items})
    if not endpoints:
        raise ValueError("No endpoints given")
    if any(not 1 <= endpoint <= 240 for endpoint in endpoints):
        raise ValueError(f"Endpoint out of range: {endpoints}")
    return endpoints


class TS130FConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):  # type: ignore[call-arg]
    """Handle a config flow for the TS130F."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        errors: dict[str, str] = {}
        available = self._get_available_devices()

        if user_input is not None:
            try:
                device_ieee = normalize_ieee(user_input[CONF_DEVICE_IEEE])
            except HomeAssistantError:
                errors[CONF_DEVICE_IEEE] = "invalid_ieee"
                device_ieee = None

            try:
                endpoints = parse_endpoints(
                    user_input.get(CONF_ENDPOINTS, DEFAULT_ENDPOINTS)
                )
            except (TypeError, ValueError):
                errors[CONF_ENDPOINTS] = "invalid_endpoints"
                endpoints = []

            if not errors and device_ieee is not None:
                await self.async_set_unique_id(device_ieee)
                self._abort_if_unique_id_configured()

                name = (user_input.get(CONF_NAME) or "").strip() or available.get(
                    device_ieee, f"{MODEL} {device_ieee}"
                )
                _LOGGER.debug(
                    "Creating TS130F entry for %s (endpoints=%s)", device_ieee, endpoints
                )
                return self.async_create_entry(
                    title=name,
                    data={
                        CONF_DEVICE_IEEE: device_ieee,
                        CONF_NAME: name,
                        CONF_ENDPOINTS: endpoints,
                    },
                )

        if available:
            ieee_field: Any = vol.In(
                {ieee: f"{name} ({ieee})" for ieee, name in available.items()}
            )
        else:
            ieee_field = str

        data_schema = vol.Schema(
            {
                vol.Required(CONF_DEVICE_IEEE): ieee_field,
                vol.Optional(CONF_NAME, default=""): str,
                vol.Optional(
                    CONF_ENDPOINTS,
                    default=", ".join(str(ep) for ep in DEFAULT_ENDPOINTS),
                ): str,
            }
        )
        return self.async_show_form(
            step_id="user", data_schema=data_schema, errors=errors
        )

    @staticmethod
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> TS130FOptionsFlow:
        return TS130FOptionsFlow(config_entry)

    def _get_available_devices(self) -> dict[str, str]:
        """Return {ieee: name} of ZHA devices that look like an unconfigured TS130F."""
        configured = {
            entry.data.get(CONF_DEVICE_IEEE)
            for entry in self.hass.config_entries.async_entries(DOMAIN)
        }
        available: dict[str, str] = {}
        device_registry = dr.async_get(self.hass)
        for device_entry in device_registry.devices.values():
            if device_entry.model != MODEL:
                continue
            device_ieee = None
            for identifier in device_entry.identifiers:
                if identifier[0] == "zha":
                    device_ieee = identifier[1]
                    break
            if not device_ieee or device_ieee in configured:
                continue
            available[device_ieee] = (
                device_entry.name_by_user or device_entry.name or f"{MODEL} {device_ieee}"
            )
        return available


class TS130FOptionsFlow(config_entries.OptionsFlow):
    """Options: inter-frame spacing."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        if user_input is not None:
            return self.async_create_entry(
                title="",
                data={OPTION_FRAME_DELAY_MS: int(user_input[OPTION_FRAME_DELAY_MS])},
            )

        current = self._entry.options.get(OPTION_FRAME_DELAY_MS, INTER_FRAME_DELAY_MS)
        data_schema = vol.Schema(
            {
                vol.Required(OPTION_FRAME_DELAY_MS, default=current): vol.All(
                    vol.Coerce(int), vol.Range(min=0, max=FRAME_DELAY_MS_MAX)
                ),
            }
        )
        return self.async_show_form(step_id="init", data_schema=data_schema)
