"""Service registration for the TS130F integration.

Every service addresses one device by ``device_ieee`` and, optionally, one
gang by ``endpoint``. Without ``endpoint`` the operation runs on every gang
of the device.

    ts130f.open / close / stop
    ts130f.set_position              position: 0 (open) .. 100 (closed)
    ts130f.start_position_change     direction: open | close
    ts130f.start_calibration / stop_calibration
    ts130f.set_calibration_time      seconds
    ts130f.set_motor_reversal        reversed: bool
    ts130f.refresh / configure_reporting
    ts130f.write_attribute           attribute, data_type, value (no read-back)
    ts130f.read_attribute            attribute
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv

from .const import (
    ATTR_ATTRIBUTE,
    ATTR_DATA_TYPE,
    ATTR_DIRECTION,
    ATTR_ENDPOINT,
    ATTR_POSITION,
    ATTR_REVERSED,
    ATTR_SECONDS,
    ATTR_VALUE,
    CALIBRATION_TIME_MAX_TENTHS,
    CONF_DEVICE_IEEE,
    DATA_TYPE_NAMES,
    DOMAIN,
    POSITION_MAX,
    POSITION_MIN,
    SERVICE_CLOSE,
    SERVICE_CONFIGURE_REPORTING,
    SERVICE_OPEN,
    SERVICE_READ_ATTRIBUTE,
    SERVICE_REFRESH,
    SERVICE_SET_CALIBRATION_TIME,
    SERVICE_SET_MOTOR_REVERSAL,
    SERVICE_SET_POSITION,
    SERVICE_START_CALIBRATION,
    SERVICE_START_POSITION_CHANGE,
    SERVICE_STOP,
    SERVICE_STOP_CALIBRATION,
    SERVICE_WRITE_ATTRIBUTE,
)
from .helpers import normalize_ieee

_LOGGER = logging.getLogger(__name__)


def attribute_id(value: Any) -> int:
    """Validate an attribute id given as int or hex string ("0xF001", "F001")."""
    if isinstance(value, bool):
        raise vol.Invalid(f"Invalid attribute id: {value!r}")
    if isinstance(value, int):
        parsed = value
    else:
        try:
            parsed = int(str(value).strip(), 16)
        except ValueError as err:
            raise vol.Invalid(f"Invalid attribute id: {value!r}") from err
    if not 0 <= parsed <= 0xFFFF:
        raise vol.Invalid(f"Attribute id out of range: {value!r}")
    return parsed


_TARGET_SCHEMA: dict[Any, Any] = {
    vol.Required(CONF_DEVICE_IEEE): cv.string,
    vol.Optional(ATTR_ENDPOINT): vol.All(vol.Coerce(int), vol.Range(min=1, max=240)),
}


def _schema(extra: dict[Any, Any]) -> vol.Schema:
    return vol.Schema({**_TARGET_SCHEMA, **extra})


_ArgsFn = Callable[[dict[str, Any]], tuple[Any, ...]]


def _no_args(data: dict[str, Any]) -> tuple[Any, ...]:
    return ()


# service -> (session operation, extra schema, args extractor)
SERVICES: dict[str, tuple[str, dict[Any, Any], _ArgsFn]] = {
    SERVICE_OPEN: ("open", {}, _no_args),
    SERVICE_CLOSE: ("close", {}, _no_args),
    SERVICE_STOP: ("stop", {}, _no_args),
    SERVICE_SET_POSITION: (
        "set_position",
        {
            vol.Required(ATTR_POSITION): vol.All(
                vol.Coerce(int), vol.Range(min=POSITION_MIN, max=POSITION_MAX)
            )
        },
        lambda data: (data[ATTR_POSITION],),
    ),
    SERVICE_START_POSITION_CHANGE: (
        "start_position_change",
        {vol.Required(ATTR_DIRECTION): vol.In(["open", "close"])},
        lambda data: (data[ATTR_DIRECTION],),
    ),
    SERVICE_START_CALIBRATION: ("start_calibration", {}, _no_args),
    SERVICE_STOP_CALIBRATION: ("stop_calibration", {}, _no_args),
    SERVICE_SET_CALIBRATION_TIME: (
        "set_calibration_time",
        {
            vol.Required(ATTR_SECONDS): vol.All(
                vol.Coerce(float),
                vol.Range(min=0, max=CALIBRATION_TIME_MAX_TENTHS / 10),
            )
        },
        lambda data: (data[ATTR_SECONDS],),
    ),
    SERVICE_SET_MOTOR_REVERSAL: (
        "set_motor_reversal",
        {vol.Required(ATTR_REVERSED): cv.boolean},
        lambda data: (data[ATTR_REVERSED],),
    ),
    SERVICE_REFRESH: ("refresh", {}, _no_args),
    SERVICE_CONFIGURE_REPORTING: ("configure_reporting", {}, _no_args),
    SERVICE_WRITE_ATTRIBUTE: (
        "write_attribute",
        {
            vol.Required(ATTR_ATTRIBUTE): attribute_id,
            vol.Required(ATTR_DATA_TYPE): vol.In(list(DATA_TYPE_NAMES)),
            vol.Required(ATTR_VALUE): vol.All(vol.Coerce(int), vol.Range(min=0)),
        },
        lambda data: (
            data[ATTR_ATTRIBUTE],
            DATA_TYPE_NAMES[data[ATTR_DATA_TYPE]],
            data[ATTR_VALUE],
        ),
    ),
    SERVICE_READ_ATTRIBUTE: (
        "read_attribute",
        {vol.Required(ATTR_ATTRIBUTE): attribute_id},
        lambda data: (data[ATTR_ATTRIBUTE],),
    ),
}


def async_setup_services(hass: HomeAssistant) -> None:
    """Register all TS130F services."""

    def _make_handler(service: str, operation: str, args_fn: _ArgsFn):
        async def _handler(call: ServiceCall) -> None:
            _dispatch(hass, service, operation, call.data, args_fn(call.data))

        return _handler

    for service, (operation, extra, args_fn) in SERVICES.items():
        if hass.services.has_service(DOMAIN, service):
            continue
        _LOGGER.debug("Registering service %s.%s", DOMAIN, service)
        hass.services.async_register(
            DOMAIN,
            service,
            _make_handler(service, operation, args_fn),
            schema=_schema(extra),
        )


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _find_runtime(hass: HomeAssistant, device_ieee: str) -> Any:
    """Return the runtime of the configured device with this IEEE address."""
    wanted = normalize_ieee(device_ieee)
    for runtime in hass.data.get(DOMAIN, {}).values():
        if getattr(runtime, "device_ieee", None) is None:
            continue
        try:
            if normalize_ieee(runtime.device_ieee) == wanted:
                return runtime
        except HomeAssistantError:
            continue
    raise HomeAssistantError(f"No TS130F device configured with IEEE {device_ieee}")


def _target_endpoints(runtime: Any, endpoint: int | None) -> list[int]:
    known = sorted(runtime.hub.enumerate_endpoints())
    if endpoint is None:
        return known
    if endpoint not in known:
        raise HomeAssistantError(
            f"Endpoint {endpoint} is not configured for {runtime.device_ieee} "
            f"(known: {known})"
        )
    return [endpoint]


def _dispatch(
    hass: HomeAssistant,
    service: str,
    operation: str,
    data: dict[str, Any],
    args: tuple[Any, ...],
) -> None:
    runtime = _find_runtime(hass, data[CONF_DEVICE_IEEE])
    endpoints = _target_endpoints(runtime, data.get(ATTR_ENDPOINT))

    sent = 0
    for endpoint in endpoints:
        try:
            if runtime.hub.issue(endpoint, operation, *args):
                sent += 1
        except ValueError as err:
            raise HomeAssistantError(f"{service}: {err}") from err

    _LOGGER.debug(
        "Service %s on %s endpoints %s: %d batch(es) sent",
        service,
        runtime.device_ieee,
        endpoints,
        sent,
    )
    if not sent:
        raise HomeAssistantError(
            f"{service}: no command sent to {runtime.device_ieee} endpoints {endpoints}"
        )
