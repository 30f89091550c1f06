"""Inbound frame router.

Turns a raw inbound frame (a parsed description map) into a descriptor
addressed to one endpoint. A raw frame looks like:

    {"endpoint": "01", "clusterId": "0102", "attrId": "0008", "value": "32"}
    {"sourceEndpoint": 2, "clusterInt": 258, "command": "0B", "data": ["00", "00"]}

Keys and their fallbacks:

    endpoint   endpoint, sourceEndpoint   (hex string, decimal string or int)
    cluster    clusterInt, clusterId, cluster
    attribute  attrInt, attrId
    value      value                      (big-endian hex string or int)
    command    command                    ("0B" default response, "04" write response)
    data       data                       (list of hex strings or ints)

Routing order:
    1. Resolve the endpoint. Missing or unknown -> Unroutable (debug log).
    2. Only the WindowCovering cluster is decoded; others -> Unroutable.
    3. Default response and write-attribute response are checked BEFORE
       attribute decoding; their payload is not an attribute.
    4. Everything else with an attribute id goes through the codec.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass
from typing import Any, Union

from .codec import CodecError, DecodedAttribute, UnknownAttribute, decode
from .const import (
    CLUSTER_WINDOW_COVERING,
    GENERAL_CMD_DEFAULT_RSP,
    GENERAL_CMD_WRITE_ATTRIBUTES_RSP,
    STATUS_SUCCESS,
)
from .logtools import hex_id

_LOGGER = logging.getLogger(__name__)


class MalformedFrameError(ValueError):
    """Raised when a frame for a known endpoint cannot be interpreted."""


# ============================================================================
# DESCRIPTORS
# ============================================================================


@dataclass(frozen=True)
class AttributeReport:
    """Attribute report or read-attribute record."""

    attr_id: int
    raw: Any
    decoded: DecodedAttribute | UnknownAttribute


@dataclass(frozen=True)
class CommandAck:
    """Default response acknowledging a command we sent."""

    command_id: int
    status: int

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass(frozen=True)
class WriteResponse:
    """Write-attribute response."""

    status: int

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS


FrameDescriptor = Union[AttributeReport, CommandAck, WriteResponse]


@dataclass(frozen=True)
class RoutedFrame:
    endpoint: int
    cluster: int
    descriptor: FrameDescriptor


@dataclass(frozen=True)
class Unroutable:
    """A frame the router dropped; never an error."""

    reason: str
    endpoint: int | None = None


# ============================================================================
# FIELD PARSING
# ============================================================================


def parse_endpoint(value: Any) -> int | None:
    """Parse an endpoint id.

    Strings are tried as hex first and decimal second. Returns None when
    the value is missing or unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    for base in (16, 10):
        try:
            return int(text, base)
        except ValueError:
            continue
    return None


def _parse_hex_field(value: Any, name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip(), 16)
        except ValueError as err:
            raise MalformedFrameError(f"Unparseable {name}: {value!r}") from err
    raise MalformedFrameError(f"Missing or invalid {name}: {value!r}")


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_cluster(raw: Mapping[str, Any]) -> int | None:
    cluster_int = raw.get("clusterInt")
    if isinstance(cluster_int, int) and not isinstance(cluster_int, bool):
        return int(cluster_int)
    value = _first_present(raw, "clusterId", "cluster")
    if value is None:
        return None
    return _parse_hex_field(value, "cluster")


def _parse_attribute_id(raw: Mapping[str, Any]) -> int | None:
    attr_int = raw.get("attrInt")
    if isinstance(attr_int, int) and not isinstance(attr_int, bool):
        return int(attr_int)
    value = raw.get("attrId")
    if value is None or value == "":
        return None
    return _parse_hex_field(value, "attribute id")


def _parse_command(raw: Mapping[str, Any]) -> int | None:
    value = raw.get("command")
    if value is None or value == "":
        return None
    return _parse_hex_field(value, "command")


def _data(raw: Mapping[str, Any], needed: int, what: str) -> list[int]:
    data = raw.get("data")
    if not isinstance(data, (list, tuple)) or len(data) < needed:
        raise MalformedFrameError(f"{what} needs {needed} data bytes, got {data!r}")
    return [_parse_hex_field(item, "data byte") for item in data[:needed]]


# ============================================================================
# ROUTER
# ============================================================================


class FrameRouter:
    """Routes raw inbound frames to endpoint descriptors.

    Args:
        known_endpoints: Callable returning the currently recognized
            endpoint ids
    """

    def __init__(self, known_endpoints: Callable[[], Collection[int]]) -> None:
        self._known_endpoints = known_endpoints

    def route(self, raw: Mapping[str, Any]) -> RoutedFrame | Unroutable:
        """Route one raw frame.

        Raises:
            MalformedFrameError: If the frame targets a known endpoint on the
                WindowCovering cluster but its fields cannot be interpreted
        """
        if not isinstance(raw, Mapping):
            raise MalformedFrameError(f"Frame is not a mapping: {raw!r}")

        endpoint = parse_endpoint(_first_present(raw, "endpoint", "sourceEndpoint"))
        if endpoint is None:
            _LOGGER.debug("Unrouted message without endpoint: %s", raw)
            return Unroutable("missing endpoint")
        if endpoint not in self._known_endpoints():
            _LOGGER.debug("Unrouted message for unknown endpoint %s: %s", endpoint, raw)
            return Unroutable("unknown endpoint", endpoint)

        cluster = _parse_cluster(raw)
        if cluster is None:
            _LOGGER.debug("Unknown cluster format: %s", raw)
            return Unroutable("missing cluster", endpoint)
        if cluster != CLUSTER_WINDOW_COVERING:
            _LOGGER.debug("Unhandled cluster %s on endpoint %s", hex_id(cluster), endpoint)
            return Unroutable("unhandled cluster", endpoint)

        command = _parse_command(raw)
        if command == GENERAL_CMD_DEFAULT_RSP:
            return RoutedFrame(endpoint, cluster, self._default_response(endpoint, raw))
        if command == GENERAL_CMD_WRITE_ATTRIBUTES_RSP:
            return RoutedFrame(endpoint, cluster, self._write_response(endpoint, raw))

        attr_id = _parse_attribute_id(raw)
        if attr_id is None:
            _LOGGER.debug("Unhandled WindowCovering message: %s", raw)
            return Unroutable("no attribute", endpoint)

        value = raw.get("value")
        try:
            decoded = decode(attr_id, value)
        except CodecError as err:
            raise MalformedFrameError(
                f"Attribute {hex_id(attr_id)} on endpoint {endpoint}: {err}"
            ) from err
        return RoutedFrame(endpoint, cluster, AttributeReport(attr_id, value, decoded))

    def _default_response(self, endpoint: int, raw: Mapping[str, Any]) -> CommandAck:
        command_id, status = _data(raw, 2, "Default response")
        ack = CommandAck(command_id=command_id, status=status)
        if ack.ok:
            _LOGGER.debug(
                "Endpoint %s: command %s acknowledged", endpoint, hex_id(command_id, 2)
            )
        else:
            _LOGGER.warning(
                "Endpoint %s: command %s failed with status %s",
                endpoint,
                hex_id(command_id, 2),
                hex_id(status, 2),
            )
        return ack

    def _write_response(self, endpoint: int, raw: Mapping[str, Any]) -> WriteResponse:
        (status,) = _data(raw, 1, "Write attribute response")
        response = WriteResponse(status=status)
        if not response.ok:
            _LOGGER.warning(
                "Endpoint %s: write attribute failed with status %s",
                endpoint,
                hex_id(status, 2),
            )
        return response
