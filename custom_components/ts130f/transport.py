"""ZHA transport for TS130F command batches.

Bridges the synchronous protocol engine to zigpy:

    Outbound: ZHATransport.send(batch) schedules the batch on the event loop.
        Batches run one at a time (asyncio.Lock); spacing markers become
        asyncio.sleep. Each frame has its own timeout. A failed frame is
        logged and the rest of the batch still runs.

    Inbound: replies to our frames (default response, write response,
        read records) and unsolicited cluster traffic captured by
        WindowCoveringListener are rendered as raw frames and handed to
        the engine's on_frame_received.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from async_timeout import timeout
from homeassistant.core import HomeAssistant
from zigpy import types as t
from zigpy.zcl import foundation

from .commands import Batch, CommandFrame, Delay, FrameKind
from .const import (
    CLUSTER_WINDOW_COVERING,
    DATA_TYPE_ENUM8,
    DATA_TYPE_UINT8,
    DATA_TYPE_UINT16,
    FRAME_TIMEOUT,
    GENERAL_CMD_DEFAULT_RSP,
    GENERAL_CMD_WRITE_ATTRIBUTES_RSP,
    STATUS_SUCCESS,
)
from .logtools import hex_id

if TYPE_CHECKING:
    from zigpy.zcl import Cluster

_LOGGER = logging.getLogger(__name__)

FrameSink = Callable[[Mapping[str, Any]], None]
ClusterLookup = Callable[[int], "Cluster | None"]

_ZIGPY_TYPES: dict[int, type] = {
    DATA_TYPE_UINT8: t.uint8_t,
    DATA_TYPE_UINT16: t.uint16_t,
    DATA_TYPE_ENUM8: t.uint8_t,
}


# ============================================================================
# RAW FRAME RENDERING
# ============================================================================


def attribute_frame(endpoint: int, attr_id: int, value: Any) -> dict[str, Any]:
    return {
        "endpoint": endpoint,
        "clusterInt": CLUSTER_WINDOW_COVERING,
        "attrInt": int(attr_id),
        "value": int(value),
    }


def default_response_frame(endpoint: int, command_id: int, status: int) -> dict[str, Any]:
    return {
        "endpoint": endpoint,
        "clusterInt": CLUSTER_WINDOW_COVERING,
        "command": f"{GENERAL_CMD_DEFAULT_RSP:02X}",
        "data": [int(command_id), int(status)],
    }


def write_response_frame(endpoint: int, status: int) -> dict[str, Any]:
    return {
        "endpoint": endpoint,
        "clusterInt": CLUSTER_WINDOW_COVERING,
        "command": f"{GENERAL_CMD_WRITE_ATTRIBUTES_RSP:02X}",
        "data": [int(status)],
    }


def _reply_records(reply: Any) -> list[Any]:
    """Return the record list of a zigpy foundation reply."""
    if reply is None:
        return []
    records = getattr(reply, "status_records", None)
    if records is None:
        records = getattr(reply, "attribute_records", None)
    if records is None and isinstance(reply, (list, tuple)) and reply:
        records = reply[0]
    if not isinstance(records, (list, tuple)):
        return []
    return list(records)


def _unwrap_value(value: Any) -> Any:
    # ReadAttributeRecord.value is a TypeValue
    return getattr(value, "value", value)


# ============================================================================
# OUTBOUND
# ============================================================================


class ZHATransport:
    """Executes batches against the zigpy WindowCovering clusters.

    Args:
        hass: Home Assistant instance (task scheduling)
        cluster_lookup: Returns the WindowCovering cluster of an endpoint
        deliver: Receives raw frames rendered from replies
        frame_timeout: Per-frame timeout in seconds
    """

    def __init__(
        self,
        hass: HomeAssistant,
        cluster_lookup: ClusterLookup,
        deliver: FrameSink,
        frame_timeout: float = FRAME_TIMEOUT,
    ) -> None:
        self.hass = hass
        self._cluster_lookup = cluster_lookup
        self._deliver = deliver
        self._frame_timeout = frame_timeout
        self._lock = asyncio.Lock()

    def send(self, batch: Batch) -> None:
        if not batch:
            return
        self.hass.async_create_task(self.async_send(batch))

    async def async_send(self, batch: Batch) -> None:
        """Run one batch to completion."""
        async with self._lock:
            for item in batch:
                if isinstance(item, Delay):
                    await asyncio.sleep(item.ms / 1000)
                    continue
                await self._async_send_frame(item)

    async def _async_send_frame(self, frame: CommandFrame) -> None:
        cluster = self._cluster_lookup(frame.endpoint)
        if cluster is None:
            _LOGGER.warning(
                "No WindowCovering cluster for endpoint %s, dropping %s",
                frame.endpoint,
                frame.describe(),
            )
            return

        _LOGGER.debug("Sending %s", frame.describe())
        try:
            async with timeout(self._frame_timeout):
                if frame.kind == FrameKind.COMMAND:
                    reply = await cluster.command(frame.command_id, *frame.args)
                    self._handle_command_reply(frame, reply)
                elif frame.kind == FrameKind.WRITE_ATTRIBUTE:
                    reply = await cluster.write_attributes_raw(
                        [
                            foundation.Attribute(
                                attrid=frame.attr_id,
                                value=foundation.TypeValue(
                                    type=frame.data_type,
                                    value=_ZIGPY_TYPES[frame.data_type](frame.value),
                                ),
                            )
                        ]
                    )
                    self._handle_write_reply(frame, reply)
                elif frame.kind == FrameKind.READ_ATTRIBUTE:
                    reply = await cluster.read_attributes_raw([frame.attr_id])
                    self._handle_read_reply(frame, reply)
                else:
                    reply = await cluster.configure_reporting(
                        frame.attr_id,
                        frame.min_interval,
                        frame.max_interval,
                        frame.reportable_change,
                    )
                    _LOGGER.debug(
                        "Configure reporting reply for %s: %s", frame.describe(), reply
                    )
        except Exception as err:
            _LOGGER.warning("Frame failed (%s): %s", frame.describe(), err)

    def _handle_command_reply(self, frame: CommandFrame, reply: Any) -> None:
        status = getattr(reply, "status", None)
        if status is None and isinstance(reply, (list, tuple)) and len(reply) >= 2:
            status = reply[1]
        if status is None:
            return
        command_id = getattr(reply, "command_id", frame.command_id)
        self._deliver(default_response_frame(frame.endpoint, command_id, status))

    def _handle_write_reply(self, frame: CommandFrame, reply: Any) -> None:
        status = STATUS_SUCCESS
        for record in _reply_records(reply):
            record_status = int(getattr(record, "status", STATUS_SUCCESS))
            if record_status != STATUS_SUCCESS:
                status = record_status
                break
        self._deliver(write_response_frame(frame.endpoint, status))

    def _handle_read_reply(self, frame: CommandFrame, reply: Any) -> None:
        for record in _reply_records(reply):
            record_status = int(getattr(record, "status", STATUS_SUCCESS))
            attr_id = getattr(record, "attrid", frame.attr_id)
            if record_status != STATUS_SUCCESS:
                _LOGGER.warning(
                    "Endpoint %s: read of %s failed with status %s",
                    frame.endpoint,
                    hex_id(attr_id),
                    hex_id(record_status, 2),
                )
                continue
            value = _unwrap_value(getattr(record, "value", None))
            if value is None:
                continue
            self._deliver(attribute_frame(frame.endpoint, attr_id, value))


# ============================================================================
# INBOUND
# ============================================================================


class WindowCoveringListener:
    """zigpy cluster listener forwarding traffic as raw frames."""

    def __init__(self, endpoint: int, deliver: FrameSink) -> None:
        self.endpoint = endpoint
        self._deliver = deliver

    def attribute_updated(self, attrid: int, value: Any, *_: Any) -> None:
        value = _unwrap_value(value)
        if value is None:
            return
        self._deliver(attribute_frame(self.endpoint, attrid, value))

    def general_command(self, hdr: Any, args: Any, *_: Any) -> None:
        # Report_Attributes already arrives through attribute_updated
        if getattr(hdr, "command_id", None) != GENERAL_CMD_DEFAULT_RSP:
            return
        command_id = getattr(args, "command_id", None)
        status = getattr(args, "status", None)
        if command_id is None or status is None:
            return
        self._deliver(default_response_frame(self.endpoint, command_id, status))

    def cluster_command(self, *_: Any) -> None:
        return None
