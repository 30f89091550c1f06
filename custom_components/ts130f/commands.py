"""Command batch builder for the TS130F.

Every host operation on a gang becomes an ordered batch of command frames
with spacing markers between them:

    open()                 -> [cmd 0x00]
    set_position(30)       -> [cmd 0x05 (device 70)]
    start_calibration()    -> [write 0xF001=0, delay, read 0xF001]
    refresh()              -> [read 0x0008, delay, read 0xF001, delay,
                               read 0xF002, delay, read 0xF003]

Writes to the vendor attributes are always followed by a read-back of the
same attribute; the read-back reply is what moves session state. Position
commands are not read back, position reports arrive on their own.

Building a batch has no side effects. Handing it to a transport is the
caller's job.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .codec import encode
from .const import (
    ATTR_CALIBRATION_MODE,
    ATTR_CALIBRATION_TIME,
    ATTR_MOTOR_REVERSAL,
    ATTR_POSITION_LIFT_PERCENTAGE,
    CLUSTER_WINDOW_COVERING,
    CMD_DOWN_CLOSE,
    CMD_GO_TO_LIFT_PERCENTAGE,
    CMD_STOP,
    CMD_UP_OPEN,
    DATA_TYPE_UINT8,
    DATA_TYPE_WIDTH,
    INTER_FRAME_DELAY_MS,
    REPORTING_CHANGE,
    REPORTING_MAX_INTERVAL,
    REPORTING_MIN_INTERVAL,
    CalibrationMode,
)
from .logtools import hex_id
from .position import to_device

_LOGGER = logging.getLogger(__name__)

# Attributes read by refresh(), in order
REFRESH_ATTRIBUTES: tuple[int, ...] = (
    ATTR_POSITION_LIFT_PERCENTAGE,
    ATTR_CALIBRATION_MODE,
    ATTR_MOTOR_REVERSAL,
    ATTR_CALIBRATION_TIME,
)


class FrameKind(StrEnum):
    """Shape of an outbound frame."""

    COMMAND = "command"
    WRITE_ATTRIBUTE = "write_attribute"
    READ_ATTRIBUTE = "read_attribute"
    CONFIGURE_REPORTING = "configure_reporting"


@dataclass(frozen=True)
class CommandFrame:
    """One outbound frame addressed to a single endpoint.

    Which fields are set depends on ``kind``:

    - COMMAND: command_id, args
    - WRITE_ATTRIBUTE: attr_id, data_type, value
    - READ_ATTRIBUTE: attr_id
    - CONFIGURE_REPORTING: attr_id, data_type, min_interval, max_interval,
      reportable_change
    """

    endpoint: int
    kind: FrameKind
    cluster: int = CLUSTER_WINDOW_COVERING
    command_id: int | None = None
    args: tuple[int, ...] = ()
    attr_id: int | None = None
    data_type: int | None = None
    value: int | None = None
    min_interval: int | None = None
    max_interval: int | None = None
    reportable_change: int | None = None

    @property
    def payload(self) -> bytes:
        """Big-endian rendering of the frame payload."""
        if self.kind == FrameKind.COMMAND:
            return bytes(self.args)
        if self.kind == FrameKind.READ_ATTRIBUTE:
            return self.attr_id.to_bytes(2, "big")
        width = DATA_TYPE_WIDTH[self.data_type]
        if self.kind == FrameKind.WRITE_ATTRIBUTE:
            return (
                self.attr_id.to_bytes(2, "big")
                + bytes([self.data_type])
                + self.value.to_bytes(width, "big")
            )
        # configure reporting: direction, attr, type, min, max, change
        return (
            b"\x00"
            + self.attr_id.to_bytes(2, "big")
            + bytes([self.data_type])
            + self.min_interval.to_bytes(2, "big")
            + self.max_interval.to_bytes(2, "big")
            + self.reportable_change.to_bytes(width, "big")
        )

    def describe(self) -> str:
        """Compact one-line rendering for logs."""
        if self.kind == FrameKind.COMMAND:
            return f"ep={self.endpoint} cmd={hex_id(self.command_id, 2)} args={list(self.args)}"
        if self.kind == FrameKind.WRITE_ATTRIBUTE:
            return (
                f"ep={self.endpoint} write {hex_id(self.attr_id)}"
                f"={self.value} type={hex_id(self.data_type, 2)}"
            )
        if self.kind == FrameKind.READ_ATTRIBUTE:
            return f"ep={self.endpoint} read {hex_id(self.attr_id)}"
        return (
            f"ep={self.endpoint} report {hex_id(self.attr_id)} "
            f"min={self.min_interval} max={self.max_interval} "
            f"change={self.reportable_change}"
        )


@dataclass(frozen=True)
class Delay:
    """Spacing marker between two frames of a batch."""

    ms: int


@dataclass(frozen=True)
class Batch:
    """Ordered frames and spacing markers to be sent as one unit."""

    items: tuple[CommandFrame | Delay, ...] = field(default_factory=tuple)

    @property
    def frames(self) -> list[CommandFrame]:
        return [item for item in self.items if isinstance(item, CommandFrame)]

    @property
    def markers(self) -> list[Delay]:
        return [item for item in self.items if isinstance(item, Delay)]

    def __iter__(self) -> Iterator[CommandFrame | Delay]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)


def build_batch(
    frames: Iterable[CommandFrame | None], delay_ms: int = INTER_FRAME_DELAY_MS
) -> Batch:
    """Assemble frames into a batch with a marker between consecutive frames.

    None entries are dropped, so an all-empty input yields an empty batch.
    A single frame gets no marker.
    """
    items: list[CommandFrame | Delay] = []
    for frame in frames:
        if frame is None:
            continue
        if items:
            items.append(Delay(delay_ms))
        items.append(frame)
    return Batch(tuple(items))


# ----------------------------------------------------------------------------
# Frame factories
# ----------------------------------------------------------------------------


def command_frame(endpoint: int, command_id: int, *args: int) -> CommandFrame:
    return CommandFrame(
        endpoint=endpoint,
        kind=FrameKind.COMMAND,
        command_id=command_id,
        args=tuple(args),
    )


def write_frame(endpoint: int, attr_id: int, data_type: int, value: int) -> CommandFrame:
    return CommandFrame(
        endpoint=endpoint,
        kind=FrameKind.WRITE_ATTRIBUTE,
        attr_id=attr_id,
        data_type=data_type,
        value=value,
    )


def read_frame(endpoint: int, attr_id: int) -> CommandFrame:
    return CommandFrame(
        endpoint=endpoint, kind=FrameKind.READ_ATTRIBUTE, attr_id=attr_id
    )


def configure_reporting_frame(
    endpoint: int,
    attr_id: int,
    data_type: int,
    min_interval: int,
    max_interval: int,
    reportable_change: int,
) -> CommandFrame:
    return CommandFrame(
        endpoint=endpoint,
        kind=FrameKind.CONFIGURE_REPORTING,
        attr_id=attr_id,
        data_type=data_type,
        min_interval=min_interval,
        max_interval=max_interval,
        reportable_change=reportable_change,
    )


def _check_raw_value(data_type: int, value: int) -> None:
    width = DATA_TYPE_WIDTH.get(data_type)
    if width is None:
        raise ValueError(f"Unsupported data type {hex_id(data_type, 2)}")
    if not 0 <= value < (1 << (8 * width)):
        raise ValueError(
            f"Value {value} does not fit data type {hex_id(data_type, 2)}"
        )


# ----------------------------------------------------------------------------
# Builder
# ----------------------------------------------------------------------------


class CommandBatchBuilder:
    """Builds command batches for one endpoint.

    Args:
        endpoint: Endpoint (gang) id the frames are addressed to
        delay_ms: Spacing between frames of one batch
    """

    def __init__(self, endpoint: int, delay_ms: int = INTER_FRAME_DELAY_MS) -> None:
        self.endpoint = endpoint
        self.delay_ms = delay_ms

    def _batch(self, *frames: CommandFrame | None) -> Batch:
        return build_batch(frames, self.delay_ms)

    def _write_with_readback(self, attr_id: int, value: Any) -> Batch:
        data_type, raw = encode(attr_id, value)
        return self._batch(
            write_frame(self.endpoint, attr_id, data_type, raw),
            read_frame(self.endpoint, attr_id),
        )

    # -- movement ---------------------------------------------------------

    def open(self) -> Batch:
        return self._batch(command_frame(self.endpoint, CMD_UP_OPEN))

    def close(self) -> Batch:
        return self._batch(command_frame(self.endpoint, CMD_DOWN_CLOSE))

    def stop(self) -> Batch:
        return self._batch(command_frame(self.endpoint, CMD_STOP))

    def set_position(self, user_pos: int) -> Batch:
        """Move to a host position (0=open, 100=closed).

        The device receives the inverted position. No read-back is sent;
        the device reports position on its own while moving.
        """
        if user_pos is None:
            _LOGGER.warning("Endpoint %s: set_position called without a position", self.endpoint)
            return Batch()
        device_pos = to_device(user_pos)
        return self._batch(
            command_frame(self.endpoint, CMD_GO_TO_LIFT_PERCENTAGE, device_pos)
        )

    def set_level(self, level: int) -> Batch:
        return self.set_position(level)

    def start_position_change(self, direction: str) -> Batch:
        if direction == "open":
            return self.open()
        if direction == "close":
            return self.close()
        _LOGGER.warning(
            "Endpoint %s: unsupported position change direction %r",
            self.endpoint,
            direction,
        )
        return Batch()

    def stop_position_change(self) -> Batch:
        return self.stop()

    # -- calibration ------------------------------------------------------

    def start_calibration(self) -> Batch:
        return self._write_with_readback(ATTR_CALIBRATION_MODE, CalibrationMode.ACTIVE)

    def stop_calibration(self) -> Batch:
        return self._write_with_readback(ATTR_CALIBRATION_MODE, CalibrationMode.INACTIVE)

    def set_motor_reversal(self, reversed_: bool) -> Batch:
        return self._write_with_readback(ATTR_MOTOR_REVERSAL, bool(reversed_))

    def set_calibration_time(self, seconds: float) -> Batch:
        return self._write_with_readback(ATTR_CALIBRATION_TIME, seconds)

    # -- maintenance ------------------------------------------------------

    def refresh(self) -> Batch:
        return self._batch(
            *(read_frame(self.endpoint, attr_id) for attr_id in REFRESH_ATTRIBUTES)
        )

    def configure_reporting(self) -> Batch:
        return self._batch(
            configure_reporting_frame(
                self.endpoint,
                ATTR_POSITION_LIFT_PERCENTAGE,
                DATA_TYPE_UINT8,
                REPORTING_MIN_INTERVAL,
                REPORTING_MAX_INTERVAL,
                REPORTING_CHANGE,
            )
        )

    def write_attribute(self, attr_id: int, data_type: int, value: int) -> Batch:
        """Raw attribute write without read-back.

        Raises:
            ValueError: If the data type is unsupported or the value does
                not fit it
        """
        _check_raw_value(data_type, value)
        return self._batch(write_frame(self.endpoint, attr_id, data_type, value))

    def read_attribute(self, attr_id: int) -> Batch:
        return self._batch(read_frame(self.endpoint, attr_id))
