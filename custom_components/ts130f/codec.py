"""Attribute codec for the TS130F WindowCovering cluster.

Pure encode/decode of the individual attribute values the integration
models. Decoding maps (attribute id, raw value) to a semantic value;
encoding maps a semantic value back to (data type tag, raw value) for an
attribute write.

Supported attributes (cluster 0x0102):

    | id     | name                     | raw -> semantic                          |
    |--------|--------------------------|------------------------------------------|
    | 0x0008 | position_lift_percentage | identity, clamped to 0..100              |
    | 0x0009 | operational_status       | 0 stopped, 1 opening, 2 closing, else ?  |
    | 0xF001 | calibration_mode         | 0 active, 1 inactive                     |
    | 0xF002 | motor_reversal           | 0 normal, 1 reversed                     |
    | 0xF003 | calibration_time         | tenths of a second -> seconds            |

Anything else decodes to UnknownAttribute. Callers log and discard those;
an unknown attribute is never an error.

Raw values arrive either as ints (zigpy) or as big-endian hex strings (the
way hosts render attribute values, e.g. "00FF" for 255).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable

from .const import (
    ATTR_CALIBRATION_MODE,
    ATTR_CALIBRATION_TIME,
    ATTR_MOTOR_REVERSAL,
    ATTR_OPERATIONAL_STATUS,
    ATTR_POSITION_LIFT_PERCENTAGE,
    CALIBRATION_MODE_START,
    CALIBRATION_MODE_STOP,
    CALIBRATION_TIME_MAX_TENTHS,
    DATA_TYPE_ENUM8,
    DATA_TYPE_UINT8,
    DATA_TYPE_UINT16,
    STATUS_CLOSING,
    STATUS_OPENING,
    STATUS_STOPPED,
    CalibrationMode,
    MotorDirection,
    MovementStatus,
)
from .position import clamp_position

_LOGGER = logging.getLogger(__name__)


class CodecError(ValueError):
    """Raised when a value cannot be encoded or a raw value is unreadable."""


@dataclass(frozen=True)
class DecodedAttribute:
    """A decoded attribute value.

    Attributes:
        attr_id: Attribute id the value was reported for
        name: Attribute name (e.g. "calibration_time")
        raw: Raw integer value as received
        value: Semantic value (int, float or one of the const enums)
    """

    attr_id: int
    name: str
    raw: int
    value: Any


@dataclass(frozen=True)
class UnknownAttribute:
    """An attribute report the codec does not model."""

    attr_id: int
    raw: Any


@dataclass(frozen=True)
class AttributeCodec:
    """Decode/encode rules for one attribute."""

    name: str
    data_type: int
    decode: Callable[[int], Any]
    encode: Callable[[Any], int] | None = None

    @property
    def writable(self) -> bool:
        return self.encode is not None


def parse_raw_int(raw: Any) -> int:
    """Coerce a raw attribute value into an int.

    Accepts ints (including zigpy integer types and enums) and big-endian
    hex strings. Booleans are treated as 0/1.

    Raises:
        CodecError: If the value is missing or not parseable
    """
    if raw is None:
        raise CodecError("Missing attribute value")
    if isinstance(raw, int):
        return int(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if text.lower().startswith("0x"):
            text = text[2:]
        try:
            return int(text, 16)
        except ValueError as err:
            raise CodecError(f"Unparseable hex value: {raw!r}") from err
    raise CodecError(f"Unsupported raw value type: {type(raw).__name__}")


# ----------------------------------------------------------------------------
# Per-attribute rules
# ----------------------------------------------------------------------------


def _decode_movement(raw: int) -> MovementStatus:
    if raw == STATUS_STOPPED:
        return MovementStatus.STOPPED
    if raw == STATUS_OPENING:
        return MovementStatus.OPENING
    if raw == STATUS_CLOSING:
        return MovementStatus.CLOSING
    return MovementStatus.UNKNOWN


def _decode_calibration_mode(raw: int) -> CalibrationMode:
    # 0 = calibrating (limits cleared), anything else = normal operation
    return CalibrationMode.ACTIVE if raw == CALIBRATION_MODE_START else CalibrationMode.INACTIVE


def _encode_calibration_mode(value: Any) -> int:
    if value == CalibrationMode.ACTIVE:
        return CALIBRATION_MODE_START
    if value == CalibrationMode.INACTIVE:
        return CALIBRATION_MODE_STOP
    raise CodecError(f"Cannot encode calibration mode {value!r}")


def _decode_motor_direction(raw: int) -> MotorDirection:
    return MotorDirection.NORMAL if raw == 0 else MotorDirection.REVERSED


def _encode_motor_direction(value: Any) -> int:
    if isinstance(value, bool):
        return 1 if value else 0
    if value == MotorDirection.NORMAL:
        return 0
    if value == MotorDirection.REVERSED:
        return 1
    raise CodecError(f"Cannot encode motor direction {value!r}")


def seconds_from_tenths(tenths: int) -> float:
    """Convert device tenths of a second into seconds (one decimal)."""
    return max(0, tenths) / 10


def tenths_from_seconds(seconds: float) -> int:
    """Convert seconds into device tenths, rounded and clamped to uint16."""
    try:
        value = float(seconds)
    except (TypeError, ValueError) as err:
        raise CodecError(f"Invalid calibration time: {seconds!r}") from err
    if math.isnan(value):
        raise CodecError(f"Invalid calibration time: {seconds!r}")
    if math.isinf(value):
        return CALIBRATION_TIME_MAX_TENTHS if value > 0 else 0
    tenths = round(value * 10)
    return max(0, min(CALIBRATION_TIME_MAX_TENTHS, tenths))


ATTRIBUTE_CODECS: dict[int, AttributeCodec] = {
    ATTR_POSITION_LIFT_PERCENTAGE: AttributeCodec(
        name="position_lift_percentage",
        data_type=DATA_TYPE_UINT8,
        decode=clamp_position,
        encode=clamp_position,
    ),
    ATTR_OPERATIONAL_STATUS: AttributeCodec(
        name="operational_status",
        data_type=DATA_TYPE_ENUM8,
        decode=_decode_movement,
    ),
    ATTR_CALIBRATION_MODE: AttributeCodec(
        name="calibration_mode",
        data_type=DATA_TYPE_ENUM8,
        decode=_decode_calibration_mode,
        encode=_encode_calibration_mode,
    ),
    ATTR_MOTOR_REVERSAL: AttributeCodec(
        name="motor_reversal",
        data_type=DATA_TYPE_ENUM8,
        decode=_decode_motor_direction,
        encode=_encode_motor_direction,
    ),
    ATTR_CALIBRATION_TIME: AttributeCodec(
        name="calibration_time",
        data_type=DATA_TYPE_UINT16,
        decode=seconds_from_tenths,
        encode=tenths_from_seconds,
    ),
}


def decode(attr_id: int, raw: Any) -> DecodedAttribute | UnknownAttribute:
    """Decode a raw attribute value.

    Args:
        attr_id: Attribute id from the report
        raw: Raw value (int or big-endian hex string)

    Returns:
        DecodedAttribute for modeled attributes, UnknownAttribute otherwise

    Raises:
        CodecError: If a modeled attribute carries an unreadable value
    """
    codec = ATTRIBUTE_CODECS.get(attr_id)
    if codec is None:
        return UnknownAttribute(attr_id=attr_id, raw=raw)

    raw_int = parse_raw_int(raw)
    return DecodedAttribute(
        attr_id=attr_id,
        name=codec.name,
        raw=raw_int,
        value=codec.decode(raw_int),
    )


def encode(attr_id: int, value: Any) -> tuple[int, int]:
    """Encode a semantic value for an attribute write.

    Returns:
        Tuple of (data_type_tag, raw_value)

    Raises:
        CodecError: If the attribute is unknown, read-only, or the value
            has no wire representation
    """
    codec = ATTRIBUTE_CODECS.get(attr_id)
    if codec is None:
        raise CodecError(f"Unknown attribute 0x{attr_id:04X}")
    if codec.encode is None:
        raise CodecError(f"Attribute {codec.name} (0x{attr_id:04X}) is read-only")
    return codec.data_type, codec.encode(value)
