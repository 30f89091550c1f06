"""Constants for the TS130F dual curtain integration.

This module contains ALL constants used across the integration, organized by:
1. General integration constants
2. Zigbee cluster, attribute and command identifiers
3. Semantic value enumerations
4. Batching and reporting parameters
5. Service and event names

Device:
    LoraTap Zigbee curtain switch, two gangs (model TS130F, manufacturer
    _TZ3000_esynmmox). Each gang is a separate endpoint carrying its own
    WindowCovering cluster; the vendor attributes 0xF001-0xF003 live on that
    same cluster and do NOT need a manufacturer code.
"""

from enum import StrEnum
from typing import Final

# ============================================================================
# GENERAL INTEGRATION CONSTANTS
# ============================================================================

DOMAIN: Final = "ts130f"
MODEL: Final = "TS130F"

# Configuration (config entry data)
CONF_DEVICE_IEEE: Final = "device_ieee"
CONF_NAME: Final = "name"
CONF_ENDPOINTS: Final = "endpoints"

# Options (config entry options)
OPTION_FRAME_DELAY_MS: Final = "frame_delay_ms"

# Gang 1 and gang 2
DEFAULT_ENDPOINTS: Final = (1, 2)

# ============================================================================
# ZIGBEE CONSTANTS
# ============================================================================

CLUSTER_WINDOW_COVERING: Final = 0x0102

# WindowCovering attributes (standard)
ATTR_POSITION_LIFT_PERCENTAGE: Final = 0x0008  # 0=closed, 100=open
ATTR_OPERATIONAL_STATUS: Final = 0x0009  # movement status

# WindowCovering attributes (Tuya vendor extensions)
ATTR_CALIBRATION_MODE: Final = 0xF001  # 0=start/clear limits, 1=stop/save
ATTR_MOTOR_REVERSAL: Final = 0xF002  # 0=normal, 1=reversed
ATTR_CALIBRATION_TIME: Final = 0xF003  # travel time in 0.1s units

# WindowCovering cluster commands
CMD_UP_OPEN: Final = 0x00
CMD_DOWN_CLOSE: Final = 0x01
CMD_STOP: Final = 0x02
CMD_GO_TO_LIFT_PERCENTAGE: Final = 0x05

# ZCL general (foundation) command ids as rendered in inbound frames
GENERAL_CMD_WRITE_ATTRIBUTES_RSP: Final = 0x04
GENERAL_CMD_DEFAULT_RSP: Final = 0x0B

STATUS_SUCCESS: Final = 0x00

# ZCL data type tags
DATA_TYPE_UINT8: Final = 0x20
DATA_TYPE_UINT16: Final = 0x21
DATA_TYPE_ENUM8: Final = 0x30

DATA_TYPE_NAMES: Final = {
    "uint8": DATA_TYPE_UINT8,
    "uint16": DATA_TYPE_UINT16,
    "enum8": DATA_TYPE_ENUM8,
}

# Value width in bytes for each supported data type
DATA_TYPE_WIDTH: Final = {
    DATA_TYPE_UINT8: 1,
    DATA_TYPE_UINT16: 2,
    DATA_TYPE_ENUM8: 1,
}

# Raw operational status values
STATUS_STOPPED: Final = 0x00
STATUS_OPENING: Final = 0x01
STATUS_CLOSING: Final = 0x02

# Raw calibration mode values. The device has no separate "save" verb:
# the value that exits calibration also persists the learned limits.
CALIBRATION_MODE_START: Final = 0
CALIBRATION_MODE_STOP: Final = 1

POSITION_MIN: Final = 0
POSITION_MAX: Final = 100

# Calibration time is a uint16 of tenths of a second
CALIBRATION_TIME_MAX_TENTHS: Final = 0xFFFF

# ============================================================================
# SEMANTIC VALUES
# ============================================================================


class ShadeState(StrEnum):
    """User-facing window shade state."""

    OPEN = "open"
    CLOSED = "closed"
    PARTIALLY_OPEN = "partially_open"
    OPENING = "opening"
    CLOSING = "closing"
    UNKNOWN = "unknown"


class MovementStatus(StrEnum):
    """Decoded operational status (movement) report."""

    STOPPED = "stopped"
    OPENING = "opening"
    CLOSING = "closing"
    UNKNOWN = "unknown"


class CalibrationMode(StrEnum):
    """Decoded vendor calibration-mode attribute."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


class MotorDirection(StrEnum):
    """Decoded vendor motor-reversal attribute."""

    NORMAL = "normal"
    REVERSED = "reversed"
    UNKNOWN = "unknown"


# ============================================================================
# BATCHING AND REPORTING
# ============================================================================

# Delay inserted between frames of one batch so the device can process each
# command before the next one arrives.
INTER_FRAME_DELAY_MS: Final = 100
FRAME_DELAY_MS_MAX: Final = 1000

# Per-frame transport timeout (seconds)
FRAME_TIMEOUT: Final = 10.0

# Position reporting: min 1s, max 1h, change of 1%
REPORTING_MIN_INTERVAL: Final = 1
REPORTING_MAX_INTERVAL: Final = 3600
REPORTING_CHANGE: Final = 1

# ============================================================================
# SERVICES AND EVENTS
# ============================================================================

ATTR_ENDPOINT: Final = "endpoint"
ATTR_FIELD: Final = "field"
ATTR_VALUE: Final = "value"
ATTR_POSITION: Final = "position"
ATTR_DIRECTION: Final = "direction"
ATTR_SECONDS: Final = "seconds"
ATTR_REVERSED: Final = "reversed"
ATTR_ATTRIBUTE: Final = "attribute"
ATTR_DATA_TYPE: Final = "data_type"

SERVICE_OPEN: Final = "open"
SERVICE_CLOSE: Final = "close"
SERVICE_STOP: Final = "stop"
SERVICE_SET_POSITION: Final = "set_position"
SERVICE_START_POSITION_CHANGE: Final = "start_position_change"
SERVICE_START_CALIBRATION: Final = "start_calibration"
SERVICE_STOP_CALIBRATION: Final = "stop_calibration"
SERVICE_SET_CALIBRATION_TIME: Final = "set_calibration_time"
SERVICE_SET_MOTOR_REVERSAL: Final = "set_motor_reversal"
SERVICE_REFRESH: Final = "refresh"
SERVICE_CONFIGURE_REPORTING: Final = "configure_reporting"
SERVICE_WRITE_ATTRIBUTE: Final = "write_attribute"
SERVICE_READ_ATTRIBUTE: Final = "read_attribute"

EVENT_TS130F_STATE_CHANGED: Final = "ts130f_state_changed"

# Dispatcher signal, suffixed with the config entry id
SIGNAL_STATE_CHANGED: Final = "ts130f_state_changed"
