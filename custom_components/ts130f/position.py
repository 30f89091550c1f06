"""Position translation between the host and the TS130F.

The device reports and accepts lift percentage the Zigbee way
(0 = fully closed, 100 = fully open). The host side uses the inverted
"window shade" convention (0 = fully open, 100 = fully closed).

Both directions clamp before AND after inverting, so out-of-range upstream
values never produce an out-of-range result. On the clamped domain the
transform is its own inverse: to_user(to_device(p)) == p for 0 <= p <= 100.
"""

from __future__ import annotations

import logging

from .const import POSITION_MAX, POSITION_MIN, MovementStatus, ShadeState

_LOGGER = logging.getLogger(__name__)


def clamp_position(value: int) -> int:
    """Clamp a position into [0, 100]."""
    return max(POSITION_MIN, min(POSITION_MAX, int(value)))


def _invert(value: int) -> int:
    return clamp_position(POSITION_MAX - clamp_position(value))


def to_device(user_pos: int) -> int:
    """Convert a host position (0=open) into a device position (0=closed)."""
    return _invert(user_pos)


def to_user(device_pos: int) -> int:
    """Convert a device position (0=closed) into a host position (0=open)."""
    return _invert(device_pos)


def shade_state_for(user_pos: int) -> ShadeState:
    """Derive the resting shade state from a host position."""
    user_pos = clamp_position(user_pos)
    if user_pos == POSITION_MIN:
        return ShadeState.OPEN
    if user_pos == POSITION_MAX:
        return ShadeState.CLOSED
    return ShadeState.PARTIALLY_OPEN


def shade_state_for_movement(status: MovementStatus) -> ShadeState | None:
    """Return the transient shade state for a movement report.

    Returns None when the report must not touch the shade state: a stop
    alone does not reveal where the curtain came to rest, so the next
    position report settles it. Unknown codes are ignored as well.
    """
    if status == MovementStatus.OPENING:
        return ShadeState.OPENING
    if status == MovementStatus.CLOSING:
        return ShadeState.CLOSING
    if status == MovementStatus.UNKNOWN:
        _LOGGER.debug("Ignoring unknown movement status for shade state")
    return None
