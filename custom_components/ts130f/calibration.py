"""Calibration state model for one TS130F gang.

The TS130F learns its travel limits from a single two-valued vendor
attribute (0xF001):

    write 0  ->  enter calibration, clear stored limits
    write 1  ->  leave calibration, persist the learned limits

There is no separate "save" verb. Calibration runs like this:

    1. start_calibration: write 0 and read it back
    2. the user drives the curtain to both end stops
    3. stop_calibration: write 1 and read it back

State only moves when the read-back (or an unsolicited report) confirms
it. If a write is lost, the state stays on the last confirmed value. No
timeouts or retries happen here; a refresh re-synchronizes.

    UNKNOWN --(read 0)--> CALIBRATING --(read 1)--> IDLE (limits saved)
       |                      ^                      |
       +-------(read 1)-------|----> IDLE            |
                              +-------(read 0)-------+
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .const import CalibrationMode

_LOGGER = logging.getLogger(__name__)


class CalibrationState(StrEnum):
    """Confirmed calibration phase of one gang."""

    UNKNOWN = "unknown"
    IDLE = "idle"
    CALIBRATING = "calibrating"


@dataclass(frozen=True)
class CalibrationTransition:
    """A confirmed state change."""

    previous: CalibrationState
    current: CalibrationState
    limits_saved: bool = False


_MODE_TO_STATE: dict[CalibrationMode, CalibrationState] = {
    CalibrationMode.ACTIVE: CalibrationState.CALIBRATING,
    CalibrationMode.INACTIVE: CalibrationState.IDLE,
    CalibrationMode.UNKNOWN: CalibrationState.UNKNOWN,
}


class CalibrationStateModel:
    """Tracks the confirmed calibration state of one endpoint."""

    def __init__(self) -> None:
        self._state = CalibrationState.UNKNOWN
        self._mode = CalibrationMode.UNKNOWN
        self._limits_saved = False

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def mode(self) -> CalibrationMode:
        return self._mode

    @property
    def limits_saved(self) -> bool:
        """True once a calibration run was confirmed finished."""
        return self._limits_saved

    def apply(self, mode: CalibrationMode) -> CalibrationTransition | None:
        """Apply a confirmed calibration-mode value.

        Returns the transition when the confirmed state changed, None when
        the value only repeats what was already known.
        """
        new_state = _MODE_TO_STATE[mode]
        previous = self._state
        self._mode = mode
        if new_state == previous:
            return None

        self._state = new_state
        limits_saved = (
            previous == CalibrationState.CALIBRATING
            and new_state == CalibrationState.IDLE
        )
        if new_state == CalibrationState.CALIBRATING:
            # Entering calibration clears the device's stored limits
            self._limits_saved = False
        elif limits_saved:
            self._limits_saved = True

        _LOGGER.debug(
            "Calibration state %s -> %s (limits_saved=%s)",
            previous,
            new_state,
            limits_saved,
        )
        return CalibrationTransition(
            previous=previous, current=new_state, limits_saved=limits_saved
        )

    def reset(self) -> None:
        self._state = CalibrationState.UNKNOWN
        self._mode = CalibrationMode.UNKNOWN
        self._limits_saved = False
