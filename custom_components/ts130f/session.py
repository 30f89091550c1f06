"""Per-endpoint session state for the TS130F.

One EndpointSession exists per gang. It holds the last confirmed state the
device reported and exposes the command operations for its gang. State is
mutated only by decoded inbound frames (``apply``); issuing a command never
touches it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from .calibration import CalibrationState, CalibrationStateModel
from .codec import DecodedAttribute, UnknownAttribute
from .commands import Batch, CommandBatchBuilder
from .const import (
    ATTR_CALIBRATION_MODE,
    ATTR_CALIBRATION_TIME,
    ATTR_MOTOR_REVERSAL,
    ATTR_OPERATIONAL_STATUS,
    ATTR_POSITION_LIFT_PERCENTAGE,
    INTER_FRAME_DELAY_MS,
    CalibrationMode,
    MotorDirection,
    MovementStatus,
    ShadeState,
)
from .logtools import hex_id, kv
from .position import shade_state_for, shade_state_for_movement, to_user
from .router import AttributeReport, FrameDescriptor

_LOGGER = logging.getLogger(__name__)

# Session operations callable through CurtainHub.issue()
OPERATIONS: frozenset[str] = frozenset(
    {
        "open",
        "close",
        "stop",
        "set_position",
        "set_level",
        "start_position_change",
        "stop_position_change",
        "start_calibration",
        "stop_calibration",
        "set_motor_reversal",
        "set_calibration_time",
        "refresh",
        "configure_reporting",
        "write_attribute",
        "read_attribute",
    }
)


@dataclass(frozen=True)
class StateChange:
    """One field of a session that changed value."""

    endpoint: int
    field: str
    value: Any


class EndpointSession:
    """State and operations for one endpoint (gang)."""

    def __init__(self, endpoint: int, delay_ms: int = INTER_FRAME_DELAY_MS) -> None:
        self.endpoint = endpoint
        self._builder = CommandBatchBuilder(endpoint, delay_ms)
        self.calibration = CalibrationStateModel()
        self.reset()

    def reset(self) -> None:
        """Return every field to unknown/unset."""
        self.position_device: int | None = None
        self.position_user: int | None = None
        self.shade_state = ShadeState.UNKNOWN
        self.movement_status = MovementStatus.UNKNOWN
        self.motor_direction = MotorDirection.UNKNOWN
        self.calibration_time_seconds: float | None = None
        self.calibration.reset()

    @property
    def calibration_mode(self) -> CalibrationMode:
        return self.calibration.mode

    @property
    def calibration_state(self) -> CalibrationState:
        return self.calibration.state

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def apply(self, descriptor: FrameDescriptor) -> list[StateChange]:
        """Apply a routed descriptor and return the fields that changed.

        Acknowledgements never change state; the router already logged
        rejections.
        """
        if not isinstance(descriptor, AttributeReport):
            return []

        decoded = descriptor.decoded
        if isinstance(decoded, UnknownAttribute):
            _LOGGER.debug(
                "Endpoint %s: unknown attribute %s = %s",
                self.endpoint,
                hex_id(decoded.attr_id),
                decoded.raw,
            )
            return []

        changes: list[StateChange] = []
        handler = _HANDLERS[decoded.attr_id]
        handler(self, decoded, changes)
        for change in changes:
            kv(
                _LOGGER,
                logging.DEBUG,
                "State changed",
                endpoint=self.endpoint,
                field=change.field,
                value=change.value,
            )
        return changes

    def _set(self, changes: list[StateChange], field: str, value: Any) -> None:
        if getattr(self, field) == value:
            return
        setattr(self, field, value)
        changes.append(StateChange(self.endpoint, field, value))

    def _on_position(self, decoded: DecodedAttribute, changes: list[StateChange]) -> None:
        device_pos = decoded.value
        user_pos = to_user(device_pos)
        self._set(changes, "position_device", device_pos)
        self._set(changes, "position_user", user_pos)
        # A position report settles the shade state, even mid-movement
        self._set(changes, "shade_state", shade_state_for(user_pos))

    def _on_movement(self, decoded: DecodedAttribute, changes: list[StateChange]) -> None:
        status = decoded.value
        self._set(changes, "movement_status", status)
        shade_state = shade_state_for_movement(status)
        if shade_state is not None:
            self._set(changes, "shade_state", shade_state)

    def _on_calibration_mode(
        self, decoded: DecodedAttribute, changes: list[StateChange]
    ) -> None:
        previous_mode = self.calibration.mode
        transition = self.calibration.apply(decoded.value)
        if self.calibration.mode != previous_mode:
            changes.append(
                StateChange(self.endpoint, "calibration_mode", self.calibration.mode)
            )
        if transition is not None and transition.limits_saved:
            _LOGGER.info("Endpoint %s: calibration finished, limits saved", self.endpoint)
            changes.append(StateChange(self.endpoint, "limits_saved", True))

    def _on_motor_reversal(
        self, decoded: DecodedAttribute, changes: list[StateChange]
    ) -> None:
        self._set(changes, "motor_direction", decoded.value)

    def _on_calibration_time(
        self, decoded: DecodedAttribute, changes: list[StateChange]
    ) -> None:
        self._set(changes, "calibration_time_seconds", decoded.value)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def open(self) -> Batch:
        return self._builder.open()

    def close(self) -> Batch:
        return self._builder.close()

    def stop(self) -> Batch:
        return self._builder.stop()

    def set_position(self, user_pos: int) -> Batch:
        return self._builder.set_position(user_pos)

    def set_level(self, level: int) -> Batch:
        return self._builder.set_level(level)

    def start_position_change(self, direction: str) -> Batch:
        return self._builder.start_position_change(direction)

    def stop_position_change(self) -> Batch:
        return self._builder.stop_position_change()

    def start_calibration(self) -> Batch:
        return self._builder.start_calibration()

    def stop_calibration(self) -> Batch:
        return self._builder.stop_calibration()

    def set_motor_reversal(self, reversed_: bool) -> Batch:
        return self._builder.set_motor_reversal(reversed_)

    def set_calibration_time(self, seconds: float) -> Batch:
        return self._builder.set_calibration_time(seconds)

    def refresh(self) -> Batch:
        return self._builder.refresh()

    def configure_reporting(self) -> Batch:
        return self._builder.configure_reporting()

    def write_attribute(self, attr_id: int, data_type: int, value: int) -> Batch:
        return self._builder.write_attribute(attr_id, data_type, value)

    def read_attribute(self, attr_id: int) -> Batch:
        return self._builder.read_attribute(attr_id)

    # ------------------------------------------------------------------

    def as_dict(self) -> dict[str, Any]:
        """JSON-friendly snapshot for diagnostics."""
        return {
            "endpoint": self.endpoint,
            "position_user": self.position_user,
            "position_device": self.position_device,
            "shade_state": str(self.shade_state),
            "movement_status": str(self.movement_status),
            "calibration_mode": str(self.calibration_mode),
            "calibration_state": str(self.calibration_state),
            "limits_saved": self.calibration.limits_saved,
            "motor_direction": str(self.motor_direction),
            "calibration_time_seconds": self.calibration_time_seconds,
        }


_HANDLERS = {
    ATTR_POSITION_LIFT_PERCENTAGE: EndpointSession._on_position,
    ATTR_OPERATIONAL_STATUS: EndpointSession._on_movement,
    ATTR_CALIBRATION_MODE: EndpointSession._on_calibration_mode,
    ATTR_MOTOR_REVERSAL: EndpointSession._on_motor_reversal,
    ATTR_CALIBRATION_TIME: EndpointSession._on_calibration_time,
}


class SessionTable:
    """Endpoint id -> session, created on recognition, never removed."""

    def __init__(self, delay_ms: int = INTER_FRAME_DELAY_MS) -> None:
        self._delay_ms = delay_ms
        self._sessions: dict[int, EndpointSession] = {}

    def recognize(self, endpoint: int) -> EndpointSession:
        """Return the session for an endpoint, creating it on first sight."""
        session = self._sessions.get(endpoint)
        if session is None:
            session = EndpointSession(endpoint, self._delay_ms)
            self._sessions[endpoint] = session
            _LOGGER.debug("Created session for endpoint %s", endpoint)
        return session

    def get(self, endpoint: int) -> EndpointSession | None:
        return self._sessions.get(endpoint)

    def __contains__(self, endpoint: object) -> bool:
        return endpoint in self._sessions

    def __iter__(self) -> Iterator[EndpointSession]:
        return iter(sorted(self._sessions.values(), key=lambda s: s.endpoint))

    def __len__(self) -> int:
        return len(self._sessions)
