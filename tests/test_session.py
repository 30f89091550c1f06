"""Tests for endpoint session state updates."""

from __future__ import annotations

import logging

from custom_components.ts130f.calibration import CalibrationState
from custom_components.ts130f.codec import decode
from custom_components.ts130f.const import (
    ATTR_CALIBRATION_MODE,
    ATTR_CALIBRATION_TIME,
    ATTR_MOTOR_REVERSAL,
    ATTR_OPERATIONAL_STATUS,
    ATTR_POSITION_LIFT_PERCENTAGE,
    CalibrationMode,
    MotorDirection,
    MovementStatus,
    ShadeState,
)
from custom_components.ts130f.router import AttributeReport, CommandAck, WriteResponse
from custom_components.ts130f.session import EndpointSession, SessionTable, StateChange


def _report(attr_id: int, raw) -> AttributeReport:
    return AttributeReport(attr_id, raw, decode(attr_id, raw))


def _fields(changes: list[StateChange]) -> dict[str, object]:
    return {change.field: change.value for change in changes}


def test_new_session_is_unknown() -> None:
    session = EndpointSession(1)
    assert session.position_user is None
    assert session.position_device is None
    assert session.shade_state == ShadeState.UNKNOWN
    assert session.calibration_mode == CalibrationMode.UNKNOWN
    assert session.motor_direction == MotorDirection.UNKNOWN
    assert session.calibration_time_seconds is None


def test_position_report_updates_both_positions_and_shade() -> None:
    session = EndpointSession(1)
    changes = session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "46"))
    assert _fields(changes) == {
        "position_device": 70,
        "position_user": 30,
        "shade_state": ShadeState.PARTIALLY_OPEN,
    }
    assert session.position_user + session.position_device == 100


def test_position_extremes() -> None:
    session = EndpointSession(1)
    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "64"))
    assert session.position_user == 0
    assert session.shade_state == ShadeState.OPEN
    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "00"))
    assert session.position_user == 100
    assert session.shade_state == ShadeState.CLOSED


def test_repeated_report_produces_no_changes() -> None:
    session = EndpointSession(1)
    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "46"))
    assert session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "46")) == []


def test_movement_overrides_then_position_settles() -> None:
    session = EndpointSession(2)
    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "32"))

    changes = session.apply(_report(ATTR_OPERATIONAL_STATUS, "02"))
    assert _fields(changes) == {
        "movement_status": MovementStatus.CLOSING,
        "shade_state": ShadeState.CLOSING,
    }

    # stop alone leaves the shade state as it was
    changes = session.apply(_report(ATTR_OPERATIONAL_STATUS, "00"))
    assert _fields(changes) == {"movement_status": MovementStatus.STOPPED}
    assert session.shade_state == ShadeState.CLOSING

    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "00"))
    assert session.shade_state == ShadeState.CLOSED


def test_unknown_movement_does_not_touch_shade() -> None:
    session = EndpointSession(1)
    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "32"))
    session.apply(_report(ATTR_OPERATIONAL_STATUS, "09"))
    assert session.shade_state == ShadeState.PARTIALLY_OPEN
    assert session.movement_status == MovementStatus.UNKNOWN


def test_calibration_confirmations() -> None:
    session = EndpointSession(1)
    changes = session.apply(_report(ATTR_CALIBRATION_MODE, "00"))
    assert _fields(changes) == {"calibration_mode": CalibrationMode.ACTIVE}
    assert session.calibration_state == CalibrationState.CALIBRATING

    changes = session.apply(_report(ATTR_CALIBRATION_MODE, "01"))
    assert _fields(changes) == {
        "calibration_mode": CalibrationMode.INACTIVE,
        "limits_saved": True,
    }
    assert session.calibration_state == CalibrationState.IDLE


def test_motor_reversal_and_calibration_time() -> None:
    session = EndpointSession(1)
    session.apply(_report(ATTR_MOTOR_REVERSAL, "01"))
    session.apply(_report(ATTR_CALIBRATION_TIME, "00FF"))
    assert session.motor_direction == MotorDirection.REVERSED
    assert session.calibration_time_seconds == 25.5


def test_acks_never_change_state() -> None:
    session = EndpointSession(1)
    session.apply(_report(ATTR_CALIBRATION_MODE, "01"))
    assert session.apply(CommandAck(command_id=0x00, status=0x86)) == []
    assert session.apply(WriteResponse(status=0x87)) == []
    assert session.calibration_mode == CalibrationMode.INACTIVE


def test_unknown_attribute_is_discarded(caplog) -> None:
    session = EndpointSession(1)
    with caplog.at_level(logging.DEBUG):
        assert session.apply(_report(0xF00A, "05")) == []
    assert "0xF00A" in caplog.text


def test_commands_do_not_mutate_state() -> None:
    session = EndpointSession(1)
    session.apply(_report(ATTR_CALIBRATION_MODE, "01"))
    before = session.as_dict()
    session.start_calibration()
    session.set_position(10)
    session.set_motor_reversal(True)
    assert session.as_dict() == before


def test_reset_returns_to_unknown() -> None:
    session = EndpointSession(1)
    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "46"))
    session.apply(_report(ATTR_CALIBRATION_MODE, "00"))
    session.reset()
    assert session.position_user is None
    assert session.shade_state == ShadeState.UNKNOWN
    assert session.calibration_state == CalibrationState.UNKNOWN


def test_as_dict_is_json_friendly() -> None:
    session = EndpointSession(2)
    session.apply(_report(ATTR_POSITION_LIFT_PERCENTAGE, "46"))
    snapshot = session.as_dict()
    assert snapshot["endpoint"] == 2
    assert snapshot["position_user"] == 30
    assert snapshot["shade_state"] == "partially_open"
    assert snapshot["calibration_mode"] == "unknown"


def test_session_table_recognize_is_idempotent() -> None:
    table = SessionTable()
    first = table.recognize(2)
    assert table.recognize(2) is first
    table.recognize(1)
    assert [session.endpoint for session in table] == [1, 2]
    assert 1 in table
    assert 3 not in table
    assert table.get(3) is None
    assert len(table) == 2
