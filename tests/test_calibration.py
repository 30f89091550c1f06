"""Tests for the calibration state model."""

from __future__ import annotations

from custom_components.ts130f.calibration import CalibrationState, CalibrationStateModel
from custom_components.ts130f.const import CalibrationMode


def test_starts_unknown() -> None:
    model = CalibrationStateModel()
    assert model.state == CalibrationState.UNKNOWN
    assert model.mode == CalibrationMode.UNKNOWN
    assert model.limits_saved is False


def test_confirmed_start_enters_calibrating() -> None:
    model = CalibrationStateModel()
    transition = model.apply(CalibrationMode.ACTIVE)
    assert transition is not None
    assert transition.previous == CalibrationState.UNKNOWN
    assert transition.current == CalibrationState.CALIBRATING
    assert transition.limits_saved is False
    assert model.state == CalibrationState.CALIBRATING


def test_confirmed_stop_after_calibrating_saves_limits() -> None:
    model = CalibrationStateModel()
    model.apply(CalibrationMode.ACTIVE)
    transition = model.apply(CalibrationMode.INACTIVE)
    assert transition is not None
    assert transition.current == CalibrationState.IDLE
    assert transition.limits_saved is True
    assert model.limits_saved is True


def test_inactive_from_unknown_is_idle_without_saving() -> None:
    model = CalibrationStateModel()
    transition = model.apply(CalibrationMode.INACTIVE)
    assert transition is not None
    assert transition.current == CalibrationState.IDLE
    assert transition.limits_saved is False
    assert model.limits_saved is False


def test_repeated_confirmation_is_not_a_transition() -> None:
    model = CalibrationStateModel()
    model.apply(CalibrationMode.ACTIVE)
    assert model.apply(CalibrationMode.ACTIVE) is None
    assert model.state == CalibrationState.CALIBRATING


def test_restarting_calibration_clears_saved_flag() -> None:
    model = CalibrationStateModel()
    model.apply(CalibrationMode.ACTIVE)
    model.apply(CalibrationMode.INACTIVE)
    model.apply(CalibrationMode.ACTIVE)
    assert model.limits_saved is False


def test_reset() -> None:
    model = CalibrationStateModel()
    model.apply(CalibrationMode.ACTIVE)
    model.apply(CalibrationMode.INACTIVE)
    model.reset()
    assert model.state == CalibrationState.UNKNOWN
    assert model.mode == CalibrationMode.UNKNOWN
    assert model.limits_saved is False
