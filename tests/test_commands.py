"""Tests for lyric-async - composing the write commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from lyricasync.commands import (
    compose_fan_write,
    compose_resume_schedule,
    compose_thermostat_write,
)
from lyricasync.helpers import convert_keys_to_snake_case

from .conftest import load_fixture

if TYPE_CHECKING:
    from lyricasync.schemas import ThermostatStatusT


@pytest.fixture
def snapshot_heat() -> ThermostatStatusT:
    """Return a snapshot of a heat-only thermostat (has a nextPeriodTime)."""
    status = load_fixture("thermostat_celsius.json")
    return convert_keys_to_snake_case(status)  # type: ignore[no-any-return]


@pytest.fixture
def snapshot_cool() -> ThermostatStatusT:
    """Return a snapshot of a heat/cool thermostat (has no nextPeriodTime)."""
    status = load_fixture("thermostat_fahrenheit.json")
    return convert_keys_to_snake_case(status)  # type: ignore[no-any-return]


def test_empty_partial_is_snapshot(snapshot_cool: ThermostatStatusT) -> None:
    """Test that an empty partial change returns the snapshot's values."""

    assert compose_thermostat_write({}, snapshot_cool) == {
        "mode": "Cool",
        "heat_setpoint": 62.0,
        "cool_setpoint": 76.0,
        "thermostat_setpoint_status": "PermanentHold",
        "auto_changeover_active": False,
    }


def test_partial_overrides_snapshot(snapshot_heat: ThermostatStatusT) -> None:
    """Test that the values of a partial change take precedence."""

    partial = {
        "mode": "Off",
        "heat_setpoint": None,  # i.e. not specified
        "thermostat_setpoint_status": "PermanentHold",
    }

    assert compose_thermostat_write(partial, snapshot_heat) == {
        "mode": "Off",
        "heat_setpoint": 20.0,
        "cool_setpoint": 26.0,
        "thermostat_setpoint_status": "PermanentHold",
    }


def test_hold_until_carries_next_period_time(snapshot_heat: ThermostatStatusT) -> None:
    """Test that HoldUntil is sent with the snapshot's nextPeriodTime."""

    partial = {"heat_setpoint": 21.5, "thermostat_setpoint_status": "HoldUntil"}

    command = compose_thermostat_write(partial, snapshot_heat)

    assert command["heat_setpoint"] == 21.5
    assert command["thermostat_setpoint_status"] == "HoldUntil"
    assert command["next_period_time"] == "22:00:00"


def test_hold_until_is_downgraded(snapshot_cool: ThermostatStatusT) -> None:
    """Test that HoldUntil becomes PermanentHold if there is no nextPeriodTime."""

    partial = {"cool_setpoint": 74.0, "thermostat_setpoint_status": "HoldUntil"}

    command = compose_thermostat_write(partial, snapshot_cool)

    assert command["cool_setpoint"] == 74.0
    assert command["thermostat_setpoint_status"] == "PermanentHold"
    assert "next_period_time" not in command


def test_next_period_time_only_with_hold_until(
    snapshot_heat: ThermostatStatusT,
) -> None:
    """Test that nextPeriodTime is not sent with any other setpoint status."""

    command = compose_thermostat_write({}, snapshot_heat)  # is NoHold

    assert "next_period_time" not in command


def test_auto_changeover_active_must_be_bool(snapshot_cool: ThermostatStatusT) -> None:
    """Test that autoChangeoverActive is only copied if it is a bool."""

    values: dict[str, Any] = snapshot_cool["changeable_values"]
    values["auto_changeover_active"] = "false"

    command = compose_thermostat_write({}, snapshot_cool)

    assert "auto_changeover_active" not in command


def test_falsey_partial_values_fall_back(snapshot_heat: ThermostatStatusT) -> None:
    """Test that a falsey value (e.g. 0.0) is replaced by the snapshot's value."""

    command = compose_thermostat_write(
        {"heat_setpoint": 0.0, "mode": ""}, snapshot_heat
    )

    assert command["heat_setpoint"] == 20.0
    assert command["mode"] == "Heat"


def test_resume_schedule(snapshot_cool: ThermostatStatusT) -> None:
    """Test that resuming the schedule is NoHold with the snapshot's values."""

    assert compose_resume_schedule(snapshot_cool) == {
        "mode": "Cool",
        "heat_setpoint": 62.0,
        "cool_setpoint": 76.0,
        "thermostat_setpoint_status": "NoHold",
        "auto_changeover_active": False,
    }


def test_snapshot_without_cool_setpoint(snapshot_heat: ThermostatStatusT) -> None:
    """Test that a value absent from both the partial and the snapshot is omitted."""

    del snapshot_heat["changeable_values"]["cool_setpoint"]  # type: ignore[misc]

    command = compose_thermostat_write({}, snapshot_heat)

    assert command == {
        "mode": "Heat",
        "heat_setpoint": 20.0,
        "thermostat_setpoint_status": "NoHold",
    }
    assert "cool_setpoint" not in compose_resume_schedule(snapshot_heat)


def test_compose_does_not_modify_snapshot(snapshot_heat: ThermostatStatusT) -> None:
    """Test that composing a command leaves the snapshot as it was."""

    original = load_fixture("thermostat_celsius.json")

    compose_thermostat_write(
        {"heat_setpoint": 23.0, "thermostat_setpoint_status": "HoldUntil"},
        snapshot_heat,
    )

    assert snapshot_heat == convert_keys_to_snake_case(original)


def test_compose_fan_write() -> None:
    """Test that a fan command is only the mode."""
    assert compose_fan_write("Circulate") == {"mode": "Circulate"}
