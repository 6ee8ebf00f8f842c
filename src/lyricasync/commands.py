"""lyricasync provides an async client for the Honeywell Home (Lyric) API.

Compose complete write commands by merging a partial change over a full snapshot of
the device (as most recently read from the vendor's API).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from .const import (
    SZ_AUTO_CHANGEOVER_ACTIVE,
    SZ_CHANGEABLE_VALUES,
    SZ_COOL_SETPOINT,
    SZ_HEAT_SETPOINT,
    SZ_MODE,
    SZ_NEXT_PERIOD_TIME,
    SZ_THERMOSTAT_SETPOINT_STATUS,
    SetpointStatus,
)

if TYPE_CHECKING:
    from .schemas import FanCommandT, ThermostatCommandT, ThermostatStatusT


_MERGED_KEYS: Final = (
    SZ_MODE,
    SZ_HEAT_SETPOINT,
    SZ_COOL_SETPOINT,
    SZ_THERMOSTAT_SETPOINT_STATUS,
)


def compose_thermostat_write(
    partial: dict[str, Any], snapshot: ThermostatStatusT
) -> ThermostatCommandT:
    """Return a complete thermostat command, given a partial change and a snapshot.

    HoldUntil requires a nextPeriodTime (which comes from the snapshot), otherwise the
    status is downgraded to PermanentHold (TemporaryHold doesn't work with this API).
    """

    current: dict[str, Any] = snapshot[SZ_CHANGEABLE_VALUES]  # type: ignore[assignment]

    # NOTE: falsey values (e.g. 0.0) fall back to the snapshot
    command: dict[str, Any] = {
        k: v
        for k in _MERGED_KEYS
        if (v := partial.get(k) or current.get(k)) is not None
    }

    if isinstance(current.get(SZ_AUTO_CHANGEOVER_ACTIVE), bool):
        command[SZ_AUTO_CHANGEOVER_ACTIVE] = current[SZ_AUTO_CHANGEOVER_ACTIVE]

    if command.get(SZ_THERMOSTAT_SETPOINT_STATUS) == SetpointStatus.HOLD_UNTIL:
        if isinstance(current.get(SZ_NEXT_PERIOD_TIME), str):
            command[SZ_NEXT_PERIOD_TIME] = current[SZ_NEXT_PERIOD_TIME]
        else:
            command[SZ_THERMOSTAT_SETPOINT_STATUS] = SetpointStatus.PERMANENT_HOLD

    return command  # type: ignore[return-value]


def compose_resume_schedule(snapshot: ThermostatStatusT) -> ThermostatCommandT:
    """Return a thermostat command that resumes the schedule (i.e. NoHold)."""

    return compose_thermostat_write(
        {SZ_THERMOSTAT_SETPOINT_STATUS: SetpointStatus.NO_HOLD}, snapshot
    )


def compose_fan_write(mode: str) -> FanCommandT:
    """Return a fan command (there is nothing to merge)."""
    return {SZ_MODE: mode}
