"""lyricasync provides an async client for the Honeywell Home (Lyric) API.

Provide the (per-device) engine that polls a thermostat, reconciles its remote state
into local state, and writes any local changes back to the vendor's API.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Final

from . import exceptions as exc
from .const import (
    POLL_INTERVAL,
    SZ_ALLOWED_MODES,
    SZ_CHANGEABLE_VALUES,
    SZ_COOL_SETPOINT,
    SZ_FAN,
    SZ_HEAT_SETPOINT,
    SZ_INDOOR_TEMPERATURE,
    SZ_IS_ALIVE,
    SZ_MODE,
    SZ_SETTINGS,
    SZ_THERMOSTAT_SETPOINT_STATUS,
    SZ_UNITS,
    UNAVAILABLE_OFFLINE,
    UNAVAILABLE_RATE_LIMITED,
    Capability,
    SetpointStatus,
    SystemMode,
    Unit,
)
from .helpers import celsius_to_fahrenheit, fahrenheit_to_celsius

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .client import LyricClient
    from .schemas import FanStatusT, ThermostatStatusT


_LOGGER: Final = logging.getLogger(__name__.rpartition(".")[0])


def capabilities_from_config(device_config: dict[str, Any]) -> frozenset[Capability]:
    """Return the (fixed) capabilities of a device, given its discovery config.

    The config is a (snake_case) device entry of a location, from GET /locations.
    """

    capabilities = {Capability.MEASURE_TEMPERATURE}

    allowed_modes = device_config.get(SZ_ALLOWED_MODES) or []

    if SystemMode.HEAT in allowed_modes:
        capabilities.add(Capability.TARGET_TEMPERATURE)
        if SystemMode.COOL not in allowed_modes:
            capabilities.add(Capability.THERMOSTAT_MODE)

    if SystemMode.COOL in allowed_modes:
        capabilities.add(Capability.TARGET_TEMPERATURE_COOL)
        capabilities.add(Capability.AC_MODE)

    fan = (device_config.get(SZ_SETTINGS) or {}).get(SZ_FAN) or {}
    if fan.get(SZ_ALLOWED_MODES):
        capabilities.add(Capability.FAN_MODE)

    return frozenset(capabilities)


@dataclass(frozen=True)
class ThermostatState:
    """The (local) state of a thermostat, as most recently reconciled."""

    measured_temperature: float | None = None  # always Celsius
    heat_setpoint: float | None = None  # as reported (may be Fahrenheit)
    cool_setpoint: float | None = None  # as reported (may be Fahrenheit)
    mode: str | None = None  # lower-cased
    fan_mode: str | None = None
    setpoint_status: str | None = None


class Thermostat:
    """Instance of a paired thermostat (one per device)."""

    def __init__(
        self,
        client: LyricClient,
        location_id: str,
        device_id: str,
        capabilities: Iterable[Capability],
        /,
        *,
        poll_interval: float = POLL_INTERVAL,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._location_id: Final = location_id
        self._id: Final = device_id
        self._capabilities: Final = frozenset(capabilities)

        self._poll_interval = poll_interval
        self._logger = logger or _LOGGER

        self._units: str | None = None
        self._state = ThermostatState()
        self._status: ThermostatStatusT | None = None

        self._available = True
        self._unavailable_reason: str | None = None

        self._mode_listeners: list[Callable[[str], None]] = []

        self._poll_lock = asyncio.Lock()
        self._poll_tasks: set[asyncio.Task[None]] = set()
        self._timer: asyncio.Task[None] | None = None
        self._stopped = False

        self._remove_rate_limit_listener = (
            client.token_manager.add_rate_limit_listener(self.on_rate_limited)
        )

    def __str__(self) -> str:
        """Return a string representation of the entity."""
        return f"{self.__class__.__name__}(id='{self._id}')"

    # Config attrs...

    @property
    def id(self) -> str:
        return self._id

    @property
    def location_id(self) -> str:
        return self._location_id

    @property
    def capabilities(self) -> frozenset[Capability]:
        """Return the capabilities of the thermostat (these are fixed)."""
        return self._capabilities

    # Status (state) attrs & methods...

    @property
    def units(self) -> str | None:
        """Return the units of the thermostat, as most recently reported."""
        return self._units

    @property
    def state(self) -> ThermostatState:
        return self._state

    @property
    def status(self) -> ThermostatStatusT:
        """Return the latest (raw) status of the thermostat."""

        if self._status is None:
            raise exc.InvalidStatusError(f"{self} has no state, has it been fetched?")
        return self._status

    @property
    def available(self) -> bool:
        return self._available

    @property
    def unavailable_reason(self) -> str | None:
        return self._unavailable_reason

    def _set_available(self) -> None:
        self._logger.info(f"{self}: Device is available")
        self._available = True
        self._unavailable_reason = None

    def _set_unavailable(self, reason: str) -> None:
        self._logger.warning(f"{self}: Device is unavailable: {reason}")
        self._available = False
        self._unavailable_reason = reason

    def add_mode_listener(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Add a callback for when the mode changes (it is passed the new mode).

        Return a function to remove the callback.
        """

        self._mode_listeners.append(callback)

        def remove_listener() -> None:
            if callback in self._mode_listeners:
                self._mode_listeners.remove(callback)

        return remove_listener

    def _notify_mode_changed(self, mode: str) -> None:
        for callback in list(self._mode_listeners):
            try:
                callback(mode)
            except Exception:
                self._logger.exception(f"{self}: Error in mode listener")

    def on_rate_limited(self) -> None:
        """Mark the device as unavailable, as the API rate limit has been exceeded."""

        if self._stopped:
            return
        self._set_unavailable(UNAVAILABLE_RATE_LIMITED)

    # Polling...

    async def start(self) -> None:
        """Poll the thermostat now, and then periodically (until stopped)."""

        if self._stopped:
            raise exc.InvalidStatusError(f"{self}: has been stopped")

        await self.poll()

        if self._timer is None:
            self._timer = asyncio.create_task(self._poll_periodically())

    def stop(self) -> None:
        """Stop polling the thermostat (the results of any in-flight poll are ignored).

        A stopped thermostat cannot be restarted.
        """

        self._stopped = True

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        self._remove_rate_limit_listener()

    async def _poll_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)

            # a slow poll must not delay the timer
            task = asyncio.create_task(self.poll())
            self._poll_tasks.add(task)
            task.add_done_callback(self._poll_tasks.discard)

    async def poll(self) -> None:
        """Get the latest state of the thermostat (and its fan) and reconcile it.

        A poll is skipped if a previous poll is still in progress.
        """

        if self._stopped:
            self._logger.debug(f"{self}: Device has been stopped, not polling")
            return

        if self._poll_lock.locked():
            self._logger.debug(f"{self}: Previous poll is in progress, skipping")
            return

        async with self._poll_lock:
            coros = [self._poll_thermostat()]
            if Capability.FAN_MODE in self._capabilities:
                coros.append(self._poll_fan())

            await asyncio.gather(*coros)

    async def _poll_thermostat(self) -> None:
        try:
            status = await self._client.get_thermostat(self._location_id, self._id)
        except exc.LyricError as err:
            self._logger.error(  # noqa: TRY400
                f"{self}: Failed to get thermostat: {err}"
            )
            return

        if self._stopped:  # the device was stopped whilst awaiting the response
            return

        self.reconcile_thermostat(status)

    async def _poll_fan(self) -> None:
        try:
            status = await self._client.get_fan(self._location_id, self._id)
        except exc.LyricError as err:
            self._logger.error(f"{self}: Failed to get fan: {err}")  # noqa: TRY400
            return

        if self._stopped:
            return

        self.reconcile_fan(status)

    # Reconciliation...

    def reconcile_thermostat(self, status: ThermostatStatusT) -> None:
        """Update the local state from the thermostat's (remote) status.

        Each step is skipped (only) if the fields it requires are missing. The measured
        temperature is converted to Celsius, but the setpoints are stored as reported.
        """

        if not isinstance(status, dict):
            self._logger.error(f"{self}: Expected the status to be a dict: {status}")
            return

        self._status = status
        changes: dict[str, Any] = {}

        # Measured temperature...
        if SZ_UNITS not in status:
            self._logger.error(f"{self}: Expected the status to have {SZ_UNITS}")
        else:
            self._units = status[SZ_UNITS]

            if SZ_INDOOR_TEMPERATURE not in status:
                self._logger.error(
                    f"{self}: Expected the status to have {SZ_INDOOR_TEMPERATURE}"
                )
            elif self._units != Unit.CELSIUS:
                changes["measured_temperature"] = fahrenheit_to_celsius(
                    status[SZ_INDOOR_TEMPERATURE]
                )
            else:
                changes["measured_temperature"] = status[SZ_INDOOR_TEMPERATURE]

        # Setpoints, mode & setpoint status...
        if not isinstance(values := status.get(SZ_CHANGEABLE_VALUES), dict):
            self._logger.error(
                f"{self}: Expected the status to have {SZ_CHANGEABLE_VALUES}"
            )
        else:
            changes |= self._reconcile_changeable_values(values)

        self._state = replace(self._state, **changes)

        # Aliveness...
        if SZ_IS_ALIVE not in status:
            self._logger.error(f"{self}: Expected the status to have {SZ_IS_ALIVE}")
        elif self._available and not status[SZ_IS_ALIVE]:
            self._set_unavailable(UNAVAILABLE_OFFLINE)
        elif not self._available and status[SZ_IS_ALIVE]:
            self._set_available()

    def _reconcile_changeable_values(self, values: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}

        if Capability.TARGET_TEMPERATURE in self._capabilities:
            if SZ_HEAT_SETPOINT not in values:
                self._logger.error(f"{self}: Expected {SZ_HEAT_SETPOINT}")
            else:
                changes["heat_setpoint"] = values[SZ_HEAT_SETPOINT]

        if Capability.TARGET_TEMPERATURE_COOL in self._capabilities:
            if SZ_COOL_SETPOINT not in values:
                self._logger.error(f"{self}: Expected {SZ_COOL_SETPOINT}")
            else:
                changes["cool_setpoint"] = values[SZ_COOL_SETPOINT]

        if self._capabilities & {Capability.THERMOSTAT_MODE, Capability.AC_MODE}:
            if not isinstance(values.get(SZ_MODE), str):
                self._logger.error(f"{self}: Expected {SZ_MODE}")
            else:
                mode = values[SZ_MODE].lower()
                if mode != self._state.mode:
                    self._notify_mode_changed(mode)
                changes["mode"] = mode

        if SZ_THERMOSTAT_SETPOINT_STATUS in values:
            changes["setpoint_status"] = values[SZ_THERMOSTAT_SETPOINT_STATUS]

        return changes

    def reconcile_fan(self, status: FanStatusT) -> None:
        """Update the local state from the fan's (remote) status."""

        if Capability.FAN_MODE not in self._capabilities:
            return

        if not isinstance(status, dict) or SZ_MODE not in status:
            self._logger.error(f"{self}: Expected the fan status to have {SZ_MODE}")
            return

        self._state = replace(self._state, fan_mode=status[SZ_MODE])

    # Writes...

    def _to_device_units(self, temperature: float) -> float:
        """Convert a (Celsius) temperature to the units of the thermostat."""

        if self._units is not None and self._units != Unit.CELSIUS:
            return celsius_to_fahrenheit(temperature)
        return temperature

    def _check_capability(self, capability: Capability) -> None:
        if capability not in self._capabilities:
            raise exc.BadApiRequestError(f"{self}: Device has no {capability}")

    async def set_temperature(self, temperature: float) -> None:
        """Set the heat setpoint (in Celsius) until the next scheduled period."""

        self._check_capability(Capability.TARGET_TEMPERATURE)
        self._logger.debug(f"{self}: set_temperature({temperature})")

        await self._client.set_thermostat(
            self._location_id,
            self._id,
            heat_setpoint=self._to_device_units(temperature),
            thermostat_setpoint_status=SetpointStatus.HOLD_UNTIL,
        )

    async def set_cool_setpoint(self, temperature: float) -> None:
        """Set the cool setpoint (in Celsius) until the next scheduled period."""

        self._check_capability(Capability.TARGET_TEMPERATURE_COOL)
        self._logger.debug(f"{self}: set_cool_setpoint({temperature})")

        await self._client.set_thermostat(
            self._location_id,
            self._id,
            cool_setpoint=self._to_device_units(temperature),
            thermostat_setpoint_status=SetpointStatus.HOLD_UNTIL,
        )

    async def set_mode(self, mode: str) -> None:
        """Set the mode of the thermostat (permanently).

        A heat-only thermostat has only two modes: "heat" and "off".
        """

        self._logger.debug(f"{self}: set_mode({mode})")

        remote_mode: str

        if Capability.THERMOSTAT_MODE in self._capabilities:
            is_heat = (mode or "heat") == "heat"
            remote_mode = SystemMode.HEAT if is_heat else SystemMode.OFF
        elif Capability.AC_MODE in self._capabilities:
            remote_mode = mode
        else:
            raise exc.BadApiRequestError(f"{self}: Device has no mode capability")

        await self._client.set_thermostat(
            self._location_id,
            self._id,
            mode=remote_mode,
            thermostat_setpoint_status=SetpointStatus.PERMANENT_HOLD,
        )

        if Capability.THERMOSTAT_MODE in self._capabilities:
            self._notify_mode_changed(remote_mode.lower())
        self._state = replace(self._state, mode=remote_mode.lower())

    async def set_fan_mode(self, mode: str) -> None:
        """Set the mode of the thermostat's fan."""

        self._check_capability(Capability.FAN_MODE)
        self._logger.debug(f"{self}: set_fan_mode({mode})")

        await self._client.set_fan_mode(self._location_id, self._id, mode)

    async def resume_schedule(self) -> None:
        """Cancel any hold and resume the thermostat's schedule."""

        self._logger.debug(f"{self}: resume_schedule()")

        await self._client.resume_schedule(self._location_id, self._id)
