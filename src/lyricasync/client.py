"""lyricasync provides an async client for the Honeywell Home (Lyric) API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final

from . import exceptions as exc
from .auth import AbstractTokenManager, Auth
from .commands import (
    compose_fan_write,
    compose_resume_schedule,
    compose_thermostat_write,
)
from .const import (
    SZ_CHANGEABLE_VALUES,
    SZ_COOL_SETPOINT,
    SZ_DEVICE_ID,
    SZ_HEAT_SETPOINT,
    SZ_MODE,
    SZ_THERMOSTAT_SETPOINT_STATUS,
)
from .schemas import (
    SCH_FAN_COMMAND,
    SCH_FAN_STATUS,
    SCH_LOCATIONS,
    SCH_THERMOSTAT_COMMAND,
    SCH_THERMOSTAT_STATUS,
)

if TYPE_CHECKING:
    import aiohttp

    from .schemas import FanStatusT, ThermostatStatusT


_LOGGER: Final = logging.getLogger(__name__.rpartition(".")[0])


def _validate_ids(location_id: Any, device_id: Any) -> None:
    """Raise BadApiRequestError if either id is not a non-empty string."""

    if not isinstance(device_id, str) or not device_id:
        raise exc.BadApiRequestError(f"Invalid device id: {device_id!r}")
    if not isinstance(location_id, str) or not location_id:
        raise exc.BadApiRequestError(f"Invalid location id: {location_id!r}")


def _thermostat_url(device_id: str) -> str:
    return f"devices/thermostats/{device_id}"


def _fan_url(device_id: str) -> str:
    return f"devices/thermostats/{device_id}/fan"


class LyricClient:
    """Provide a client to access the Honeywell Home (Lyric) API."""

    def __init__(
        self,
        token_manager: AbstractTokenManager,
        /,
        *,
        websession: aiohttp.ClientSession | None = None,
        debug: bool = False,
    ) -> None:
        """Construct the LyricClient object."""

        self.logger = _LOGGER
        if debug:
            self.logger.setLevel(logging.DEBUG)
            self.logger.debug("Debug mode explicitly enabled via kwarg.")

        self.token_manager = token_manager
        self.auth = Auth(
            token_manager,
            websession or token_manager.websession,
            _hostname=token_manager.hostname,
            logger=self.logger,
        )

    def __str__(self) -> str:
        """Return a string representation of this object."""
        return f"{self.__class__.__name__}(auth='{self.auth}')"

    async def get_locations(self) -> list[dict[str, Any]]:
        """Return the user's locations, and their devices."""

        locations = await self.auth.get("locations", schema=SCH_LOCATIONS)

        if not isinstance(locations, list):
            raise exc.BadApiResponseError(
                f"{self}: Locations are not a list: {locations}"
            )
        return locations

    async def get_thermostat(
        self, location_id: str, device_id: str
    ) -> ThermostatStatusT:
        """Return the latest status of a thermostat."""

        _validate_ids(location_id, device_id)

        return await self.auth.get(  # type: ignore[no-any-return]
            _thermostat_url(device_id),
            schema=SCH_THERMOSTAT_STATUS,
            params={"locationId": location_id},
        )

    async def get_fan(self, location_id: str, device_id: str) -> FanStatusT:
        """Return the latest status of a thermostat's fan."""

        _validate_ids(location_id, device_id)

        return await self.auth.get(  # type: ignore[no-any-return]
            _fan_url(device_id),
            schema=SCH_FAN_STATUS,
            params={"locationId": location_id},
        )

    async def _get_device_data(
        self, location_id: str, device_id: str
    ) -> ThermostatStatusT:
        """Return a (live) snapshot of a thermostat, to merge a write command over."""

        snapshot = await self.get_thermostat(location_id, device_id)

        if (
            not isinstance(snapshot, dict)
            or SZ_DEVICE_ID not in snapshot
            or not isinstance(snapshot.get(SZ_CHANGEABLE_VALUES), dict)
        ):
            self.logger.error(f"{self}: Received an invalid device object: {snapshot}")
            raise exc.BadApiResponseError(
                f"{self}: Invalid device properties (no device_id/changeable_values)"
            )
        return snapshot

    async def set_thermostat(
        self,
        location_id: str,
        device_id: str,
        *,
        mode: str | None = None,
        heat_setpoint: float | None = None,
        cool_setpoint: float | None = None,
        thermostat_setpoint_status: str | None = None,
    ) -> Any:
        """Change one or more of the changeable values of a thermostat.

        Any value not supplied (or falsey) retains its current value.
        """

        _validate_ids(location_id, device_id)

        partial = {
            SZ_MODE: mode,
            SZ_HEAT_SETPOINT: heat_setpoint,
            SZ_COOL_SETPOINT: cool_setpoint,
            SZ_THERMOSTAT_SETPOINT_STATUS: thermostat_setpoint_status,
        }
        self.logger.debug(f"{self}: set_thermostat({device_id}): {partial}")

        snapshot = await self._get_device_data(location_id, device_id)
        command = compose_thermostat_write(partial, snapshot)

        return await self.auth.post(
            _thermostat_url(device_id),
            json=dict(command),
            schema=SCH_THERMOSTAT_COMMAND,
            params={"locationId": location_id},
        )

    async def resume_schedule(self, location_id: str, device_id: str) -> Any:
        """Resume the user's schedule of a thermostat (i.e. NoHold)."""

        _validate_ids(location_id, device_id)

        self.logger.debug(f"{self}: resume_schedule({device_id})")

        snapshot = await self._get_device_data(location_id, device_id)
        command = compose_resume_schedule(snapshot)

        return await self.auth.post(
            _thermostat_url(device_id),
            json=dict(command),
            schema=SCH_THERMOSTAT_COMMAND,
            params={"locationId": location_id},
        )

    async def set_fan_mode(self, location_id: str, device_id: str, mode: str) -> Any:
        """Change the mode of a thermostat's fan."""

        _validate_ids(location_id, device_id)

        self.logger.debug(f"{self}: set_fan_mode({device_id}): {mode}")

        return await self.auth.post(
            _fan_url(device_id),
            json=dict(compose_fan_write(mode)),
            schema=SCH_FAN_COMMAND,
            params={"locationId": location_id},
        )
