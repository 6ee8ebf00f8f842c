"""lyricasync schema - for the vendor's RESTful API JSON.

These schemas are used only to log (at DEBUG) payloads that are not as expected, and
never to reject them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, NotRequired, TypedDict

import voluptuous as vol

from .const import (
    S2_ALLOWED_MODES,
    S2_AUTO_CHANGEOVER_ACTIVE,
    S2_CHANGEABLE_VALUES,
    S2_COOL_SETPOINT,
    S2_DEVICE_ID,
    S2_DEVICES,
    S2_FAULT,
    S2_FAULTSTRING,
    S2_HEAT_SETPOINT,
    S2_INDOOR_TEMPERATURE,
    S2_IS_ALIVE,
    S2_LOCATION_ID,
    S2_MODE,
    S2_NEXT_PERIOD_TIME,
    S2_THERMOSTAT_SETPOINT_STATUS,
    S2_UNITS,
    FanMode,
    SetpointStatus,
    Unit,
)
from .helpers import camel_to_snake, noop, obfuscate

if TYPE_CHECKING:
    from collections.abc import Callable


class OAuthTokenResponseT(TypedDict):
    """Typed dict for the OAuth token response schema.

    This schema is snake_case, unlike the RESTful API which is camelCase.
    """

    access_token: str
    expires_in: NotRequired[int | str]  # the vendor sends a str, e.g. "1799"
    refresh_token: NotRequired[str]
    token_type: str


class AccessTokenEntryT(TypedDict):
    """Typed dict for a (serialized) access token, as kept in a token cache."""

    access_token: str
    access_token_expires: str | None  # dt.isoformat(), None if no expires_in
    refresh_token: str


class ChangeableValuesT(TypedDict):
    """Typed dict for the changeable values of a thermostat (snake_case)."""

    mode: str
    heat_setpoint: float
    cool_setpoint: float
    thermostat_setpoint_status: SetpointStatus
    next_period_time: NotRequired[str]  # e.g. "22:15:00"
    auto_changeover_active: NotRequired[bool]


class ThermostatStatusT(TypedDict):
    """Typed dict for the status of a thermostat (snake_case)."""

    device_id: str
    units: Unit
    indoor_temperature: float
    is_alive: bool
    changeable_values: ChangeableValuesT


class FanStatusT(TypedDict):
    """Typed dict for the status of a thermostat's fan (snake_case)."""

    allowed_modes: list[FanMode]
    mode: FanMode


class ThermostatCommandT(TypedDict):
    """Typed dict for a thermostat write command (snake_case).

    The locationId and deviceId are sent as part of the URL, not in the body.
    """

    mode: str
    heat_setpoint: float
    cool_setpoint: NotRequired[float]  # absent if the snapshot has none
    thermostat_setpoint_status: SetpointStatus | str
    next_period_time: NotRequired[str]
    auto_changeover_active: NotRequired[bool]


class FanCommandT(TypedDict):
    """Typed dict for a fan write command (snake_case)."""

    mode: FanMode | str


def factory_post_oauth_token(fnc: Callable[[str], str] = noop) -> vol.Schema:
    """Factory for the OAuth token response schema."""

    # NOTE: These keys are always in snake_case

    return vol.Schema(
        {
            vol.Required("access_token"): vol.All(str, obfuscate),
            vol.Optional("expires_in"): vol.Coerce(int),  # usu. 1799 or 599
            vol.Optional("refresh_token"): vol.All(str, obfuscate),
            vol.Required("token_type"): str,
        },
        extra=vol.ALLOW_EXTRA,
    )


def factory_fault_response(fnc: Callable[[str], str] = noop) -> vol.Schema:
    """Factory for the API gateway's fault (error) response schema."""

    return vol.Schema(
        {
            vol.Required(fnc(S2_FAULT)): vol.Schema(
                {vol.Required(fnc(S2_FAULTSTRING)): str},
                extra=vol.ALLOW_EXTRA,
            ),
        },
        extra=vol.PREVENT_EXTRA,
    )


def factory_changeable_values(fnc: Callable[[str], str] = noop) -> vol.Schema:
    """Factory for the changeable values schema (also used for writes)."""

    return vol.Schema(
        {
            vol.Required(fnc(S2_MODE)): str,
            vol.Required(fnc(S2_HEAT_SETPOINT)): vol.Coerce(float),
            vol.Optional(fnc(S2_COOL_SETPOINT)): vol.Coerce(float),
            vol.Required(fnc(S2_THERMOSTAT_SETPOINT_STATUS)): vol.In(SetpointStatus),
            vol.Optional(fnc(S2_NEXT_PERIOD_TIME)): str,
            vol.Optional(fnc(S2_AUTO_CHANGEOVER_ACTIVE)): bool,
        },
        extra=vol.ALLOW_EXTRA,
    )


def factory_thermostat_status(fnc: Callable[[str], str] = noop) -> vol.Schema:
    """Factory for the thermostat status schema."""

    return vol.Schema(
        {
            vol.Required(fnc(S2_DEVICE_ID)): str,
            vol.Required(fnc(S2_UNITS)): vol.In(Unit),
            vol.Required(fnc(S2_INDOOR_TEMPERATURE)): vol.Coerce(float),
            vol.Required(fnc(S2_IS_ALIVE)): bool,
            vol.Required(fnc(S2_CHANGEABLE_VALUES)): factory_changeable_values(fnc),
        },
        extra=vol.ALLOW_EXTRA,
    )


def factory_fan_status(fnc: Callable[[str], str] = noop) -> vol.Schema:
    """Factory for the fan status schema."""

    return vol.Schema(
        {
            vol.Optional(fnc(S2_ALLOWED_MODES)): [vol.In(FanMode)],
            vol.Required(fnc(S2_MODE)): vol.In(FanMode),
        },
        extra=vol.ALLOW_EXTRA,
    )


def factory_fan_command(fnc: Callable[[str], str] = noop) -> vol.Schema:
    """Factory for the fan command schema."""

    return vol.Schema({vol.Required(fnc(S2_MODE)): vol.In(FanMode)})


def factory_locations(fnc: Callable[[str], str] = noop) -> vol.Schema:
    """Factory for the locations (and their devices) schema."""

    SCH_DEVICE: Final = vol.Schema(
        {
            vol.Required(fnc(S2_DEVICE_ID)): str,
            vol.Optional(fnc(S2_ALLOWED_MODES)): [str],
        },
        extra=vol.ALLOW_EXTRA,
    )

    return vol.Schema(
        [
            vol.Schema(
                {
                    vol.Required(fnc(S2_LOCATION_ID)): vol.Any(int, str),
                    vol.Required(fnc(S2_DEVICES)): [SCH_DEVICE],
                },
                extra=vol.ALLOW_EXTRA,
            )
        ]
    )


#
# HTTP GET & POST schemas are camelCase, not snake_case...

# POST /oauth2/token
LYRIC_POST_OAUTH_TOKEN: Final = factory_post_oauth_token()

LYRIC_FAULT_RESPONSE: Final = factory_fault_response()

# GET /locations
LYRIC_GET_LOCATIONS: Final = factory_locations()

# GET /devices/thermostats/{device_id}?locationId={loc_id}
LYRIC_GET_THERMOSTAT: Final = factory_thermostat_status()

# GET /devices/thermostats/{device_id}/fan?locationId={loc_id}
LYRIC_GET_FAN: Final = factory_fan_status()


#
# ...but the library converts all keys to snake_case

SCH_LOCATIONS: Final = factory_locations(camel_to_snake)
SCH_THERMOSTAT_STATUS: Final = factory_thermostat_status(camel_to_snake)
SCH_FAN_STATUS: Final = factory_fan_status(camel_to_snake)
SCH_THERMOSTAT_COMMAND: Final = factory_changeable_values(camel_to_snake)
SCH_FAN_COMMAND: Final = factory_fan_command(camel_to_snake)
