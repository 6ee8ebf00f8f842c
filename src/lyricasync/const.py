"""lyricasync provides an async client for the Honeywell Home (Lyric) API."""

from __future__ import annotations

import re
from enum import EnumCheck, StrEnum, verify
from http import HTTPStatus
from typing import Final

# all _DBG_* flags are only for dev/test and should be False for published code
_DBG_DONT_OBFUSCATE = False  # default is to redact sensitive JSON in debug output

HOSTNAME: Final = "api.honeywell.com"

# POST authentication url (i.e. /oauth2/token)
URL_TOKEN: Final = "oauth2/token"

# GET/POST resource url (e.g. /v2/devices/thermostats/...)
URL_BASE: Final = "v2"

# the vendor will reply 401 to the code exchange if the trailing slash is missing
REDIRECT_URI: Final = "https://callback.athom.com/oauth2/callback/"

POLL_INTERVAL: Final = 60  # seconds

REGEX_EMAIL_ADDRESS = re.compile(
    r"^([a-zA-Z0-9_\-\.]+)@([a-zA-Z0-9_\-\.]+)\.([a-zA-Z]{2,5})$"
)


# No need to indicate "Content-Type" as aiohttp will do so, with:
# - POST (token): "Content-Type": "application/x-www-form-urlencoded"
# - POST (other): "Content-Type": "application/json"

HEADERS_BASE = {
    "Accept": "application/json",
    "Connection": "Keep-Alive",
}
HEADERS_CRED = HEADERS_BASE | {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}

HINT_CHECK_NETWORK = (
    "Unable to contact the vendor's server. Check your network "
    "and review the vendor's status page, https://status.resideo.com."
)
HINT_WAIT_A_WHILE = (
    "You have exceeded the server's API rate limit. Wait a while "
    "and try again (consider reducing your polling interval)."
)
HINT_BAD_CREDS = (
    "Failed to authenticate. Check the client id/secret, and that the "
    "authorization code has not already been used (they are single-use)."
)

ERR_MSG_LOOKUP_BASE: dict[int, str] = {  # common to authentication / authorization
    HTTPStatus.BAD_GATEWAY: HINT_CHECK_NETWORK,
    HTTPStatus.SERVICE_UNAVAILABLE: HINT_CHECK_NETWORK,
    HTTPStatus.TOO_MANY_REQUESTS: HINT_WAIT_A_WHILE,
}

# the vendor replies 500 (not 429) when rate limited, with a body like:
# {"fault": {"faultstring": "Rate limit quota violation. Quota limit exceeded..."}}
RATE_LIMIT_FAULTSTRING: Final = "Rate limit quota violation."


# These are vendor constants, used for keys in the vendor's schema (camelCase)
S2_ALLOWED_MODES: Final = "allowedModes"
S2_AUTO_CHANGEOVER_ACTIVE: Final = "autoChangeoverActive"
S2_CHANGEABLE_VALUES: Final = "changeableValues"
S2_COOL_SETPOINT: Final = "coolSetpoint"
S2_DEVICE_ID: Final = "deviceID"
S2_DEVICES: Final = "devices"
S2_FAULT: Final = "fault"
S2_FAULTSTRING: Final = "faultstring"
S2_HEAT_SETPOINT: Final = "heatSetpoint"
S2_INDOOR_TEMPERATURE: Final = "indoorTemperature"
S2_IS_ALIVE: Final = "isAlive"
S2_LOCATION_ID: Final = "locationID"
S2_MODE: Final = "mode"
S2_NEXT_PERIOD_TIME: Final = "nextPeriodTime"
S2_THERMOSTAT_SETPOINT_STATUS: Final = "thermostatSetpointStatus"
S2_UNITS: Final = "units"

# These keys are snake_case equivalents of schema strings
SZ_ACCESS_TOKEN: Final = "access_token"  # noqa: S105
SZ_ACCESS_TOKEN_EXPIRES: Final = "access_token_expires"  # noqa: S105
SZ_EXPIRES_IN: Final = "expires_in"
SZ_REFRESH_TOKEN: Final = "refresh_token"  # noqa: S105

SZ_ALLOWED_MODES: Final = "allowed_modes"
SZ_AUTO_CHANGEOVER_ACTIVE: Final = "auto_changeover_active"
SZ_CHANGEABLE_VALUES: Final = "changeable_values"
SZ_COOL_SETPOINT: Final = "cool_setpoint"
SZ_DEVICE_ID: Final = "device_id"
SZ_DEVICES: Final = "devices"
SZ_FAN: Final = "fan"
SZ_HEAT_SETPOINT: Final = "heat_setpoint"
SZ_INDOOR_TEMPERATURE: Final = "indoor_temperature"
SZ_IS_ALIVE: Final = "is_alive"
SZ_LOCATION_ID: Final = "location_id"
SZ_MODE: Final = "mode"
SZ_NEXT_PERIOD_TIME: Final = "next_period_time"
SZ_SETTINGS: Final = "settings"
SZ_THERMOSTAT_SETPOINT_STATUS: Final = "thermostat_setpoint_status"
SZ_UNITS: Final = "units"


# These are vendor constants, used for values
S2_CELSIUS: Final = "Celsius"
S2_FAHRENHEIT: Final = "Fahrenheit"


@verify(EnumCheck.UNIQUE)
class Unit(StrEnum):
    CELSIUS = S2_CELSIUS
    FAHRENHEIT = S2_FAHRENHEIT


@verify(EnumCheck.UNIQUE)
class SetpointStatus(StrEnum):
    HOLD_UNTIL = "HoldUntil"
    NO_HOLD = "NoHold"
    PERMANENT_HOLD = "PermanentHold"
    TEMPORARY_HOLD = "TemporaryHold"  # doesn't work well with this API, so not used


@verify(EnumCheck.UNIQUE)
class SystemMode(StrEnum):
    AUTO = "Auto"
    COOL = "Cool"
    HEAT = "Heat"
    OFF = "Off"


@verify(EnumCheck.UNIQUE)
class FanMode(StrEnum):
    AUTO = "Auto"
    CIRCULATE = "Circulate"
    ON = "On"


@verify(EnumCheck.UNIQUE)
class Capability(StrEnum):
    """The (local) capabilities a thermostat may have, fixed when it is paired."""

    MEASURE_TEMPERATURE = "measure_temperature"
    TARGET_TEMPERATURE = "target_temperature"
    TARGET_TEMPERATURE_COOL = "target_temperature.cool"
    THERMOSTAT_MODE = "custom_thermostat_mode"
    AC_MODE = "custom_ac_mode"
    FAN_MODE = "fan_mode"


# the reasons why a device may be unavailable
UNAVAILABLE_OFFLINE: Final = "Device is offline (not connected to the internet)"
UNAVAILABLE_RATE_LIMITED: Final = (
    "The API rate limit has been exceeded, the device will be available again later"
)
