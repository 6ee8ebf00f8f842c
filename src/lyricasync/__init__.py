"""lyricasync provides an async client for the Honeywell Home (Lyric) API.

Further information at: https://developer.honeywellhome.com
"""

from __future__ import annotations

from .auth import AbstractTokenManager, Auth
from .client import LyricClient
from .const import Capability, FanMode, SetpointStatus, SystemMode, Unit
from .device import Thermostat, ThermostatState, capabilities_from_config
from .exceptions import (
    ApiRateLimitExceededError,
    ApiRequestFailedError,
    AuthenticationFailedError,
    BadApiRequestError,
    BadApiResponseError,
    BadApiSchemaError,
    InvalidStatusError,
    LyricError,
    StatusError,
)

__version__ = "0.1.0"


__all__ = [  # noqa: RUF022
    "LyricClient",
    "AbstractTokenManager",
    "Auth",
    #
    "Thermostat",
    "ThermostatState",
    "capabilities_from_config",
    #
    "Capability",
    "FanMode",
    "SetpointStatus",
    "SystemMode",
    "Unit",
    #
    "ApiRateLimitExceededError",
    "ApiRequestFailedError",
    "AuthenticationFailedError",
    "BadApiRequestError",
    "BadApiResponseError",
    "BadApiSchemaError",
    "InvalidStatusError",
    "LyricError",
    "StatusError",
]
