"""An async client for the Honeywell Home (Lyric) API."""

from __future__ import annotations


class _LyricBaseError(Exception):
    """The base class for all exceptions."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class LyricError(_LyricBaseError):
    """The base class for all exceptions."""


# These occur whilst a RESTful API call is being made
class _ApiRequestFailedError(LyricError):
    """The API request failed for some reason (no/invalid/unexpected response)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status  # useful, available if via aiohttp.ClientResponseError


class ApiRequestFailedError(_ApiRequestFailedError):  # a base exception, API failed
    """The API request failed for some reason (no/invalid/unexpected response).

    Could be caused by any aiohttp.ClientError, for example: ConnectionError.  If the
    cause was a failed response, then the `status` attr will have an integer value.
    """


class ApiRateLimitExceededError(ApiRequestFailedError):
    """The API request failed because the vendor's API rate limit was exceeded.

    The vendor does not use 429 for this, so the `status` attr is usually 500.
    """


class AuthenticationFailedError(_ApiRequestFailedError):
    """Unable to obtain an access token (missing/invalid/non-refreshable token).

    The cause could be any ApiRequestFailedError, including RateLimitExceeded.
    """


class BadApiSchemaError(ApiRequestFailedError):  # a base exception, API data bad
    """The received/supplied JSON is not as expected (e.g. missing a required key)."""


class BadApiResponseError(BadApiSchemaError):
    """The received JSON is not as expected (e.g. missing a required key)."""


class BadApiRequestError(BadApiSchemaError):
    """The supplied parameter(s) are not as expected (e.g. an invalid device id)."""


# These occur without / after a RESTful API call (e.g. a necessary call was not made)
class StatusError(LyricError):  # a base exception, bad/missing status JSON
    """The status JSON is missing or somehow invalid."""


class InvalidStatusError(StatusError):
    """The status JSON is missing/invalid (has it been fetched?).

    This is likely because the user has not yet called `Thermostat.poll()`.
    """
