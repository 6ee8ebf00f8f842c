"""Tests for lyric-async - validate the client's requests to the vendor's API."""

from __future__ import annotations

from http import HTTPMethod, HTTPStatus
from typing import TYPE_CHECKING

import pytest
from aioresponses import aioresponses

from lyricasync import LyricClient, exceptions as exc
from lyricasync.const import HINT_CHECK_NETWORK

from .conftest import load_fixture, requests_made
from .const import (
    ACCESS_TOKEN,
    CLIENT_ID,
    DEVICE_ID_COOL,
    DEVICE_ID_HEAT,
    LOCATION_ID,
    URL_LOCATIONS,
    URL_TOKEN,
    headers_bearer,
    url_fan,
    url_thermostat,
    with_query,
)

if TYPE_CHECKING:
    from .conftest import TokenManager


URL_HEAT = url_thermostat(DEVICE_ID_HEAT)
URL_COOL = url_thermostat(DEVICE_ID_COOL)


async def test_get_locations(lyric_client: LyricClient) -> None:
    """Test .get_locations() (the response keys are converted to snake_case)."""

    with aioresponses() as rsp:
        rsp.get(
            f"{URL_LOCATIONS}?apikey={CLIENT_ID}",
            payload=load_fixture("locations.json"),
        )

        locations = await lyric_client.get_locations()

        rsp.assert_called_once_with(
            URL_LOCATIONS,
            HTTPMethod.GET,
            headers=headers_bearer(),
            params={"apikey": CLIENT_ID},
        )

    assert len(locations) == 1
    assert locations[0]["location_id"] == 1234567
    assert [d["device_id"] for d in locations[0]["devices"]] == [
        DEVICE_ID_HEAT,
        DEVICE_ID_COOL,
    ]


async def test_get_locations_not_a_list(lyric_client: LyricClient) -> None:
    """Test .get_locations() when the response is not a list."""

    with aioresponses() as rsp:
        rsp.get(f"{URL_LOCATIONS}?apikey={CLIENT_ID}", payload={})

        with pytest.raises(exc.BadApiResponseError):
            await lyric_client.get_locations()


async def test_get_thermostat(lyric_client: LyricClient) -> None:
    """Test .get_thermostat() (the location is a query parameter)."""

    with aioresponses() as rsp:
        rsp.get(with_query(URL_HEAT), payload=load_fixture("thermostat_celsius.json"))

        status = await lyric_client.get_thermostat(LOCATION_ID, DEVICE_ID_HEAT)

        rsp.assert_called_once_with(
            URL_HEAT,
            HTTPMethod.GET,
            headers=headers_bearer(),
            params={"apikey": CLIENT_ID, "locationId": LOCATION_ID},
        )

    assert status["device_id"] == DEVICE_ID_HEAT
    assert status["indoor_temperature"] == 19.5
    assert status["changeable_values"]["thermostat_setpoint_status"] == "NoHold"


async def test_get_fan(lyric_client: LyricClient) -> None:
    """Test .get_fan()."""

    with aioresponses() as rsp:
        rsp.get(with_query(url_fan(DEVICE_ID_COOL)), payload=load_fixture("fan.json"))

        status = await lyric_client.get_fan(LOCATION_ID, DEVICE_ID_COOL)

    assert status == {"allowed_modes": ["On", "Auto", "Circulate"], "mode": "Auto"}


@pytest.mark.parametrize(
    ("location_id", "device_id"),
    [
        (LOCATION_ID, ""),
        (LOCATION_ID, None),
        ("", DEVICE_ID_HEAT),
        (1234567, DEVICE_ID_HEAT),
    ],
)
async def test_invalid_ids(
    lyric_client: LyricClient,
    block_aiohttp: aioresponses,
    location_id: str,
    device_id: str,
) -> None:
    """Test that invalid ids are rejected (before any request is made)."""

    with pytest.raises(exc.BadApiRequestError):
        await lyric_client.get_thermostat(location_id, device_id)

    with pytest.raises(exc.BadApiRequestError):
        await lyric_client.set_thermostat(location_id, device_id, mode="Off")

    with pytest.raises(exc.BadApiRequestError):
        await lyric_client.set_fan_mode(location_id, device_id, "On")

    block_aiohttp.assert_not_called()


async def test_rejected_access_token(
    lyric_client: LyricClient,
    authed_token_manager: TokenManager,
) -> None:
    """Test a rejected access token is refreshed, and the request retried (once)."""

    token = {"access_token": "AcCeSsToKeN1", "expires_in": "1799"}

    with aioresponses() as rsp:
        rsp.get(
            with_query(URL_HEAT),
            status=HTTPStatus.UNAUTHORIZED,
            payload={"code": 401, "message": "Unauthorized"},
        )
        rsp.post(URL_TOKEN, payload=token)
        rsp.get(with_query(URL_HEAT), payload=load_fixture("thermostat_celsius.json"))

        status = await lyric_client.get_thermostat(LOCATION_ID, DEVICE_ID_HEAT)

        calls = requests_made(rsp, "GET", URL_HEAT)

    assert status["device_id"] == DEVICE_ID_HEAT

    assert len(calls) == 2
    assert calls[0].kwargs["headers"]["Authorization"] == f"Bearer {ACCESS_TOKEN}"
    assert calls[1].kwargs["headers"]["Authorization"] == "Bearer AcCeSsToKeN1"

    assert authed_token_manager.saved[-1]["access_token"] == "AcCeSsToKeN1"


async def test_rejected_access_token_twice(lyric_client: LyricClient) -> None:
    """Test a request is retried once only."""

    token = {"access_token": "AcCeSsToKeN1", "expires_in": "1799"}

    with aioresponses() as rsp:
        rsp.get(
            with_query(URL_HEAT),
            status=HTTPStatus.UNAUTHORIZED,
            payload={"code": 401, "message": "Unauthorized"},
            repeat=True,
        )
        rsp.post(URL_TOKEN, payload=token)

        with pytest.raises(exc.ApiRequestFailedError) as err:
            await lyric_client.get_thermostat(LOCATION_ID, DEVICE_ID_HEAT)

        assert len(requests_made(rsp, "GET", URL_HEAT)) == 2
        assert len(requests_made(rsp, "POST", URL_TOKEN)) == 1

    assert err.value.status == HTTPStatus.UNAUTHORIZED


async def test_rate_limited(lyric_client: LyricClient) -> None:
    """Test a rate limited request."""

    with aioresponses() as rsp:
        rsp.get(
            with_query(URL_HEAT),
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            payload=load_fixture("rate_limited.json"),
        )

        with pytest.raises(exc.ApiRateLimitExceededError):
            await lyric_client.get_thermostat(LOCATION_ID, DEVICE_ID_HEAT)


async def test_network_error(
    lyric_client: LyricClient,
    block_aiohttp: aioresponses,
) -> None:
    """Test a request when the vendor's server cannot be reached."""

    with pytest.raises(exc.ApiRequestFailedError) as err:
        await lyric_client.get_locations()

    assert err.value.status is None


async def test_request_times_out(
    lyric_client: LyricClient, caplog: pytest.LogCaptureFixture
) -> None:
    """Test a request that times out is an ApiRequestFailedError."""

    with aioresponses() as rsp:
        rsp.get(f"{URL_LOCATIONS}?apikey={CLIENT_ID}", exception=TimeoutError())

        with pytest.raises(exc.ApiRequestFailedError) as err:
            await lyric_client.get_locations()

    assert isinstance(err.value.__cause__, TimeoutError)
    assert HINT_CHECK_NETWORK in caplog.text


async def test_set_thermostat(lyric_client: LyricClient) -> None:
    """Test .set_thermostat() merges the change over a live snapshot."""

    with aioresponses() as rsp:
        rsp.get(with_query(URL_HEAT), payload=load_fixture("thermostat_celsius.json"))
        rsp.post(with_query(URL_HEAT), body="", content_type="application/json")

        result = await lyric_client.set_thermostat(
            LOCATION_ID,
            DEVICE_ID_HEAT,
            heat_setpoint=21.5,
            thermostat_setpoint_status="HoldUntil",
        )

        rsp.assert_called_with(
            URL_HEAT,
            HTTPMethod.POST,
            headers=headers_bearer(),
            params={"apikey": CLIENT_ID, "locationId": LOCATION_ID},
            json={
                "mode": "Heat",
                "heatSetpoint": 21.5,
                "coolSetpoint": 26.0,
                "thermostatSetpointStatus": "HoldUntil",
                "nextPeriodTime": "22:00:00",
            },
        )

    assert result == {}


async def test_set_thermostat_hold_until_downgraded(lyric_client: LyricClient) -> None:
    """Test HoldUntil is sent as PermanentHold if there is no nextPeriodTime."""

    with aioresponses() as rsp:
        rsp.get(
            with_query(URL_COOL), payload=load_fixture("thermostat_fahrenheit.json")
        )
        rsp.post(with_query(URL_COOL), status=HTTPStatus.NO_CONTENT)

        assert (
            await lyric_client.set_thermostat(
                LOCATION_ID,
                DEVICE_ID_COOL,
                cool_setpoint=74.0,
                thermostat_setpoint_status="HoldUntil",
            )
            is None
        )

        (call,) = requests_made(rsp, "POST", URL_COOL)

    assert call.kwargs["json"] == {
        "mode": "Cool",
        "heatSetpoint": 62.0,
        "coolSetpoint": 74.0,
        "thermostatSetpointStatus": "PermanentHold",
        "autoChangeoverActive": False,
    }


async def test_set_thermostat_invalid_snapshot(lyric_client: LyricClient) -> None:
    """Test .set_thermostat() does not write if the snapshot is invalid."""

    snapshot = load_fixture("thermostat_celsius.json")
    del snapshot["changeableValues"]

    with aioresponses() as rsp:
        rsp.get(with_query(URL_HEAT), payload=snapshot)

        with pytest.raises(exc.BadApiResponseError):
            await lyric_client.set_thermostat(LOCATION_ID, DEVICE_ID_HEAT, mode="Off")

        assert requests_made(rsp, "POST", URL_HEAT) == []


async def test_resume_schedule(lyric_client: LyricClient) -> None:
    """Test .resume_schedule() sends NoHold (and no nextPeriodTime)."""

    snapshot = load_fixture("thermostat_celsius.json")
    snapshot["changeableValues"]["thermostatSetpointStatus"] = "HoldUntil"

    with aioresponses() as rsp:
        rsp.get(with_query(URL_HEAT), payload=snapshot)
        rsp.post(with_query(URL_HEAT), body="", content_type="application/json")

        await lyric_client.resume_schedule(LOCATION_ID, DEVICE_ID_HEAT)

        (call,) = requests_made(rsp, "POST", URL_HEAT)

    assert call.kwargs["json"] == {
        "mode": "Heat",
        "heatSetpoint": 20.0,
        "coolSetpoint": 26.0,
        "thermostatSetpointStatus": "NoHold",
    }


async def test_set_fan_mode(lyric_client: LyricClient) -> None:
    """Test .set_fan_mode() (there is no snapshot to merge with)."""

    url = url_fan(DEVICE_ID_COOL)

    with aioresponses() as rsp:
        rsp.post(with_query(url), body="", content_type="application/json")

        await lyric_client.set_fan_mode(LOCATION_ID, DEVICE_ID_COOL, "Circulate")

        rsp.assert_called_once_with(
            url,
            HTTPMethod.POST,
            headers=headers_bearer(),
            params={"apikey": CLIENT_ID, "locationId": LOCATION_ID},
            json={"mode": "Circulate"},
        )
