"""Tests for lyric-async."""

from __future__ import annotations

import json
from datetime import UTC, datetime as dt, timedelta as td
from typing import TYPE_CHECKING, Any

import aiohttp
import pytest
from aioresponses import aioresponses

from lyricasync import LyricClient
from lyricasync.auth import AbstractTokenManager

from .const import ACCESS_TOKEN, CLIENT_ID, CLIENT_SECRET, FIXTURES_DIR, REFRESH_TOKEN

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator

    from aioresponses.core import RequestCall

    from lyricasync.schemas import AccessTokenEntryT


class TokenManager(AbstractTokenManager):
    """A token manager that keeps its tokens in memory (for testing)."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

        self.saved: list[AccessTokenEntryT] = []  # every token that was saved

    async def save_access_token(self) -> None:
        self.saved.append(self._export_access_token())


def load_fixture(file_name: str) -> Any:
    """Return the JSON of a fixture (as received from the vendor, i.e. camelCase)."""

    with (FIXTURES_DIR / file_name).open() as f:
        return json.load(f)


def requests_made(rsp: aioresponses, method: str, url: str) -> list[RequestCall]:
    """Return the calls made to a URL, ignoring any query string."""

    return [
        call
        for (mth, u), calls in rsp.requests.items()
        if mth == method and str(u.with_query(None)) == url
        for call in calls
    ]


@pytest.fixture
def block_aiohttp() -> Generator[aioresponses]:
    """Prevent any actual I/O: will raise ClientConnectionError(Connection refused)."""
    with aioresponses() as mocked_responses:
        yield mocked_responses


@pytest.fixture
async def client_session() -> AsyncGenerator[aiohttp.ClientSession]:
    """Yield an aiohttp.ClientSession (its requests are usually mocked)."""

    client_session = aiohttp.ClientSession()

    try:
        yield client_session
    finally:
        await client_session.close()


@pytest.fixture
def token_manager(client_session: aiohttp.ClientSession) -> TokenManager:
    """Return a token manager without any tokens (i.e. no code has been exchanged)."""
    return TokenManager(CLIENT_ID, CLIENT_SECRET, client_session)


@pytest.fixture
def access_token_valid() -> AccessTokenEntryT:
    """Return a (serialized) access token that is valid for another 30 minutes."""

    return {
        "access_token": ACCESS_TOKEN,
        "access_token_expires": (dt.now(tz=UTC) + td(minutes=30)).isoformat(),
        "refresh_token": REFRESH_TOKEN,
    }


@pytest.fixture
def authed_token_manager(
    token_manager: TokenManager, access_token_valid: AccessTokenEntryT
) -> TokenManager:
    """Return a token manager with a valid access token (and a refresh token)."""

    token_manager._import_access_token(access_token_valid)
    return token_manager


@pytest.fixture
def lyric_client(authed_token_manager: TokenManager) -> LyricClient:
    """Return a client with a valid access token."""
    return LyricClient(authed_token_manager)
