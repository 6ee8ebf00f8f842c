"""lyric_cli - the token cache and credential store used by the CLI."""

from __future__ import annotations

import json
import logging
import tempfile
from datetime import UTC, datetime as dt, timedelta as td
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, NotRequired, TypedDict

import aiofiles
import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from lyricasync.auth import AbstractTokenManager
from lyricasync.const import SZ_ACCESS_TOKEN, SZ_ACCESS_TOKEN_EXPIRES, SZ_REFRESH_TOKEN

if TYPE_CHECKING:
    from lyricasync.schemas import AccessTokenEntryT


CACHE_FILE: Final = Path(tempfile.gettempdir()) / ".lyric-cache.tmp"
CREDENTIAL_SERVICE_NAME: Final = "lyric-async"
CREDENTIAL_CLIENT_ID_KEY: Final = "client_id"
CREDENTIAL_CLIENT_SECRET_KEY: Final = "client_secret"  # noqa: S105


class UserEntryT(TypedDict):
    access_token: NotRequired[AccessTokenEntryT]


CacheDataT = dict[str, UserEntryT]  # str is the client_id

"""
{
    "a1b2c3d4e5...": {
        "access_token": {
            "access_token": "QMq9uVtC...",
            "access_token_expires": "2024-09-24T10:25:12+00:00",
            "refresh_token": "rWJ1gGVm..."
        }
    }
}
"""


class TokenCacheManager(AbstractTokenManager):
    """A token manager that uses a file to cache the tokens."""

    def __init__(
        self, *args: Any, cache_file: Path | None = None, **kwargs: Any
    ) -> None:
        """Initialise the token manager."""

        kwargs["logger"] = kwargs.get("logger") or logging.getLogger(__name__)

        super().__init__(*args, **kwargs)

        self._cache_file: Final = cache_file or CACHE_FILE

    @property
    def cache_file(self) -> str:
        """Return the token cache path."""
        return str(self._cache_file)

    @staticmethod
    def _clean_cache(old_cache: CacheDataT) -> CacheDataT:
        """Return a copy of a cache with any unusable tokens removed.

        A token is usable if it is refreshable, or if its access token has not expired.
        """

        new_cache: CacheDataT = {}

        dt_now = (dt.now(tz=UTC) + td(seconds=15)).isoformat()

        for client_id, entry in old_cache.items():
            if not (t := entry.get(SZ_ACCESS_TOKEN)):
                continue

            expires = t.get(SZ_ACCESS_TOKEN_EXPIRES)
            if t.get(SZ_REFRESH_TOKEN) or expires is None or expires > dt_now:
                new_cache[client_id] = {SZ_ACCESS_TOKEN: t}

        return new_cache  # could be Falsey

    async def _read_cache_from_file(self) -> CacheDataT:
        """Return a copy of the cache as read from file."""

        try:
            async with aiofiles.open(self.cache_file) as fp:
                content = await fp.read() or "{}"
        except FileNotFoundError:
            return {}

        cache: CacheDataT = json.loads(content)
        return cache

    async def _write_cache_to_file(self, cache: CacheDataT) -> None:
        """Write the supplied cache to file."""

        content = json.dumps(cache, indent=4)

        async with aiofiles.open(self.cache_file, "w") as fp:
            await fp.write(content)

    async def load_access_token(self) -> None:
        """Load the (serialized) access token from the cache, if there is one."""

        cache: CacheDataT = await self._read_cache_from_file()

        entry: UserEntryT | None = cache.get(self.client_id)
        if not entry:
            return

        tokens: AccessTokenEntryT | None = entry.get(SZ_ACCESS_TOKEN)
        if not tokens:
            return

        self._import_access_token(tokens)
        self.logger.debug(f"{self}: Loaded the access token from {self.cache_file}")

    async def save_access_token(self) -> None:
        """Save the (serialized) access token to the cache.

        Includes the access token expiry datetime, and the refresh token.
        """

        cache: CacheDataT = await self._read_cache_from_file()

        cache[self.client_id] = {SZ_ACCESS_TOKEN: self._export_access_token()}

        await self._write_cache_to_file(self._clean_cache(cache))


def get_stored_credentials() -> tuple[str, str] | None:
    """Retrieve the stored client id and secret from secure storage.

    Returns:
        Tuple of (client_id, client_secret) if credentials are stored, None otherwise.
    """

    try:
        client_id = keyring.get_password(
            CREDENTIAL_SERVICE_NAME, CREDENTIAL_CLIENT_ID_KEY
        )
        if not client_id:
            return None

        secret = keyring.get_password(
            CREDENTIAL_SERVICE_NAME, CREDENTIAL_CLIENT_SECRET_KEY
        )
        if not secret:
            return None

    except KeyringError:  # e.g. there is no usable backend
        return None

    return (client_id, secret)


def store_credentials(client_id: str, secret: str) -> None:
    """Store the client id and secret in secure storage.

    Args:
        client_id: The application's client id (consumer key).
        secret: The application's client secret (consumer secret).
    """

    try:
        keyring.set_password(
            CREDENTIAL_SERVICE_NAME, CREDENTIAL_CLIENT_ID_KEY, client_id
        )
        keyring.set_password(
            CREDENTIAL_SERVICE_NAME, CREDENTIAL_CLIENT_SECRET_KEY, secret
        )
    except KeyringError as err:
        raise RuntimeError(f"Failed to store credentials: {err}") from err


def delete_stored_credentials() -> None:
    """Delete any stored credentials from secure storage."""

    for key in (CREDENTIAL_CLIENT_ID_KEY, CREDENTIAL_CLIENT_SECRET_KEY):
        try:
            keyring.delete_password(CREDENTIAL_SERVICE_NAME, key)
        except PasswordDeleteError:  # they may not exist
            continue


def get_credential_storage_location() -> str:
    """Return a human-readable description of where credentials are stored."""

    backend = keyring.get_keyring()
    backend_module = backend.__class__.__module__

    if "macOS" in backend_module or "OSX" in backend_module:
        return "macOS Keychain (System Keychain Access)"
    if "Windows" in backend_module:
        return "Windows Credential Manager"
    if "SecretService" in backend_module:
        return "Linux Secret Service (e.g., GNOME Keyring, KWallet)"
    return f"Keyring backend: {backend.__class__.__name__}"
