"""lyricasync provides an async client for the Honeywell Home (Lyric) API."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime as dt, timedelta as td
from functools import cached_property
from http import HTTPMethod, HTTPStatus
from typing import TYPE_CHECKING, Any, Final

import aiohttp
import voluptuous as vol

from . import exceptions as exc
from .const import (
    ERR_MSG_LOOKUP_BASE,
    HEADERS_BASE,
    HEADERS_CRED,
    HINT_BAD_CREDS,
    HINT_CHECK_NETWORK,
    HINT_WAIT_A_WHILE,
    HOSTNAME,
    RATE_LIMIT_FAULTSTRING,
    REDIRECT_URI,
    S2_FAULT,
    S2_FAULTSTRING,
    SZ_ACCESS_TOKEN,
    SZ_ACCESS_TOKEN_EXPIRES,
    SZ_EXPIRES_IN,
    SZ_REFRESH_TOKEN,
    URL_BASE,
    URL_TOKEN,
)
from .helpers import (
    convert_keys_to_camel_case,
    convert_keys_to_snake_case,
    obscure_secrets,
)
from .schemas import LYRIC_POST_OAUTH_TOKEN

if TYPE_CHECKING:
    from collections.abc import Callable

    from aiohttp.typedefs import StrOrURL

    from .schemas import AccessTokenEntryT, OAuthTokenResponseT


_LOGGER: Final = logging.getLogger(__name__.rpartition(".")[0])


CREDS_AUTHORIZATION_CODE: Final = {
    "grant_type": "authorization_code",
    "code": "",
    "redirect_uri": REDIRECT_URI,
}

CREDS_REFRESH_TOKEN: Final = {
    "grant_type": "refresh_token",
    "refresh_token": "",
}


class AbstractTokenManager(ABC):
    """An ABC for managing the OAuth2 tokens used for HTTP authentication.

    One token manager (and so one token) is shared by all the devices of an account.
    It is also the interpreter of every response from the vendor's API, as that is
    where rate limiting is detected (and then notified to any listeners).
    """

    _access_token: str
    _access_token_expires: dt | None  # None if the vendor didn't say (valid until 401)
    _refresh_token: str

    def __init__(
        self,
        client_id: str,
        secret: str,
        websession: aiohttp.ClientSession,
        /,
        *,
        _hostname: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialise the token manager."""

        self._client_id = client_id
        self._secret = secret
        self.websession: Final = websession

        self._hostname: Final = _hostname or HOSTNAME
        self.logger = logger or _LOGGER

        self._rate_limit_listeners: list[Callable[[], None]] = []
        self._refresh_task: asyncio.Task[AccessTokenEntryT] | None = None

        self._clear_access_token()  # initialise the attrs

    def __str__(self) -> str:
        """Return a string representation of the object."""
        return (
            f"{self.__class__.__name__}"
            f"(client_id='{self.client_id}', hostname='{self.hostname}')"
        )

    @cached_property
    def client_id(self) -> str:
        """Return the client id (also used as the apikey of resource requests)."""
        return self._client_id

    @cached_property
    def hostname(self) -> str:
        """Return the hostname used for HTTP authentication."""
        return self._hostname

    @cached_property
    def _basic_auth(self) -> str:
        return base64.b64encode(f"{self._client_id}:{self._secret}".encode()).decode(
            "utf-8"
        )

    def _clear_access_token(self) -> None:
        """Clear the auth tokens attrs (set to falsey state)."""

        self._access_token = ""
        self._access_token_expires = None
        self._refresh_token = ""

    @property
    def access_token(self) -> str:
        """Return the access token."""
        return self._access_token

    @property
    def access_token_expires(self) -> dt | None:
        """Return the expiration datetime of the access token (if known)."""
        return self._access_token_expires

    @property
    def refresh_token(self) -> str:
        """Return the refresh token."""
        return self._refresh_token

    def is_refreshable(self) -> bool:
        """Return True if the access token can be refreshed (has a refresh token)."""
        return bool(self._refresh_token)

    def is_token_valid(self) -> bool:
        """Return True if the access token is valid (the server may still reject it)."""

        if not self._access_token:
            return False
        if self._access_token_expires is None:
            return True
        return self._access_token_expires > dt.now(tz=UTC) + td(seconds=15)

    async def get_access_token(self) -> str:
        """Return a valid access token.

        If required (i.e. it is about to expire), refresh (and save) the token first.
        """

        if not self._access_token and not self._refresh_token:
            raise exc.AuthenticationFailedError(
                f"{self}: No access token (has an authorization code been exchanged?)"
            )

        if not self.is_token_valid():  # although may be rejected for other reasons
            await self.refresh_access_token(self._access_token)

        return self._access_token

    async def exchange_code(self, code: str) -> AccessTokenEntryT:
        """Exchange an authorization code for an access token, and save it.

        Will raise AuthenticationFailedError if the exchange is not successful.
        """

        self.logger.debug(f"{self}: Exchanging authorization code...")

        response = await self._post_access_token_request(
            CREDS_AUTHORIZATION_CODE | {"code": code}
        )
        self._update_access_token(response, keep_refresh_token=False)

        await self.save_access_token()
        return self._export_access_token()

    async def refresh_access_token(
        self, stale_token: str | None = None
    ) -> AccessTokenEntryT:
        """Refresh the access token, and save it.

        Concurrent callers share one refresh. If a caller supplies the access token
        that was rejected, and the token has since been refreshed by another caller,
        then the token is not refreshed again.
        """

        if not self._refresh_token:
            raise exc.AuthenticationFailedError(
                f"{self}: The access token is not refreshable (no refresh token)"
            )

        if (
            stale_token is not None
            and stale_token != self._access_token
            and self.is_token_valid()
        ):
            self.logger.debug(f"{self}: The access token has already been refreshed")
            return self._export_access_token()

        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh_access_token())
            self._refresh_task.add_done_callback(self._refresh_task_done)

        # a cancelled waiter must not cancel the refresh for the other waiters
        return await asyncio.shield(self._refresh_task)

    def _refresh_task_done(self, task: asyncio.Task[AccessTokenEntryT]) -> None:
        self._refresh_task = None

        # retrieve the exception, as there may be no waiters left to do so
        if not task.cancelled() and (err := task.exception()) is not None:
            self.logger.debug(f"{self}: Failed to refresh the access token: {err}")

    async def _refresh_access_token(self) -> AccessTokenEntryT:
        """Obtain a new access token using the refresh token."""

        self.logger.debug(f"{self}: Refreshing access_token...")

        response = await self._post_access_token_request(
            CREDS_REFRESH_TOKEN | {SZ_REFRESH_TOKEN: self._refresh_token}
        )
        self._update_access_token(response, keep_refresh_token=True)

        await self.save_access_token()
        return self._export_access_token()

    def _update_access_token(
        self, response: OAuthTokenResponseT, *, keep_refresh_token: bool
    ) -> None:
        """Replace the token attrs with those from a token response."""

        tokens: OAuthTokenResponseT = convert_keys_to_snake_case(response)

        try:
            access_token = tokens[SZ_ACCESS_TOKEN]
            expires_in = tokens.get(SZ_EXPIRES_IN)  # the vendor sends a str

            expires = (
                None
                if expires_in is None
                else dt.now(tz=UTC) + td(seconds=int(expires_in))
            )

        except (KeyError, TypeError, ValueError) as err:
            raise exc.AuthenticationFailedError(
                f"{self}: Authenticator response is invalid: {err!r}"
            ) from err

        if not isinstance(access_token, str) or not access_token:
            raise exc.AuthenticationFailedError(
                f"{self}: Authenticator response has no access token"
            )

        refresh_token = tokens.get(SZ_REFRESH_TOKEN) or ""
        if keep_refresh_token and not refresh_token:
            refresh_token = self._refresh_token

        self._access_token = access_token
        self._access_token_expires = expires
        self._refresh_token = refresh_token

        self.logger.debug(f" - access_token = {self.access_token}")
        self.logger.debug(f" - access_token_expires = {self.access_token_expires}")
        self.logger.debug(f" - refresh_token = {self.refresh_token}")

    async def _post_access_token_request(
        self, credentials: dict[str, str]
    ) -> OAuthTokenResponseT:
        """POST a request to the token endpoint and return the response (a dict).

        Will raise AuthenticationFailedError if the request is not successful.
        """

        url = f"https://{self.hostname}/{URL_TOKEN}"
        rsp: aiohttp.ClientResponse | None = None  # to prevent unbound error

        try:
            rsp = await self._request(
                HTTPMethod.POST,
                url,
                headers=HEADERS_CRED | {"Authorization": "Basic " + self._basic_auth},
                data=credentials,  # NOTE: is snake_case, and form-encoded
            )
            response = await self.process_response(rsp)

        except exc.ApiRequestFailedError as err:  # incl. ApiRateLimitExceededError
            if err.status in (HTTPStatus.BAD_REQUEST, HTTPStatus.UNAUTHORIZED):
                self.logger.error(HINT_BAD_CREDS)  # noqa: TRY400

            raise exc.AuthenticationFailedError(
                f"Authenticator response is invalid: {err}", status=err.status
            ) from err

        except (aiohttp.ClientError, TimeoutError) as err:  # incl. total timeout
            self.logger.error(HINT_CHECK_NETWORK)  # noqa: TRY400

            raise exc.AuthenticationFailedError(
                f"Authenticator response is invalid: {err}",
            ) from err

        finally:
            if rsp is not None:
                rsp.release()

        if not isinstance(response, dict):
            raise exc.AuthenticationFailedError(
                f"Authenticator response is not a JSON object: {response}"
            )

        try:  # the dict _should_ be the expected schema...
            self.logger.debug(
                f"POST {url}: {LYRIC_POST_OAUTH_TOKEN(response)}"  # is obfuscated
            )
        except vol.Invalid as err:
            self.logger.debug(f"POST {url}: payload may be invalid: {err}")

        return response  # type: ignore[return-value]

    async def process_response(self, rsp: aiohttp.ClientResponse) -> Any:
        """Interpret a response from the vendor's API and return its body.

        Will raise ApiRateLimitExceededError if the API rate limit has been exceeded,
        or ApiRequestFailedError if the request was otherwise unsuccessful.
        """

        if rsp.status == HTTPStatus.NO_CONTENT:
            return None

        text = await rsp.text()
        body: Any = text

        # the vendor will send an empty body with a JSON content type
        if rsp.headers.get(aiohttp.hdrs.CONTENT_TYPE, "").startswith(
            "application/json"
        ):
            try:
                body = json.loads(text) if text else {}
            except json.JSONDecodeError as err:
                raise exc.ApiRequestFailedError(
                    f"{rsp.method} {rsp.url}: response is not valid JSON: {text}",
                    status=rsp.status,
                ) from err

        if rsp.ok:
            return body

        msg = f"{rsp.method} {rsp.url}: {rsp.status} {rsp.reason}, response={body}"

        # the vendor signals rate limiting via the body, and not the status
        if self.is_rate_limited(body):
            self.logger.error(HINT_WAIT_A_WHILE)
            self._notify_rate_limited()
            raise exc.ApiRateLimitExceededError(msg, status=rsp.status)

        if hint := ERR_MSG_LOOKUP_BASE.get(rsp.status):
            self.logger.error(hint)

        raise exc.ApiRequestFailedError(msg, status=rsp.status)

    @staticmethod
    def is_rate_limited(body: Any) -> bool:
        """Return True if a response body is the vendor's rate limit fault."""

        if not isinstance(body, dict):
            return False
        if not isinstance(fault := body.get(S2_FAULT), dict):
            return False
        if not isinstance(faultstring := fault.get(S2_FAULTSTRING), str):
            return False
        return RATE_LIMIT_FAULTSTRING in faultstring

    def add_rate_limit_listener(
        self, callback: Callable[[], None]
    ) -> Callable[[], None]:
        """Add a callback for when the API rate limit is exceeded.

        Return a function to remove the callback.
        """

        self._rate_limit_listeners.append(callback)

        def remove_listener() -> None:
            if callback in self._rate_limit_listeners:
                self._rate_limit_listeners.remove(callback)

        return remove_listener

    def _notify_rate_limited(self) -> None:
        """Notify every rate limit listener (a failing listener won't stop others)."""

        for callback in list(self._rate_limit_listeners):
            try:
                callback()
            except Exception:
                self.logger.exception(f"{self}: Error in rate limit listener")

    @abstractmethod
    async def save_access_token(self) -> None:
        """Save the (serialized) access token (and expiry dtm, refresh token)."""

    def _import_access_token(self, tokens: AccessTokenEntryT) -> None:
        """Extract the token data from a (serialized) dictionary."""

        expires = tokens.get(SZ_ACCESS_TOKEN_EXPIRES)

        self._access_token = tokens[SZ_ACCESS_TOKEN]
        self._access_token_expires = dt.fromisoformat(expires) if expires else None
        self._refresh_token = tokens.get(SZ_REFRESH_TOKEN) or ""

    def _export_access_token(self) -> AccessTokenEntryT:
        """Convert the token data to a (serialized) dictionary."""

        return {
            SZ_ACCESS_TOKEN_EXPIRES: (
                self._access_token_expires.isoformat()
                if self._access_token_expires
                else None
            ),
            SZ_ACCESS_TOKEN: self._access_token,
            SZ_REFRESH_TOKEN: self._refresh_token,
        }

    async def _request(  # dev/test wrapper
        self, method: HTTPMethod, url: StrOrURL, /, **kwargs: Any
    ) -> aiohttp.ClientResponse:
        """Wrap the request to the ClientSession (useful for dev/test)."""
        return await self.websession.request(method, url, **kwargs)


class Auth:
    """A class for interacting with the Honeywell Home (Lyric) API."""

    def __init__(
        self,
        token_manager: AbstractTokenManager,
        websession: aiohttp.ClientSession,
        /,
        *,
        _hostname: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """A class for interacting with the Honeywell Home (Lyric) API."""

        self.token_manager: Final = token_manager
        self.websession: Final = websession

        self._hostname: Final = _hostname or HOSTNAME
        self.logger: Final = logger or _LOGGER

        self._url_base = f"https://{self.hostname}/{URL_BASE}"

    def __str__(self) -> str:
        """Return a string representation of the object."""
        return f"{self.__class__.__name__}(base='{self.url_base}')"

    @cached_property
    def hostname(self) -> str:
        """Return the hostname used for GET/POST requests."""
        return self._hostname

    @property
    def url_base(self) -> StrOrURL:
        """Return the URL base used for GET/POST requests."""
        return self._url_base

    async def get(
        self,
        url: StrOrURL,
        /,
        schema: vol.Schema | None = None,
        *,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Call the vendor's API with a GET.

        Optionally checks the response JSON against the expected schema and logs a
        debug message if it doesn't match.
        """

        response = await self.request(HTTPMethod.GET, url, params=params or {})

        if schema:
            try:
                schema(response)
            except vol.Invalid as err:
                self.logger.debug(f"GET {url}: payload may be invalid: {err}")

        return response

    async def post(
        self,
        url: StrOrURL,
        /,
        json: dict[str, Any],
        *,
        schema: vol.Schema | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Call the vendor's API with a POST.

        Optionally checks the payload JSON against the expected schema and logs a
        debug message if it doesn't match.
        """

        if schema:
            try:
                schema(json)
            except vol.Invalid as err:
                self.logger.debug(f"POST {url}: payload may be invalid: {err}")

        return await self.request(HTTPMethod.POST, url, json=json, params=params or {})

    async def request(
        self, method: HTTPMethod, url: StrOrURL, /, **kwargs: Any
    ) -> Any:
        """Make a request to the vendor's RESTful API.

        Converts keys to/from snake_case as required. If the access token is rejected
        (401), the token is refreshed and the request is retried (once only).
        """

        if "json" in kwargs:
            kwargs["json"] = convert_keys_to_camel_case(kwargs["json"])

        access_token = await self.token_manager.get_access_token()

        try:
            response = await self._make_request(method, url, access_token, **kwargs)

        except exc.ApiRequestFailedError as err:
            if err.status != HTTPStatus.UNAUTHORIZED:  # 401
                raise

            self.logger.debug(f"{self}: The access token was rejected: {err}")

            await self.token_manager.refresh_access_token(access_token)
            access_token = self.token_manager.access_token

            response = await self._make_request(method, url, access_token, **kwargs)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"{method} {url}: {obscure_secrets(response)}")

        if method == HTTPMethod.GET:
            return convert_keys_to_snake_case(response)
        return response

    def _headers(
        self, access_token: str, headers: dict[str, str] | None = None
    ) -> dict[str, str]:
        """Return the headers, with an authorization header (a bearer token)."""

        headers = HEADERS_BASE | (headers or {})
        return headers | {"Authorization": "Bearer " + access_token}

    async def _make_request(
        self, method: HTTPMethod, url: StrOrURL, access_token: str, /, **kwargs: Any
    ) -> Any:
        """Make a GET/POST request and return the response (usu. a dict or a list).

        Will raise an exception if the request is not successful.
        """

        rsp: aiohttp.ClientResponse | None = None  # to prevent unbound error

        url = f"{self.url_base}/{url}"
        headers = self._headers(access_token, kwargs.pop("headers", None))
        params = {"apikey": self.token_manager.client_id} | kwargs.pop("params", {})

        try:
            rsp = await self._request(
                method, url, headers=headers, params=params, **kwargs
            )
            response = await self.token_manager.process_response(rsp)

        except (aiohttp.ClientError, TimeoutError) as err:  # incl. total timeout
            self.logger.error(HINT_CHECK_NETWORK)  # noqa: TRY400

            raise exc.ApiRequestFailedError(
                f"{method} {url}: {err}",
            ) from err

        else:
            return response

        finally:
            if rsp is not None:
                rsp.release()

    async def _request(  # dev/test wrapper
        self, method: HTTPMethod, url: StrOrURL, /, **kwargs: Any
    ) -> aiohttp.ClientResponse:
        """Wrap the request to the ClientSession (useful for dev/test)."""
        return await self.websession.request(method, url, **kwargs)
