"""lyricasync provides an async client for the Honeywell Home (Lyric) API."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, TypeVar

from .const import _DBG_DONT_OBFUSCATE, REGEX_EMAIL_ADDRESS

if TYPE_CHECKING:
    from collections.abc import Callable

_T = TypeVar("_T")


def fahrenheit_to_celsius(value: float) -> float:
    """Return a temperature converted from Fahrenheit to Celsius."""
    return (value - 32) / 1.8


def celsius_to_fahrenheit(value: float) -> float:
    """Return a temperature converted from Celsius to Fahrenheit."""
    return value * 1.8 + 32


def _convert_keys(data: _T, fnc: Callable[[str], str]) -> _T:
    """Recursively convert all dict keys as per some function.

    For example, converts all keys to snake_case, or camelCase, etc.
    Used after retrieving (or before sending) JSON via the vendor API.
    """

    def recurse(data_: Any) -> Any:
        if isinstance(data_, list):
            return [recurse(i) for i in data_]

        if not isinstance(data_, dict):
            return data_

        return {fnc(k): recurse(v) for k, v in data_.items()}

    return recurse(data)  # type:ignore[no-any-return]


_STEP_1 = re.compile(r"(.)([A-Z][a-z]+)")
_STEP_2 = re.compile(r"([a-z0-9])([A-Z])")


def camel_to_snake(s: str) -> str:
    """Return a string converted (from camelCase) to snake_case.

    Trailing acronyms are handled, e.g. "deviceID" becomes "device_id".
    """
    if " " in s:
        raise ValueError("Input string should not contain spaces")
    return _STEP_2.sub(r"\1_\2", _STEP_1.sub(r"\1_\2", s)).lower()


def snake_to_camel(s: str) -> str:
    """Return a string converted (from snake_case) to camelCase."""
    if " " in s:
        raise ValueError("Input string should not contain spaces")
    components = s.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def noop(s: _T) -> _T:
    """Return a value (usually a string) unconverted."""
    return s


def convert_keys_to_camel_case(data: _T) -> _T:
    """Recursively convert all dict keys from snake_case to camelCase.

    Used before sending JSON to the vendor API.
    """
    return _convert_keys(data, snake_to_camel)


def convert_keys_to_snake_case(data: _T) -> _T:
    """Recursively convert all dict keys from camelCase to snake_case.

    Used after retrieving JSON from the vendor API.
    """
    return _convert_keys(data, camel_to_snake)


def obfuscate(value: bool | float | str) -> bool | float | str | None:
    """Obfuscate a value (usually to protect secrets during logging)."""

    if _DBG_DONT_OBFUSCATE:
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return 0
    if not isinstance(value, str):
        raise TypeError(f"obfuscate() expects bool | float | str, got {type(value)}")
    if REGEX_EMAIL_ADDRESS.match(value):
        return "******@obfuscated.com"
    return "********"


_KEYS_TO_OBSCURE = (  # also keys with 'name' in them
    "streetAddress",
    "city",
    "zipcode",
    "country",
    "macID",
    "email",
    "phone",
)


def obscure_secrets(data: _T) -> _T:
    """Recursively obsfucate all dict/list values that might be secrets.

    Used when logging JSON received from the vendor API.
    """

    def _obfuscate(key: str, val: Any) -> Any:
        if isinstance(val, dict | list):
            return recurse(val)
        if val is None:
            return None
        if not isinstance(val, str):
            return obfuscate(val)
        if REGEX_EMAIL_ADDRESS.match(val):
            return "nobody@nowhere.com"
        if "name" in key.lower():
            return val[:2].ljust(len(val), "*")
        return "".join("*" if char != " " else " " for char in val)

    def should_obfuscate(key: Any) -> bool:
        return isinstance(key, str) and (
            "name" in key.lower() or key in _KEYS_TO_OBSCURE
        )

    def recurse(data_: Any) -> Any:
        if isinstance(data_, list):
            return [recurse(i) for i in data_]

        if not isinstance(data_, dict):
            return data_

        return {
            k: _obfuscate(k, v) if should_obfuscate(k) else recurse(v)
            for k, v in data_.items()
        }

    return data if _DBG_DONT_OBFUSCATE else recurse(data)  # type:ignore[no-any-return]
