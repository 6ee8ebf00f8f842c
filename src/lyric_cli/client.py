#!/usr/bin/env python3
"""lyric_cli - a CLI utility that is not a core part of the library."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import TYPE_CHECKING, Any, Final

import aiofiles
import aiohttp
import asyncclick as click

from lyricasync import LyricClient, Thermostat, capabilities_from_config
from lyricasync import exceptions as exc
from lyricasync.const import (
    POLL_INTERVAL,
    SZ_DEVICE_ID,
    SZ_DEVICES,
    SZ_LOCATION_ID,
    FanMode,
)

from .auth import (
    CACHE_FILE,
    TokenCacheManager,
    delete_stored_credentials,
    get_credential_storage_location,
    get_stored_credentials,
    store_credentials,
)

if TYPE_CHECKING:
    from io import TextIOWrapper


SZ_CLEANUP: Final = "cleanup"
SZ_CLIENT: Final = "client"
SZ_TOKEN_MANAGER: Final = "token_manager"

ENVVAR_CLIENT_ID: Final = "LYRIC_CLIENT_ID"
ENVVAR_CLIENT_SECRET: Final = "LYRIC_CLIENT_SECRET"  # noqa: S105


def _check_positive_int(ctx: click.Context, param: click.Option, value: int) -> int:
    """Validate the parameter is a positive int."""

    if value < 1:
        raise click.BadParameter("must >= 1")

    return value


async def _write(output_file: TextIOWrapper | Any, content: str) -> None:
    """Write to a file, async if possible and sync otherwise."""

    if output_file.name == "<stdout>":
        output_file.write(content)
    else:
        async with aiofiles.open(output_file.name, "w") as fp:
            await fp.write(content)


async def _get_thermostat(
    client: LyricClient, location_id: str, device_id: str
) -> Thermostat:
    """Return a Thermostat, with its capabilities as per its discovery config."""

    for loc in await client.get_locations():
        if str(loc[SZ_LOCATION_ID]) != location_id:
            continue
        for dev in loc[SZ_DEVICES]:
            if dev[SZ_DEVICE_ID] == device_id:
                return Thermostat(
                    client, location_id, device_id, capabilities_from_config(dev)
                )

    raise click.BadParameter(f"No such device: {location_id}/{device_id}")


def _state_as_text(thermostat: Thermostat) -> str:
    result = asdict(thermostat.state) | {
        "units": thermostat.units,
        "available": thermostat.available,
        "unavailable_reason": thermostat.unavailable_reason,
    }
    return json.dumps(result, indent=4)


@click.group()
@click.option(
    "--client-id",
    "-i",
    default=None,
    envvar=ENVVAR_CLIENT_ID,
    help="The application's client id (consumer key).",
)
@click.option(
    "--client-secret",
    "-s",
    default=None,
    envvar=ENVVAR_CLIENT_SECRET,
    help="The application's client secret (consumer secret).",
)
@click.option("--no-tokens", "-c", is_flag=True, help="Dont load the token cache.")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging.")
@click.pass_context
async def cli(
    ctx: click.Context,
    client_id: str | None,
    client_secret: str | None,
    no_tokens: bool | None = None,
    debug: bool | None = None,
) -> None:
    """A demonstration CLI for the lyricasync client library."""

    # Get credentials from command line/environment, or from secure storage
    if client_id is None or client_secret is None:
        if stored := get_stored_credentials():
            client_id = client_id or stored[0]
            client_secret = client_secret or stored[1]

    if client_id is None:
        raise click.BadParameter(
            "Client id not provided. Use --client-id/-i, or run 'lyric-client login'."
        )
    if client_secret is None:
        raise click.BadParameter(
            "Client secret not provided. Use --client-secret/-s, or run "
            "'lyric-client login'."
        )

    async def cleanup(websession: aiohttp.ClientSession) -> None:
        """Close the web session (the token cache is saved as tokens change)."""
        await websession.close()

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    websession = aiohttp.ClientSession()  # timeout=aiohttp.ClientTimeout(total=30))
    token_manager = TokenCacheManager(
        client_id, client_secret, websession, cache_file=CACHE_FILE
    )

    if not no_tokens:  # then restore cached tokens, if any
        await token_manager.load_access_token()

    ctx.obj[SZ_TOKEN_MANAGER] = token_manager
    ctx.obj[SZ_CLIENT] = LyricClient(token_manager, debug=bool(debug))
    ctx.obj[SZ_CLEANUP] = cleanup(websession)


@cli.command()
@click.argument("code", type=str)
@click.pass_context
async def authorize(ctx: click.Context, code: str) -> None:
    """Exchange an authorization code for an access token (and cache it)."""

    print("\r\nclient.py: Exchanging the authorization code...")

    token_manager: TokenCacheManager = ctx.obj[SZ_TOKEN_MANAGER]

    try:
        await token_manager.exchange_code(code)
    finally:
        await ctx.obj[SZ_CLEANUP]

    print(f" - the access token has been saved to: {token_manager.cache_file}")
    print(" - finished.\r\n")


@cli.command()
@click.option(  # --output-file
    "--output-file",
    "-o",
    type=click.File("w"),
    default="-",
    help="The output file.",
)
@click.pass_context
async def locations(ctx: click.Context, output_file: TextIOWrapper) -> None:
    """Download the user's locations, and their devices."""

    print("\r\nclient.py: Retrieving the locations...")

    client: LyricClient = ctx.obj[SZ_CLIENT]

    try:
        result = await client.get_locations()
        for loc in result:
            for dev in loc.get(SZ_DEVICES, []):
                dev["capabilities"] = sorted(capabilities_from_config(dev))
    finally:
        await ctx.obj[SZ_CLEANUP]

    await _write(output_file, json.dumps(result, indent=4) + "\r\n\r\n")
    print(" - finished.\r\n")


@cli.command()
@click.option("--loc-id", "-l", required=True, type=str, help="The location id.")
@click.option("--dev-id", "-d", required=True, type=str, help="The device id.")
@click.option(  # --output-file
    "--output-file",
    "-o",
    type=click.File("w"),
    default="-",
    help="The output file.",
)
@click.pass_context
async def status(
    ctx: click.Context, loc_id: str, dev_id: str, output_file: TextIOWrapper
) -> None:
    """Retrieve the (reconciled) state of a thermostat."""

    print("\r\nclient.py: Retrieving the thermostat state...")

    client: LyricClient = ctx.obj[SZ_CLIENT]

    try:
        thermostat = await _get_thermostat(client, loc_id, dev_id)
        await thermostat.poll()
        thermostat.stop()
    finally:
        await ctx.obj[SZ_CLEANUP]

    await _write(output_file, _state_as_text(thermostat) + "\r\n\r\n")
    print(" - finished.\r\n")


@cli.command()
@click.option("--loc-id", "-l", required=True, type=str, help="The location id.")
@click.option("--dev-id", "-d", required=True, type=str, help="The device id.")
@click.option(  # --interval
    "--interval",
    "-n",
    callback=_check_positive_int,
    default=POLL_INTERVAL,
    type=int,
    help="The polling interval, in seconds.",
)
@click.pass_context
async def poll(ctx: click.Context, loc_id: str, dev_id: str, interval: int) -> None:
    """Poll a thermostat, and print its state whenever it changes (until ^C)."""

    print("\r\nclient.py: Polling the thermostat (press ^C to stop)...")

    client: LyricClient = ctx.obj[SZ_CLIENT]
    thermostat: Thermostat | None = None

    def print_mode(mode: str) -> None:
        print(f" - the mode has changed to: {mode}")

    try:
        thermostat = await _get_thermostat(client, loc_id, dev_id)
        thermostat.add_mode_listener(print_mode)

        last_state = None
        while True:
            await thermostat.poll()

            if (state := _state_as_text(thermostat)) != last_state:
                print(state)
                last_state = state

            await asyncio.sleep(interval)

    except (KeyboardInterrupt, asyncio.CancelledError):
        pass

    finally:
        if thermostat is not None:
            thermostat.stop()
        await ctx.obj[SZ_CLEANUP]

    print(" - finished.\r\n")


@cli.command()
@click.option("--loc-id", "-l", required=True, type=str, help="The location id.")
@click.option("--dev-id", "-d", required=True, type=str, help="The device id.")
@click.option("--cool", is_flag=True, help="Set the cool (not the heat) setpoint.")
@click.argument("temperature", type=float)
@click.pass_context
async def set_temperature(
    ctx: click.Context, loc_id: str, dev_id: str, cool: bool, temperature: float
) -> None:
    """Set a setpoint (in Celsius) until the next scheduled period."""

    print("\r\nclient.py: Setting the setpoint...")

    client: LyricClient = ctx.obj[SZ_CLIENT]

    try:
        thermostat = await _get_thermostat(client, loc_id, dev_id)
        await thermostat.poll()  # so the units of the thermostat are known

        if cool:
            await thermostat.set_cool_setpoint(temperature)
        else:
            await thermostat.set_temperature(temperature)
        thermostat.stop()

    finally:
        await ctx.obj[SZ_CLEANUP]

    print(" - finished.\r\n")


@cli.command()
@click.option("--loc-id", "-l", required=True, type=str, help="The location id.")
@click.option("--dev-id", "-d", required=True, type=str, help="The device id.")
@click.argument("mode", type=str)
@click.pass_context
async def set_mode(ctx: click.Context, loc_id: str, dev_id: str, mode: str) -> None:
    """Set the mode of a thermostat (e.g. heat, off, Cool, Auto)."""

    print("\r\nclient.py: Setting the mode...")

    client: LyricClient = ctx.obj[SZ_CLIENT]

    try:
        thermostat = await _get_thermostat(client, loc_id, dev_id)
        await thermostat.set_mode(mode)
        thermostat.stop()
    finally:
        await ctx.obj[SZ_CLEANUP]

    print(" - finished.\r\n")


@cli.command()
@click.option("--loc-id", "-l", required=True, type=str, help="The location id.")
@click.option("--dev-id", "-d", required=True, type=str, help="The device id.")
@click.argument("mode", type=click.Choice([str(m) for m in FanMode]))
@click.pass_context
async def set_fan_mode(
    ctx: click.Context, loc_id: str, dev_id: str, mode: str
) -> None:
    """Set the mode of a thermostat's fan."""

    print("\r\nclient.py: Setting the fan mode...")

    client: LyricClient = ctx.obj[SZ_CLIENT]

    try:
        thermostat = await _get_thermostat(client, loc_id, dev_id)
        await thermostat.set_fan_mode(mode)
        thermostat.stop()
    finally:
        await ctx.obj[SZ_CLEANUP]

    print(" - finished.\r\n")


@cli.command()
@click.option("--loc-id", "-l", required=True, type=str, help="The location id.")
@click.option("--dev-id", "-d", required=True, type=str, help="The device id.")
@click.pass_context
async def resume_schedule(ctx: click.Context, loc_id: str, dev_id: str) -> None:
    """Cancel any hold, and resume the schedule of a thermostat."""

    print("\r\nclient.py: Resuming the schedule...")

    client: LyricClient = ctx.obj[SZ_CLIENT]

    try:
        thermostat = await _get_thermostat(client, loc_id, dev_id)
        await thermostat.resume_schedule()
        thermostat.stop()
    finally:
        await ctx.obj[SZ_CLEANUP]

    print(" - finished.\r\n")


@click.command("login")
@click.option("--client-id", "-i", default=None, help="The application's client id.")
@click.option("--client-secret", "-s", default=None, help="The application's secret.")
@click.option("--delete", "-d", is_flag=True, help="Delete stored credentials.")
def login(client_id: str | None, client_secret: str | None, delete: bool) -> None:
    """Store the application's credentials securely for future use.

    Credentials are stored in the system's secure credential store (a keyring).

    If the client id or secret are not provided, you will be prompted to enter them.
    The secret will not be displayed while typing.
    """

    if delete:
        delete_stored_credentials()
        print("\r\n✓ Stored credentials have been deleted.\r\n")
        return

    if client_id is None:
        client_id = click.prompt("Client id", type=str)

    if client_secret is None:
        client_secret = click.prompt("Client secret", type=str, hide_input=True)

    try:
        store_credentials(client_id, client_secret)
    except RuntimeError as err:
        print(f"\r\n✗ Error storing credentials: {err}\r\n")
        sys.exit(1)

    location = get_credential_storage_location()
    print(f"\r\n✓ Credentials stored securely in: {location}")
    print("  You can now use lyric-client without --client-id/--client-secret.\r\n")


def main() -> None:
    """Run the CLI."""

    # the login command needs no credentials, and is not part of the group
    if len(sys.argv) > 1 and sys.argv[1] == "login":
        original_argv = sys.argv[:]
        sys.argv = [sys.argv[0]] + sys.argv[2:]
        try:
            login()
        except click.ClickException as err:
            print(f"Error: {err}")
            sys.exit(-1)
        finally:
            sys.argv = original_argv
        return

    try:
        asyncio.run(cli(obj={}))  # default for ctx.obj is None
    except click.ClickException as err:
        print(f"Error: {err}")
        sys.exit(-1)
    except exc.LyricError as err:
        print(f"Error: {err}")
        sys.exit(-1)


if __name__ == "__main__":
    main()
