"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer

from omnictl.core import codec
from omnictl.core.errors import InvalidCommandError, NotConnectedError, RobotLinkError
from omnictl.core.model import ConfigDocument, ConfigField
from omnictl.core.profile_loader import get_profile, load_profiles
from omnictl.core.session import ControlSession
from omnictl.transports.ble_gatt import BLEGATTTransport

app = typer.Typer(help="Bluetooth LE control for the Omni Robot")

T = TypeVar("T")

ProfileOption = typer.Option(None, "--profile", help="Profile ID")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_session(profile_id: str | None) -> ControlSession:
    loaded = load_profiles()
    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return ControlSession(BLEGATTTransport(), get_profile(profile_id, loaded=loaded), raise_on_failure=True)


def _run(
    profile_id: str | None,
    action: Callable[[ControlSession, ConfigDocument | None], Awaitable[T]],
) -> T:
    session = _build_session(profile_id)

    async def _session_run() -> T:
        document = await session.connect()
        try:
            result = await action(session, document)
            if not session.is_connected():
                raise NotConnectedError("Robot disconnected before the command completed")
            return result
        finally:
            await session.disconnect()

    return asyncio.run(_session_run())


def _fail(exc: RobotLinkError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered not in ("true", "false"):
        raise InvalidCommandError(f"Invert value must be true or false, got '{value}'")
    return lowered == "true"


def _echo_config(document: ConfigDocument | None, *, as_json: bool = False) -> None:
    if document is None:
        typer.echo("Config: <unavailable>")
        return
    if as_json:
        typer.echo(json.dumps(document.to_dict()))
        return
    for position, (actuator, inverted) in enumerate(zip(document.mapping, document.invert)):
        suffix = " (inverted)" if inverted else ""
        typer.echo(f"  position {position} -> motor {actuator}{suffix}")


@app.command("profiles")
def list_profiles() -> None:
    """List available robot profiles."""
    try:
        loaded = load_profiles()
        for warning in loaded.warnings:
            typer.echo(f"Warning: {warning}", err=True)
        if not loaded.profiles:
            typer.echo("No profiles loaded")
            raise typer.Exit(code=1)
        for profile in sorted(loaded.profiles.values(), key=lambda p: p.id):
            typer.echo(f"{profile.id}: {profile.name} (advertised as '{profile.device_name}')")
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("config")
def show_config(
    profile: str | None = ProfileOption,
    as_json: bool = typer.Option(False, "--json", help="Print the raw config document"),
) -> None:
    """Connect and print the motor mapping held by the robot."""

    async def _action(session: ControlSession, document: ConfigDocument | None) -> ConfigDocument | None:
        return document

    try:
        document = _run(profile, _action)
        _echo_config(document, as_json=as_json)
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("map")
def set_mapping(
    position: int,
    actuator: int,
    save: bool = typer.Option(False, "--save", help="Persist the config on the robot"),
    profile: str | None = ProfileOption,
) -> None:
    """Drive logical POSITION (0-3) with physical motor ACTUATOR."""
    try:
        command = codec.config_command(ConfigField.MAPPING, position, actuator)

        async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
            await session.write_config_field(ConfigField.MAPPING, position, actuator)
            if save:
                await session.save_config()

        _run(profile, _action)
        typer.echo(f"Sent {command}" + (" and save_config" if save else ""))
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("invert")
def set_invert(
    position: int,
    value: str,
    save: bool = typer.Option(False, "--save", help="Persist the config on the robot"),
    profile: str | None = ProfileOption,
) -> None:
    """Set polarity reversal (true/false) for logical POSITION (0-3)."""
    try:
        inverted = _parse_bool(value)
        command = codec.config_command(ConfigField.INVERT, position, inverted)

        async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
            await session.write_config_field(ConfigField.INVERT, position, inverted)
            if save:
                await session.save_config()

        _run(profile, _action)
        typer.echo(f"Sent {command}" + (" and save_config" if save else ""))
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("save")
def save_config(profile: str | None = ProfileOption) -> None:
    """Ask the robot to persist its current config."""

    async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
        await session.save_config()

    try:
        _run(profile, _action)
        typer.echo(f"Sent {codec.SAVE_CONFIG}")
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("reset")
def reset_config(
    save: bool = typer.Option(True, "--save/--no-save", help="Persist the defaults on the robot"),
    profile: str | None = ProfileOption,
) -> None:
    """Write the default mapping (1, 2, 3, 4, nothing inverted)."""

    async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
        await session.reset_config(persist=save)

    try:
        _run(profile, _action)
        typer.echo("Config reset to defaults" + (" and saved" if save else ""))
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("send")
def send_command(command: str, profile: str | None = ProfileOption) -> None:
    """Send one motion command (forward, backward, left, right, rotate_left, rotate_right, stop)."""
    try:
        codec.motion_command(command)

        async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
            await session.send_command(command)

        _run(profile, _action)
        typer.echo(f"Sent {command}")
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("test")
def test_motor(index: int, direction: str, profile: str | None = ProfileOption) -> None:
    """Spin one motor INDEX (0-3) in DIRECTION (fwd/bwd)."""
    try:
        command = codec.motor_test_command(index, direction)

        async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
            await session.send_test_command(command)

        _run(profile, _action)
        typer.echo(f"Sent {command}")
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("speed")
def set_speed(value: int, profile: str | None = ProfileOption) -> None:
    """Set motor speed (clamped to 0-255)."""
    try:
        wire_value = codec.decode_speed(codec.encode_speed(value))

        async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
            await session.set_speed(value)

        _run(profile, _action)
        typer.echo(f"Speed set to {wire_value}")
    except RobotLinkError as exc:
        raise _fail(exc) from None


@app.command("drive")
def drive(
    x: int = typer.Argument(..., min=-255, max=255),
    y: int = typer.Argument(..., min=-255, max=255),
    duration: float = typer.Option(1.0, "--duration", min=0.0, help="Seconds before sending stop"),
    profile: str | None = ProfileOption,
) -> None:
    """Hold the joystick at (X, Y) for a while, then stop."""

    async def _action(session: ControlSession, _: ConfigDocument | None) -> None:
        await session.send_joystick(x, y)
        await asyncio.sleep(duration)
        await session.send_command("stop")

    try:
        _run(profile, _action)
        typer.echo(f"Drove at ({x}, {y}) for {duration:g}s")
    except RobotLinkError as exc:
        raise _fail(exc) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
