"""Control session used by the CLI and future UI frontends."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

from omnictl.core import codec
from omnictl.core.connection import RobotConnection
from omnictl.core.errors import DecodeError, NotConnectedError, TransportError
from omnictl.core.geometry import JoystickInput
from omnictl.core.model import Channel, ConfigDocument, ConfigField, ConnectionState, RobotProfile
from omnictl.transports.base import Transport

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _guarded(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T | None]]:
    """Turn "not connected" and single write failures into a logged no-op.

    UI events can race a disconnect, so these are expected rather than
    exceptional. Grammar and range errors still propagate. Sessions built
    with `raise_on_failure=True` (one-shot callers such as the CLI) re-raise.
    """

    @functools.wraps(func)
    async def wrapper(self: ControlSession, *args: Any, **kwargs: Any) -> T | None:
        try:
            return await func(self, *args, **kwargs)
        except NotConnectedError:
            if self.raise_on_failure:
                raise
            LOGGER.warning("Robot not connected, dropping %s", func.__name__)
        except TransportError as exc:
            if self.raise_on_failure:
                raise
            LOGGER.error("%s failed: %s", func.__name__, exc)
        return None

    return wrapper


class ControlSession:
    def __init__(
        self,
        transport: Transport,
        profile: RobotProfile,
        *,
        on_connected: Callable[[], None] | None = None,
        on_disconnected: Callable[[], None] | None = None,
        on_config_received: Callable[[ConfigDocument], None] | None = None,
        raise_on_failure: bool = False,
    ) -> None:
        self.raise_on_failure = raise_on_failure
        self.connection = RobotConnection(transport, profile)
        self.connection.on_connected = on_connected
        self.connection.on_disconnected = on_disconnected
        self.connection.on_config_received = on_config_received
        self.connection.on_teardown = self._cancel_pending
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def config(self) -> ConfigDocument | None:
        return self.connection.config

    def is_connected(self) -> bool:
        return self.connection.is_connected

    async def connect(self) -> ConfigDocument | None:
        return await self.connection.connect()

    async def disconnect(self) -> None:
        await self.connection.disconnect()
        self._cancel_pending()

    @_guarded
    async def send_command(self, command: str) -> None:
        codec.motion_command(command)
        await self.connection.channels.write(Channel.COMMAND, codec.encode_text(command))
        LOGGER.debug("Command sent: %s", command)

    @_guarded
    async def send_test_command(self, command: str) -> None:
        codec.validate_test_command(command)
        await self.connection.channels.write(Channel.TEST, codec.encode_text(command))
        LOGGER.debug("Test command sent: %s", command)

    @_guarded
    async def send_joystick(self, x: float, y: float) -> None:
        payload = codec.encode_joystick(x, y)
        await self.connection.channels.write(Channel.JOYSTICK, payload)

    @_guarded
    async def set_speed(self, speed: float) -> None:
        payload = codec.encode_speed(speed)
        await self.connection.channels.write(Channel.SPEED, payload)
        LOGGER.debug("Speed set to: %d", payload[0])

    @_guarded
    async def send_config_command(self, command: str) -> None:
        codec.validate_config_command(command)
        await self.connection.channels.write(Channel.COMMAND, codec.encode_text(command))
        LOGGER.debug("Config command sent: %s", command)

    @_guarded
    async def write_config_field(self, field: ConfigField | str, position: int, value: Any) -> None:
        await self.connection.config_sync.write_field(field, position, value)

    @_guarded
    async def save_config(self) -> None:
        await self.connection.config_sync.persist()

    @_guarded
    async def apply_config(self, document: ConfigDocument, *, persist: bool = True) -> None:
        await self.connection.config_sync.apply(document, persist=persist)

    async def reset_config(self, *, persist: bool = True) -> None:
        await self.apply_config(ConfigDocument.default(), persist=persist)

    @_guarded
    async def read_config(self) -> ConfigDocument | None:
        try:
            return await self.connection.config_sync.read()
        except DecodeError as exc:
            LOGGER.error("Config read returned an invalid document: %s", exc)
            return None

    def attach_joystick(self, joystick: JoystickInput) -> None:
        """Drive the robot from `joystick` events.

        Each move schedules a joystick write immediately without waiting for
        the previous one; release schedules a `stop` command.
        """
        joystick.on_move = lambda x, y: self._schedule(self.send_joystick(x, y))
        joystick.on_stop = lambda: self._schedule(self.send_command("stop"))

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        if not self.is_connected():
            coro.close()
            LOGGER.warning("Robot not connected, dropping joystick event")
            return
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _cancel_pending(self) -> None:
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
