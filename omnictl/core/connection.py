"""Connection lifecycle for one robot.

DISCONNECTED -> CONNECTING -> BINDING_CHANNELS -> CONNECTED. A failure at
any step tears the link down, reverts to DISCONNECTED and re-raises; there
is no automatic retry. `_handle_link_lost` is the only place a connected
session ends, whether the operator disconnected or the link dropped. A link
loss or disconnect request during an attempt makes that attempt fail.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from omnictl.core.channels import ChannelSet
from omnictl.core.config_sync import ConfigSync
from omnictl.core.errors import (
    ChannelUnavailable,
    DecodeError,
    DeviceNotFound,
    NotConnectedError,
    TransportConnectFailure,
    TransportError,
)
from omnictl.core.model import ConfigDocument, ConnectionState, DetectedDevice, RobotProfile
from omnictl.transports.base import Link, Transport

LOGGER = logging.getLogger(__name__)


class RobotConnection:
    def __init__(self, transport: Transport, profile: RobotProfile) -> None:
        self.transport = transport
        self.profile = profile
        self.state = ConnectionState.DISCONNECTED
        self.device: DetectedDevice | None = None
        self._link: Link | None = None
        self._channels: ChannelSet | None = None
        self._config_sync: ConfigSync | None = None
        # Set when the link drops or the operator disconnects mid-attempt.
        self._abandoned: str | None = None

        self.on_connected: Callable[[], None] | None = None
        self.on_disconnected: Callable[[], None] | None = None
        self.on_config_received: Callable[[ConfigDocument], None] | None = None
        # Internal hook used by the session to drop in-flight work.
        self.on_teardown: Callable[[], None] | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def channels(self) -> ChannelSet:
        if not self.is_connected or self._channels is None:
            raise NotConnectedError("Robot is not connected")
        return self._channels

    @property
    def config_sync(self) -> ConfigSync:
        if not self.is_connected or self._config_sync is None:
            raise NotConnectedError("Robot is not connected")
        return self._config_sync

    @property
    def config(self) -> ConfigDocument | None:
        return self._config_sync.cached if self._config_sync else None

    async def connect(self) -> ConfigDocument | None:
        """Run one connection attempt and return the seeded config document.

        Returns None when the session connected but the initial config read
        failed.
        """
        if self.state is ConnectionState.CONNECTED:
            return self.config
        if self.state is not ConnectionState.DISCONNECTED:
            raise TransportConnectFailure(f"Connection attempt already in progress ({self.state.value})")

        self._abandoned = None
        try:
            await self._establish()
        except (DeviceNotFound, TransportConnectFailure, ChannelUnavailable) as exc:
            LOGGER.error("Connection to '%s' failed: %s", self.profile.device_name, exc)
            await self._abort()
            raise
        except asyncio.CancelledError:
            await self._abort()
            raise
        except Exception as exc:
            LOGGER.error("Connection to '%s' failed: %s", self.profile.device_name, exc)
            await self._abort()
            raise TransportConnectFailure(f"Connection to '{self.profile.device_name}' failed: {exc}") from exc

        LOGGER.info("Connected to %s (%s)", self.device.name, self.device.address)
        if self.on_connected:
            self.on_connected()

        document = await self._seed_config()
        if document is not None and self.on_config_received:
            self.on_config_received(document)
        return document

    async def _establish(self) -> None:
        self.state = ConnectionState.CONNECTING
        LOGGER.debug("Looking for device '%s'", self.profile.device_name)
        device = await self.transport.find_device(
            self.profile.device_name,
            timeout_s=self.profile.scan_timeout_s,
        )
        self._check_attempt()
        if device is None:
            raise DeviceNotFound(f"No device advertising '{self.profile.device_name}' was found")
        self.device = device

        link = await self.transport.connect(
            device,
            on_disconnect=self._handle_link_lost,
            timeout_s=self.profile.connect_timeout_s,
        )
        self._link = link
        self._check_attempt()

        self.state = ConnectionState.BINDING_CHANNELS
        channels = ChannelSet.bind(link, self.profile)
        config_sync = ConfigSync(channels)
        await config_sync.subscribe(self._handle_config)
        self._check_attempt()
        if not link.is_connected:
            raise TransportConnectFailure("Link lost while binding channels")

        self._channels = channels
        self._config_sync = config_sync
        self.state = ConnectionState.CONNECTED

    def _check_attempt(self) -> None:
        if self._abandoned is not None:
            raise TransportConnectFailure(self._abandoned)

    async def _seed_config(self) -> ConfigDocument | None:
        if self._config_sync is None:
            return None
        try:
            return await self._config_sync.read()
        except (DecodeError, TransportError, NotConnectedError) as exc:
            LOGGER.error("Initial config read failed: %s", exc)
            return None

    def _handle_config(self, document: ConfigDocument) -> None:
        if self.on_config_received:
            self.on_config_received(document)

    async def _abort(self) -> None:
        link = self._link
        self._reset()
        if link is not None:
            await link.disconnect()

    def _reset(self) -> None:
        if self._channels is not None:
            self._channels.close()
        if self._config_sync is not None:
            self._config_sync.detach()
        self._link = None
        self._channels = None
        self._config_sync = None
        self.device = None
        self.state = ConnectionState.DISCONNECTED

    def _handle_link_lost(self) -> None:
        if self._attempt_in_progress():
            if self._abandoned is None:
                self._abandoned = "Link lost during connection attempt"
            return
        if self.state is not ConnectionState.CONNECTED:
            return
        LOGGER.info("Robot disconnected")
        self._reset()
        if self.on_teardown:
            self.on_teardown()
        if self.on_disconnected:
            self.on_disconnected()

    def _attempt_in_progress(self) -> bool:
        return self.state in (ConnectionState.CONNECTING, ConnectionState.BINDING_CHANNELS)

    async def disconnect(self) -> None:
        if self._attempt_in_progress():
            # The attempt notices the mark after its next step and aborts itself.
            self._abandoned = "Disconnect requested during connection attempt"
            if self._link is not None:
                await self._link.disconnect()
            return
        link = self._link
        if link is None:
            return
        await link.disconnect()
        # The transport may or may not report operator-initiated disconnects.
        self._handle_link_lost()
        if self._link is link:
            self._reset()
