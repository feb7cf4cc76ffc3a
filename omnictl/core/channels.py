"""Bound characteristic handles for one connected session."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from omnictl.core.errors import ChannelUnavailable, NotConnectedError
from omnictl.core.model import Channel, RobotProfile
from omnictl.transports.base import Link, NotifyHandler

LOGGER = logging.getLogger(__name__)

# Joystick writes are a live control signal: the newest value wins and
# writes are never queued behind each other.
_UNSERIALIZED = frozenset({Channel.JOYSTICK})


class ChannelSet:
    def __init__(self, link: Link, handles: dict[Channel, Any], *, write_with_response: bool = True) -> None:
        missing = [c.value for c in Channel if c not in handles]
        if missing:
            raise ChannelUnavailable(f"Channel set is incomplete, missing: {', '.join(missing)}")
        self._link = link
        self._handles = dict(handles)
        self._locks = {c: asyncio.Lock() for c in Channel if c not in _UNSERIALIZED}
        self._write_with_response = write_with_response
        self._closed = False

    @classmethod
    def bind(cls, link: Link, profile: RobotProfile) -> ChannelSet:
        service = link.get_service(profile.service_uuid)
        if service is None:
            raise ChannelUnavailable(f"Service {profile.service_uuid} not found on device")

        handles: dict[Channel, Any] = {}
        for channel in Channel:
            uuid = profile.characteristics[channel]
            handle = link.get_characteristic(service, uuid)
            if handle is None:
                raise ChannelUnavailable(f"Channel '{channel.value}' ({uuid}) not found on device")
            handles[channel] = handle
            LOGGER.debug("Bound channel '%s' to %s", channel.value, uuid)
        return cls(link, handles, write_with_response=profile.write_with_response)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def _handle(self, channel: Channel) -> Any:
        if self._closed:
            raise NotConnectedError(f"Channel '{channel.value}' belongs to a closed session")
        return self._handles[channel]

    async def write(self, channel: Channel, payload: bytes) -> None:
        handle = self._handle(channel)
        lock = self._locks.get(channel)
        if lock is None:
            await self._link.write(handle, payload, response=self._write_with_response)
            return
        async with lock:
            handle = self._handle(channel)
            await self._link.write(handle, payload, response=self._write_with_response)

    async def read(self, channel: Channel) -> bytes:
        return await self._link.read(self._handle(channel))

    async def start_notify(self, channel: Channel, handler: NotifyHandler) -> None:
        await self._link.start_notify(self._handle(channel), handler)
