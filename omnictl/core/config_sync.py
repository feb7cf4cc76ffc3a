"""Config document read/notify and field-at-a-time writes.

The robot holds the authoritative document. Reads and notifications replace
the local cache wholesale; writes are text commands on the `command` channel
and never touch the cache, which only changes when the robot reports back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from omnictl.core import codec
from omnictl.core.channels import ChannelSet
from omnictl.core.errors import DecodeError
from omnictl.core.model import CONFIG_SLOTS, Channel, ConfigDocument, ConfigField

LOGGER = logging.getLogger(__name__)

ConfigCallback = Callable[[ConfigDocument], None]


class ConfigSync:
    def __init__(self, channels: ChannelSet) -> None:
        self._channels = channels
        self._cached: ConfigDocument | None = None
        self._callback: ConfigCallback | None = None
        self._subscribed = False

    @property
    def cached(self) -> ConfigDocument | None:
        return self._cached

    async def read(self) -> ConfigDocument:
        payload = await self._channels.read(Channel.CONFIG)
        return self.apply_payload(payload)

    def apply_payload(self, payload: bytes) -> ConfigDocument:
        """Decode a config payload and replace the cache.

        Raises DecodeError and keeps the previous cache on malformed input.
        """
        document = codec.decode_config(payload)
        self._cached = document
        return document

    async def subscribe(self, callback: ConfigCallback | None = None) -> None:
        self._callback = callback
        if self._subscribed:
            return
        await self._channels.start_notify(Channel.CONFIG, self._on_notification)
        self._subscribed = True

    def detach(self) -> None:
        self._callback = None

    def _on_notification(self, payload: bytes) -> None:
        try:
            document = self.apply_payload(payload)
        except DecodeError as exc:
            LOGGER.error("Ignoring config notification: %s", exc)
            return
        LOGGER.debug("Config notification: %s", document)
        if self._callback:
            self._callback(document)

    async def write_field(self, field: ConfigField | str, position: int, value: Any) -> str:
        command = codec.config_command(field, position, value)
        await self._channels.write(Channel.COMMAND, codec.encode_text(command))
        LOGGER.debug("Config command sent: %s", command)
        return command

    async def persist(self) -> None:
        await self._channels.write(Channel.COMMAND, codec.encode_text(codec.SAVE_CONFIG))
        LOGGER.debug("Config command sent: %s", codec.SAVE_CONFIG)

    async def apply(self, document: ConfigDocument, *, persist: bool = True) -> None:
        """Write every field of `document` in order, then optionally persist."""
        for position in range(CONFIG_SLOTS):
            await self.write_field(ConfigField.MAPPING, position, document.mapping[position])
            await self.write_field(ConfigField.INVERT, position, document.invert[position])
        if persist:
            await self.persist()
