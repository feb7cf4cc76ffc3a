"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from omnictl.core.model import DetectedDevice

NotifyHandler = Callable[[bytes], None]
DisconnectHandler = Callable[[], None]


class Link(Protocol):
    """An open connection to one peripheral.

    Service and characteristic handles are opaque to callers and are only
    handed back to this link.
    """

    @property
    def is_connected(self) -> bool: ...

    def get_service(self, service_uuid: str) -> Any | None:
        """Return the discovered primary service, or None."""

    def get_characteristic(self, service: Any, char_uuid: str) -> Any | None:
        """Return a characteristic of `service`, or None."""

    async def read(self, characteristic: Any) -> bytes:
        """Read the current value of a characteristic."""

    async def write(self, characteristic: Any, payload: bytes, *, response: bool = True) -> None:
        """Write one value to a characteristic."""

    async def start_notify(self, characteristic: Any, handler: NotifyHandler) -> None:
        """Deliver every notification on `characteristic` to `handler`."""

    async def disconnect(self) -> None:
        """Close the link."""


class Transport(Protocol):
    async def find_device(self, name: str, *, timeout_s: float = 10.0) -> DetectedDevice | None:
        """Return the first device advertising exactly `name`, or None."""

    async def connect(
        self,
        device: DetectedDevice,
        *,
        on_disconnect: DisconnectHandler,
        timeout_s: float = 10.0,
    ) -> Link:
        """Open a link and discover its services."""
