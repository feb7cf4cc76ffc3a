from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import pytest

from omnictl.core.model import Channel, DetectedDevice, RobotProfile

SERVICE_UUID = "4fafc201-1fb5-459e-8fcc-c5c9c331914b"
CHAR_UUIDS = {
    Channel.COMMAND: "beb5483e-36e1-4688-b7f5-ea07361b26a8",
    Channel.JOYSTICK: "ca73b3ba-39f6-4ab3-91ae-186dc9577d99",
    Channel.SPEED: "1c95d5e3-d8f7-413a-bf3d-7a2e5d7be87e",
    Channel.CONFIG: "d4e1f1a2-8b5c-4d3e-9f7a-6c8b5a4d3e2f",
    Channel.TEST: "a3b2c1d4-5e6f-7a8b-9c0d-1e2f3a4b5c6d",
}
DEFAULT_CONFIG = {"mapping": [1, 2, 3, 4], "invert": [False, False, False, False]}


class FakeLink:
    """In-memory GATT link. Characteristic handles are their UUID strings."""

    def __init__(
        self,
        *,
        config_payload: bytes | None = None,
        missing_service: bool = False,
        missing_channels: tuple[Channel, ...] = (),
    ) -> None:
        self.config_payload = config_payload if config_payload is not None else json.dumps(DEFAULT_CONFIG).encode()
        self.missing_service = missing_service
        self.missing_uuids = {CHAR_UUIDS[c] for c in missing_channels}
        self.connected = True
        self.on_disconnect: Callable[[], None] | None = None
        self.writes: list[tuple[str, bytes]] = []
        self.notify_handlers: dict[str, Callable[[bytes], None]] = {}
        self.write_error: Exception | None = None
        self.read_error: Exception | None = None
        self.write_delay_s = 0.0
        self.disconnect_calls = 0

    @property
    def is_connected(self) -> bool:
        return self.connected

    def get_service(self, service_uuid: str):
        if self.missing_service or service_uuid != SERVICE_UUID:
            return None
        return "service"

    def get_characteristic(self, service, char_uuid: str):
        if char_uuid in self.missing_uuids:
            return None
        return char_uuid

    async def read(self, characteristic) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return self.config_payload

    async def write(self, characteristic, payload: bytes, *, response: bool = True) -> None:
        if self.write_error is not None:
            raise self.write_error
        if self.write_delay_s:
            await asyncio.sleep(self.write_delay_s)
        self.writes.append((characteristic, payload))

    async def start_notify(self, characteristic, handler: Callable[[bytes], None]) -> None:
        self.notify_handlers[characteristic] = handler

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        was_connected = self.connected
        self.connected = False
        if was_connected and self.on_disconnect:
            self.on_disconnect()

    # Test helpers

    def notify(self, channel: Channel, payload: bytes) -> None:
        self.notify_handlers[CHAR_UUIDS[channel]](payload)

    def drop(self) -> None:
        self.connected = False
        if self.on_disconnect:
            self.on_disconnect()

    def written(self, channel: Channel) -> list[bytes]:
        return [payload for uuid, payload in self.writes if uuid == CHAR_UUIDS[channel]]

    def text_written(self, channel: Channel) -> list[str]:
        return [payload.decode("utf-8") for payload in self.written(channel)]


class FakeTransport:
    def __init__(
        self,
        link: FakeLink | None = None,
        *,
        device_found: bool = True,
        connect_error: Exception | None = None,
    ) -> None:
        self.link = link or FakeLink()
        self.device_found = device_found
        self.connect_error = connect_error
        self.find_calls: list[str] = []
        self.connect_calls = 0

    async def find_device(self, name: str, *, timeout_s: float = 10.0) -> DetectedDevice | None:
        self.find_calls.append(name)
        if not self.device_found:
            return None
        return DetectedDevice(address="24:0A:C4:11:22:33", name=name)

    async def connect(self, device, *, on_disconnect, timeout_s: float = 10.0) -> FakeLink:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.link.connected = True
        self.link.on_disconnect = on_disconnect
        return self.link


@pytest.fixture
def profile() -> RobotProfile:
    return RobotProfile(
        id="omni_robot",
        name="Omni Robot (ESP32)",
        device_name="Omni Robot",
        service_uuid=SERVICE_UUID,
        characteristics=dict(CHAR_UUIDS),
    )


@pytest.fixture
def link() -> FakeLink:
    return FakeLink()


@pytest.fixture
def transport(link: FakeLink) -> FakeTransport:
    return FakeTransport(link)
