"""BLE GATT transport implementation."""

from __future__ import annotations

import logging
from typing import Any

from omnictl.core.errors import TransportConnectFailure, TransportWriteError
from omnictl.core.model import DetectedDevice
from omnictl.transports.base import DisconnectHandler, NotifyHandler

LOGGER = logging.getLogger(__name__)


def _bleak() -> Any:
    try:
        import bleak  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise TransportConnectFailure(
            "BLE transport requires 'bleak'. Install dependency and retry."
        ) from exc
    return bleak


class BLEGATTLink:
    def __init__(self, client: Any) -> None:
        self._client = client

    @property
    def is_connected(self) -> bool:
        return bool(self._client.is_connected)

    def get_service(self, service_uuid: str) -> Any | None:
        return self._client.services.get_service(service_uuid)

    def get_characteristic(self, service: Any, char_uuid: str) -> Any | None:
        return service.get_characteristic(char_uuid)

    async def read(self, characteristic: Any) -> bytes:
        try:
            data = await self._client.read_gatt_char(characteristic)
        except Exception as exc:
            raise TransportWriteError(f"BLE read failed on {characteristic}: {exc}") from exc
        return bytes(data)

    async def write(self, characteristic: Any, payload: bytes, *, response: bool = True) -> None:
        try:
            await self._client.write_gatt_char(characteristic, payload, response=response)
        except Exception as exc:
            raise TransportWriteError(f"BLE write failed on {characteristic}: {exc}") from exc

    async def start_notify(self, characteristic: Any, handler: NotifyHandler) -> None:
        def _notify_handler(_: Any, data: bytearray) -> None:
            handler(bytes(data))

        try:
            await self._client.start_notify(characteristic, _notify_handler)
        except Exception as exc:
            raise TransportWriteError(f"BLE subscribe failed on {characteristic}: {exc}") from exc

    async def disconnect(self) -> None:
        try:
            await self._client.disconnect()
        except Exception as exc:
            LOGGER.warning("BLE disconnect raised: %s", exc)


class BLEGATTTransport:
    async def find_device(self, name: str, *, timeout_s: float = 10.0) -> DetectedDevice | None:
        bleak = _bleak()
        try:
            device = await bleak.BleakScanner.find_device_by_name(name, timeout=timeout_s)
        except Exception as exc:
            raise TransportConnectFailure(f"BLE scan failed: {exc}") from exc
        if device is None:
            return None
        return DetectedDevice(address=device.address, name=device.name or name, native=device)

    async def connect(
        self,
        device: DetectedDevice,
        *,
        on_disconnect: DisconnectHandler,
        timeout_s: float = 10.0,
    ) -> BLEGATTLink:
        bleak = _bleak()

        def _disconnected(_: Any) -> None:
            on_disconnect()

        client = bleak.BleakClient(
            device.native if device.native is not None else device.address,
            disconnected_callback=_disconnected,
            timeout=timeout_s,
        )
        try:
            await client.connect()
        except Exception as exc:
            raise TransportConnectFailure(f"BLE connect failed for {device.address}: {exc}") from exc
        if not client.is_connected:
            raise TransportConnectFailure(f"BLE connect failed for {device.address}")
        LOGGER.debug("Connected to %s (%s)", device.name, device.address)
        return BLEGATTLink(client)
