"""Core data models used across codec, connection, session, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CONFIG_SLOTS = 4


class Channel(str, Enum):
    COMMAND = "command"
    JOYSTICK = "joystick"
    SPEED = "speed"
    CONFIG = "config"
    TEST = "test"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    BINDING_CHANNELS = "binding_channels"
    CONNECTED = "connected"


class ConfigField(str, Enum):
    MAPPING = "map"
    INVERT = "inv"


@dataclass(frozen=True)
class JoystickVector:
    x: int = 0
    y: int = 0

    @property
    def at_rest(self) -> bool:
        return self.x == 0 and self.y == 0


@dataclass(frozen=True)
class ConfigDocument:
    """Motor mapping/inversion as held by the robot.

    `mapping[i]` is the physical actuator driven by logical position `i`
    (0 front-right, 1 front-left, 2 rear-left, 3 rear-right) and `invert[i]`
    reverses its polarity.
    """

    mapping: tuple[int, ...]
    invert: tuple[bool, ...]

    def __post_init__(self) -> None:
        if len(self.mapping) != CONFIG_SLOTS or len(self.invert) != CONFIG_SLOTS:
            raise ValueError(f"Config document needs exactly {CONFIG_SLOTS} mapping and invert entries")

    @classmethod
    def default(cls) -> ConfigDocument:
        return cls(mapping=(1, 2, 3, 4), invert=(False, False, False, False))

    def to_dict(self) -> dict[str, list[Any]]:
        return {"mapping": list(self.mapping), "invert": list(self.invert)}


@dataclass(frozen=True)
class DetectedDevice:
    address: str
    name: str
    native: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class RobotProfile:
    id: str
    name: str
    device_name: str
    service_uuid: str
    characteristics: dict[Channel, str]
    scan_timeout_s: float = 10.0
    connect_timeout_s: float = 10.0
    write_with_response: bool = True
