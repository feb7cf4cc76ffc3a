"""Stable public API for building tooling on top of omnictl.

This module is the supported integration surface for third-party callers
(GUI/TUI/scripts). Avoid importing from private/internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable

from omnictl.core.errors import (
    ChannelUnavailable,
    DecodeError,
    DeviceNotFound,
    EncodeRangeError,
    InvalidCommandError,
    NotConnectedError,
    ProfileLoadError,
    ProfileValidationError,
    RobotLinkError,
    TransportConnectFailure,
    TransportError,
    TransportWriteError,
)
from omnictl.core.geometry import JoystickInput, compute_vector
from omnictl.core.model import (
    Channel,
    ConfigDocument,
    ConfigField,
    ConnectionState,
    DetectedDevice,
    JoystickVector,
    RobotProfile,
)
from omnictl.core.profile_loader import get_profile, load_profiles
from omnictl.core.session import ControlSession
from omnictl.transports.base import Transport
from omnictl.transports.ble_gatt import BLEGATTTransport

__all__ = [
    "RobotLinkError",
    "ChannelUnavailable",
    "DecodeError",
    "DeviceNotFound",
    "EncodeRangeError",
    "InvalidCommandError",
    "NotConnectedError",
    "ProfileLoadError",
    "ProfileValidationError",
    "TransportError",
    "TransportConnectFailure",
    "TransportWriteError",
    "Channel",
    "ConfigDocument",
    "ConfigField",
    "ConnectionState",
    "DetectedDevice",
    "JoystickVector",
    "RobotProfile",
    "JoystickInput",
    "compute_vector",
    "BLEGATTTransport",
    "ControlSession",
    "create_session",
    "get_profile",
    "load_profiles",
]


def create_session(
    profile_id: str | None = None,
    *,
    transport: Transport | None = None,
    on_connected: Callable[[], None] | None = None,
    on_disconnected: Callable[[], None] | None = None,
    on_config_received: Callable[[ConfigDocument], None] | None = None,
) -> ControlSession:
    """Build a session for a named profile, over BLE unless a transport is given."""
    return ControlSession(
        transport or BLEGATTTransport(),
        get_profile(profile_id),
        on_connected=on_connected,
        on_disconnected=on_disconnected,
        on_config_received=on_config_received,
    )
