"""Wire encodings and the text command grammar for the robot channels.

Text channels (`command`, `test`) carry one UTF-8 command per write. The
`joystick` channel carries two signed bytes, `speed` one unsigned byte and
`config` a UTF-8 JSON document. Config changes are written as text commands
on the `command` channel, never as a JSON document.
"""

from __future__ import annotations

import json
import math
import re
import struct
from functools import lru_cache
from importlib import resources
from typing import Any

from jsonschema import ValidationError, validators

from omnictl.core.errors import DecodeError, EncodeRangeError, InvalidCommandError
from omnictl.core.geometry import AXIS_LIMIT, round_half_up
from omnictl.core.model import CONFIG_SLOTS, ConfigDocument, ConfigField

SPEED_MIN = 0
SPEED_MAX = 255
INT8_MIN = -128
INT8_MAX = 127

MOTION_COMMANDS = frozenset(
    {"forward", "backward", "left", "right", "rotate_left", "rotate_right", "stop"}
)
TEST_DIRECTIONS = ("fwd", "bwd")
SAVE_CONFIG = "save_config"

_TEST_RE = re.compile(r"^test_([0-3])_(fwd|bwd)$")
_SET_MAP_RE = re.compile(r"^set_map:([0-3]):(-?\d+)$")
_SET_INV_RE = re.compile(r"^set_inv:([0-3]):(true|false)$")

_JOYSTICK_STRUCT = struct.Struct("bb")
_SPEED_STRUCT = struct.Struct("B")


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _require_finite(value: float, *, context: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise EncodeRangeError(f"{context} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise EncodeRangeError(f"{context} must be finite, got {value!r}")
    return number


def _check_position(position: int) -> int:
    if isinstance(position, bool) or not isinstance(position, int):
        raise EncodeRangeError(f"Config position must be an integer, got {position!r}")
    if not 0 <= position < CONFIG_SLOTS:
        raise EncodeRangeError(f"Config position must be in 0..{CONFIG_SLOTS - 1}, got {position}")
    return position


# Text channels


def encode_text(command: str) -> bytes:
    return command.encode("utf-8")


def motion_command(command: str) -> str:
    if command not in MOTION_COMMANDS:
        allowed = ", ".join(sorted(MOTION_COMMANDS))
        raise InvalidCommandError(f"Unknown motion command '{command}'. Allowed: {allowed}")
    return command


def motor_test_command(index: int, direction: str) -> str:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < CONFIG_SLOTS:
        raise EncodeRangeError(f"Test motor index must be in 0..{CONFIG_SLOTS - 1}, got {index!r}")
    if direction not in TEST_DIRECTIONS:
        raise InvalidCommandError(f"Test direction must be one of {', '.join(TEST_DIRECTIONS)}, got '{direction}'")
    return f"test_{index}_{direction}"


def validate_test_command(command: str) -> str:
    if not _TEST_RE.match(command):
        raise InvalidCommandError(f"'{command}' is not a test command (test_<0..3>_<fwd|bwd>)")
    return command


def config_command(field: ConfigField | str, position: int, value: Any) -> str:
    field = ConfigField(field)
    _check_position(position)
    if field is ConfigField.MAPPING:
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodeRangeError(f"Actuator id must be an integer, got {value!r}")
        return f"set_map:{position}:{value}"
    if not isinstance(value, bool):
        raise EncodeRangeError(f"Invert flag must be a boolean, got {value!r}")
    return f"set_inv:{position}:{'true' if value else 'false'}"


def is_config_command(command: str) -> bool:
    return (
        command == SAVE_CONFIG
        or bool(_SET_MAP_RE.match(command))
        or bool(_SET_INV_RE.match(command))
    )


def validate_config_command(command: str) -> str:
    if not is_config_command(command):
        raise InvalidCommandError(
            f"'{command}' is not a config command (set_map:<pos>:<id>, set_inv:<pos>:<bool>, save_config)"
        )
    return command


def validate_command(command: str) -> str:
    """Accept any string of the wire vocabulary, reject everything else."""
    if command in MOTION_COMMANDS or _TEST_RE.match(command) or is_config_command(command):
        return command
    raise InvalidCommandError(f"'{command}' is not part of the command vocabulary")


# Binary channels


def encode_joystick(x: float, y: float) -> bytes:
    axes = []
    for name, value in (("x", x), ("y", y)):
        number = _require_finite(value, context=f"Joystick {name}")
        axes.append(_clamp(round_half_up(number * INT8_MAX / AXIS_LIMIT), INT8_MIN, INT8_MAX))
    return _JOYSTICK_STRUCT.pack(*axes)


def decode_joystick(payload: bytes) -> tuple[int, int]:
    if len(payload) != _JOYSTICK_STRUCT.size:
        raise DecodeError(f"Joystick payload must be {_JOYSTICK_STRUCT.size} bytes, got {len(payload)}")
    x, y = _JOYSTICK_STRUCT.unpack(payload)
    return x, y


def encode_speed(speed: float) -> bytes:
    number = _require_finite(speed, context="Speed")
    return _SPEED_STRUCT.pack(_clamp(round_half_up(number), SPEED_MIN, SPEED_MAX))


def decode_speed(payload: bytes) -> int:
    if len(payload) != _SPEED_STRUCT.size:
        raise DecodeError(f"Speed payload must be {_SPEED_STRUCT.size} byte, got {len(payload)}")
    return _SPEED_STRUCT.unpack(payload)[0]


# Config document


@lru_cache(maxsize=1)
def _config_validator() -> Any:
    schema_text = resources.files("omnictl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def decode_config(payload: bytes | bytearray) -> ConfigDocument:
    try:
        text = bytes(payload).decode("utf-8")
        doc = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Config payload is not valid JSON: {exc}") from exc

    try:
        _config_validator().validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise DecodeError(f"Config payload has the wrong shape{where}: {exc.message}") from exc

    return ConfigDocument(
        mapping=tuple(int(v) for v in doc["mapping"]),
        invert=tuple(bool(v) for v in doc["invert"]),
    )


def encode_config(document: ConfigDocument) -> bytes:
    return json.dumps(document.to_dict(), separators=(",", ":")).encode("utf-8")
