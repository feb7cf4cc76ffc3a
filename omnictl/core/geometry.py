"""Pointer-to-joystick mapping.

The stick is a ring: a pointer dragged past the ring keeps its direction but
its magnitude saturates at the ring edge. Screen Y grows downward while the
command Y grows forward, so the Y axis is negated.
"""

from __future__ import annotations

import math
from collections.abc import Callable

from omnictl.core.model import JoystickVector

AXIS_LIMIT = 255

MoveCallback = Callable[[int, int], None]
StopCallback = Callable[[], None]
RedrawCallback = Callable[[JoystickVector, bool], None]


def round_half_up(value: float) -> int:
    """Round halves toward positive infinity (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def compute_vector(dx: float, dy: float, max_radius: float) -> JoystickVector:
    if max_radius <= 0:
        raise ValueError(f"max_radius must be positive, got {max_radius}")

    distance = math.hypot(dx, dy)
    angle = math.atan2(dy, dx)
    clamped = min(distance, max_radius)
    magnitude = clamped / max_radius * AXIS_LIMIT

    x = round_half_up(magnitude * math.cos(angle))
    y = -round_half_up(magnitude * math.sin(angle))
    return JoystickVector(x=x, y=y)


class JoystickInput:
    """Pointer state for one on-screen stick.

    Coordinates passed to `press`/`move` are in the same space as the
    center. Callbacks are optional and invoked synchronously.
    """

    def __init__(self, center_x: float, center_y: float, max_radius: float) -> None:
        if max_radius <= 0:
            raise ValueError(f"max_radius must be positive, got {max_radius}")
        self.center_x = center_x
        self.center_y = center_y
        self.max_radius = max_radius
        self.active = False
        self.vector = JoystickVector()
        self.on_move: MoveCallback | None = None
        self.on_stop: StopCallback | None = None
        self.on_redraw: RedrawCallback | None = None

    @classmethod
    def for_surface(cls, width: float, height: float, margin: float = 20.0) -> JoystickInput:
        return cls(width / 2, height / 2, min(width, height) / 2 - margin)

    def press(self, pointer_x: float, pointer_y: float) -> JoystickVector:
        self.active = True
        return self._update(pointer_x, pointer_y)

    def move(self, pointer_x: float, pointer_y: float) -> JoystickVector:
        if not self.active:
            return self.vector
        return self._update(pointer_x, pointer_y)

    def release(self) -> JoystickVector:
        self.active = False
        self.vector = JoystickVector()
        self._redraw()
        if self.on_stop:
            self.on_stop()
        return self.vector

    def stick_position(self) -> tuple[float, float]:
        """Screen position of the knob for the current vector."""
        scale = self.max_radius / AXIS_LIMIT
        return (
            self.center_x + self.vector.x * scale,
            self.center_y - self.vector.y * scale,
        )

    def _update(self, pointer_x: float, pointer_y: float) -> JoystickVector:
        self.vector = compute_vector(
            pointer_x - self.center_x,
            pointer_y - self.center_y,
            self.max_radius,
        )
        self._redraw()
        if self.on_move:
            self.on_move(self.vector.x, self.vector.y)
        return self.vector

    def _redraw(self) -> None:
        if self.on_redraw:
            self.on_redraw(self.vector, self.active)
