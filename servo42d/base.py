"""Kinematics and motor set-up of a three-wheel omnidirectional base."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from servo42d.driver import Servo42DBus

# Indices of the wheels in the bus's motor list.
REAR = 1
RIGHT = 2
LEFT = 3
ALL_MOTORS = -1

GLOBAL_ACCELERATION = 10
NOMINAL_SPEED = 75
DEFAULT_WHEEL_SPEED = 300
DEFAULT_CURRENT_MA = 2000
DEFAULT_SUBDIVISION = 16
ENABLE_ALWAYS_ON = 2
MAX_PULSES = 0xFFFFFFFF

# Projection of (vx, vy) onto each wheel's rolling direction.
_SIN_60 = 0.866

# (bus index, address, label) of each wheel, in configuration order.
_WHEELS = (
    (REAR, 1, "Rear"),
    (LEFT, 2, "Left"),
    (RIGHT, 3, "Right"),
)


class MoveType(Enum):
    """How a movement is carried out."""

    VELOCITY = "velocity"
    DISPLACEMENT = "displacement"


@dataclass(frozen=True)
class Movement:
    """One step of a motion sequence."""

    vx: int
    vy: int
    vc: int
    pulses: int = 0
    type: MoveType = MoveType.VELOCITY


@dataclass(frozen=True)
class WheelCommand:
    """Speed and direction (1 when reversed) for one wheel."""

    motor: int
    speed: int
    direction: int


def _wheel(motor: int, value: float) -> WheelCommand:
    return WheelCommand(motor=motor, speed=abs(int(value)), direction=int(value < 0))


def wheel_speeds(
    vx: int, vy: int, vc: int
) -> Tuple[WheelCommand, WheelCommand, WheelCommand]:
    """Split a body velocity into rear, left and right wheel commands.

    Each wheel speed is truncated towards zero; its direction follows the
    sign of the untruncated value.
    """
    rear = -vy + vc
    left = -_SIN_60 * vx + 0.5 * vy + vc
    right = _SIN_60 * vx + 0.5 * vy + vc
    return _wheel(REAR, rear), _wheel(LEFT, left), _wheel(RIGHT, right)


class OmniBase:
    """A three-wheel omnidirectional base driven by SERVO42D motors."""

    def __init__(self, bus: Servo42DBus) -> None:
        self.bus = bus

    def configure_motors(self) -> None:
        """Assign addresses and labels, then send each wheel its settings."""
        for index, address, label in _WHEELS:
            motor = self.bus.motors[index]
            motor.id = address
            motor.label = label
            motor.speed = DEFAULT_WHEEL_SPEED
            motor.inverted = False

            self.bus.set_current(index, DEFAULT_CURRENT_MA)
            self.bus.set_subdivision(index, DEFAULT_SUBDIVISION)
            self.bus.set_direction(index, 0)
            self.bus.set_enable_pin_mode(index, ENABLE_ALWAYS_ON)
            self.bus.set_auto_screen_off(index, 1)
            self.bus.set_locked_rotor_protection(index, 1)
            self.bus.set_interpolation(index, 1)
            self.bus.set_slave_respond(index, 1)

    def _apply(self, vx: int, vy: int, vc: int) -> Tuple[WheelCommand, ...]:
        commands = wheel_speeds(vx, vy, vc)
        for command in commands:
            motor = self.bus.motors[command.motor]
            motor.speed = command.speed
            motor.direction = command.direction
        return commands

    def apply_velocity(self, vx: int, vy: int, vc: int) -> Tuple[WheelCommand, ...]:
        """Set every wheel's speed and direction for a constant-velocity move."""
        return self._apply(vx, vy, vc)

    def apply_displacement(
        self, vx: int, vy: int, vc: int, pulses: int
    ) -> Tuple[WheelCommand, ...]:
        """Set every wheel's speed and direction for a relative move."""
        if not 0 <= pulses <= MAX_PULSES:
            raise ValueError(f"pulses out of range 0..{MAX_PULSES}: {pulses}")
        return self._apply(vx, vy, vc)

    def execute(self, movement: Movement) -> Tuple[WheelCommand, ...]:
        """Carry out one movement according to its type."""
        if movement.type is MoveType.DISPLACEMENT:
            return self.apply_displacement(
                movement.vx, movement.vy, movement.vc, movement.pulses
            )
        return self.apply_velocity(movement.vx, movement.vy, movement.vc)