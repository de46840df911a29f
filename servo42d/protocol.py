"""Wire format of the RS485 protocol spoken by MKS SERVO42D drivers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Union

FRAME_HEADER = 0xFA
RESPONSE_HEADER = 0xFB
BROADCAST_ADDRESS = 0
RESPONSE_LENGTH = 5

MAX_FRAME_SIZE = 11
MAX_SPEED = 3000
SPEED_MASK = 0x0FFF
DEFAULT_ACCELERATION = 0
RESPONSE_ALLOWED = True

# Mechanical constants of the three-wheel base.
STEPS_PER_TURN = 200
MICROSTEPS = 4
BASE_RADIUS_MM = 118
WHEEL_DIAMETER_MM = 80
WHEEL_CIRCUMFERENCE_MM = math.pi * WHEEL_DIAMETER_MM
LOW_SPEED = 50
BASE_PERIMETER_MM = 2 * BASE_RADIUS_MM * math.pi
PULSES_PER_MM = (MICROSTEPS * STEPS_PER_TURN) / (math.pi * WHEEL_DIAMETER_MM)
PULSES_PER_DEGREE = PULSES_PER_MM * BASE_PERIMETER_MM / 360
DEGREES_PER_RADIAN = 360 / (2 * math.pi)
MOTOR_COUNT = 4


class Command(IntEnum):
    """Driver commands, valued by their function code on the wire."""

    CALIBRATION = 0x80
    RELATIVE_MOVE = 0xFD
    SPEED_MOVE = 0xF6
    WORK_MODE = 0x82
    CURRENT = 0x83
    HOLD_CURRENT_PERCENT = 0x9B
    MICROSTEP = 0x84
    DIRECTION = 0x86
    SCREEN_OFF = 0x87
    CHANGE_ADDRESS = 0x8B
    STOP = 0xF7
    ENABLE = 0x85
    READ_POSITION = 0x33
    READ_SPEED = 0x32
    READ_ENABLE = 0x3A
    RESPOND = 0x8C
    READ_CONFIGURATION = 0x47
    LOCKED_ROTOR_PROTECTION = 0x88
    INTERPOLATION = 0x89
    BAUDRATE = 0x8A
    GO_HOME = 0x91
    HOME_PARAMETERS = 0x90
    HOME_ZERO = 0x92
    RESTORE_DEFAULTS = 0x3F


class ProtocolError(Exception):
    """A frame received from a driver is malformed."""


class ChecksumError(ProtocolError):
    """The checksum of a received frame does not match its contents."""

    def __init__(self, computed: int, received: int) -> None:
        super().__init__(
            f"invalid checksum: computed 0x{computed:02X}, received 0x{received:02X}"
        )
        self.computed = computed
        self.received = received


class UnexpectedResponseError(ProtocolError):
    """A response carries a different function code than the one awaited."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"unexpected response code 0x{received:02X} (expected 0x{expected:02X})"
        )
        self.expected = expected
        self.received = received


@dataclass(frozen=True)
class Response:
    """A status reply from a driver: FB address code status checksum."""

    address: int
    code: int
    status: int

    @property
    def success(self) -> bool:
        """True when the driver reports the command as carried out."""
        return self.status == 1


def checksum(data: Iterable[int]) -> int:
    """Return the 8-bit additive checksum of ``data``."""
    return sum(data) & 0xFF


def build_frame(
    address: int, command: Union[Command, int], payload: Iterable[int] = b""
) -> bytes:
    """Build a command frame: header, address, code, payload, checksum."""
    if not 0 <= address <= 0xFF:
        raise ValueError(f"address out of range: {address}")
    body = bytes([FRAME_HEADER, address, int(command)]) + bytes(payload)
    return body + bytes([checksum(body)])


def speed_bytes(direction: int, speed: int) -> bytes:
    """Encode direction and speed as the two bytes shared by speed commands.

    The speed is clamped to 0..3000 and kept to 12 bits; the direction is
    placed in the top bit of the first byte.
    """
    limited = min(max(speed, 0), MAX_SPEED) & SPEED_MASK
    high = ((direction << 7) | ((limited >> 4) & 0x0F)) & 0xFF
    low = limited & 0xFF
    return bytes([high, low])


def parse_response(frame: bytes, expected_code: Union[Command, int]) -> Response:
    """Decode a status reply, checking header, checksum and function code."""
    frame = bytes(frame)
    if len(frame) != RESPONSE_LENGTH:
        raise ProtocolError(
            f"response must be {RESPONSE_LENGTH} bytes, got {len(frame)}"
        )
    if frame[0] != RESPONSE_HEADER:
        raise ProtocolError(f"bad response header 0x{frame[0]:02X}")
    header, address, code, status, received = frame
    computed = checksum((header, address, code, status))
    if received != computed:
        raise ChecksumError(computed, received)
    expected = int(expected_code)
    if code != expected:
        raise UnexpectedResponseError(expected, code)
    return Response(address=address, code=code, status=status)