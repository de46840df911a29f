"""Addressing and commanding MKS SERVO42D drivers over an RS485 bus."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Protocol, Union

import serial

from servo42d.protocol import (
    BROADCAST_ADDRESS,
    DEFAULT_ACCELERATION,
    MOTOR_COUNT,
    RESPONSE_ALLOWED,
    RESPONSE_HEADER,
    RESPONSE_LENGTH,
    Command,
    ProtocolError,
    Response,
    build_frame,
    parse_response,
    speed_bytes,
)

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 38400
RESPONSE_TIMEOUT = 0.5
TURNAROUND_DELAY = 150e-6
MAX_PULSES = 0xFFFFFFFF


class SerialPort(Protocol):
    """The part of a serial port the bus relies on."""

    def write(self, data: bytes) -> object: ...

    def flush(self) -> None: ...

    def read(self, size: int = 1) -> bytes: ...


@dataclass
class Motor:
    """State kept for one driver on the bus."""

    id: int = BROADCAST_ADDRESS
    label: str = ""
    command: Command = Command.STOP
    absolute_position: int = 0
    speed: int = 0
    inverted: bool = False
    pulses: int = 0
    direction: int = 0
    acceleration: int = DEFAULT_ACCELERATION
    must_respond: bool = RESPONSE_ALLOWED


def open_serial(port: str, baudrate: int = DEFAULT_BAUDRATE) -> serial.SerialBase:
    """Open a serial device (or pyserial URL) suitable for the RS485 bus."""
    return serial.serial_for_url(port, baudrate=baudrate, timeout=RESPONSE_TIMEOUT)


def _uint(value: int, size: int, name: str) -> bytes:
    limit = (1 << (8 * size)) - 1
    if not 0 <= value <= limit:
        raise ValueError(f"{name} out of range 0..{limit}: {value}")
    return value.to_bytes(size, "little")


class Servo42DBus:
    """A set of motors sharing one RS485 line."""

    def __init__(self, port: SerialPort, motor_count: int = MOTOR_COUNT) -> None:
        self.port = port
        self.motor_count = motor_count
        self.motors: list[Motor] = []
        self.reset_motors()

    def __enter__(self) -> "Servo42DBus":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying port if it can be closed."""
        close = getattr(self.port, "close", None)
        if close is not None:
            close()

    def reset_motors(self) -> None:
        """Give every motor its starting state and an address from 1 upwards."""
        self.motors = [
            Motor(id=number, label=f"Motor{number}")
            for number in range(1, self.motor_count + 1)
        ]

    def _target(self, index: int) -> Motor:
        """The motor at ``index``, or a broadcast target when it is negative."""
        if index < 0:
            return Motor(id=BROADCAST_ADDRESS)
        return self.motors[index]

    def send_command(
        self,
        motor: Motor,
        command: Union[Command, int],
        payload: Iterable[int] = b"",
    ) -> bytes:
        """Frame ``command`` for ``motor``, write it to the bus and return it."""
        frame = build_frame(motor.id, command, payload)
        logger.debug("[TX] %s", frame.hex(" ").upper())
        self.port.write(frame)
        self.port.flush()
        time.sleep(TURNAROUND_DELAY)
        return frame

    def receive_response(self, expected_code: Union[Command, int]) -> Response:
        """Read one status reply, raising if it is missing or malformed."""
        first = self.port.read(1)
        if not first:
            raise TimeoutError("timed out waiting for a response")
        if first[0] != RESPONSE_HEADER:
            raise ProtocolError(f"bad response header 0x{first[0]:02X}")
        rest = self.port.read(RESPONSE_LENGTH - 1)
        response = parse_response(first + rest, expected_code)
        logger.debug("[RX] code 0x%02X status %d", response.code, response.status)
        return response

    def send_speed(
        self, motor: Motor, direction: int, speed: int, acceleration: int
    ) -> bytes:
        """Run ``motor`` at a constant speed (clamped to 0..3000)."""
        payload = speed_bytes(direction, speed) + _uint(acceleration, 1, "acceleration")
        return self.send_command(motor, Command.SPEED_MOVE, payload)

    def move_relative(
        self, index: int, direction: int, speed: int, acceleration: int, pulses: int
    ) -> bytes:
        """Turn the motor at ``index`` by a number of pulses."""
        motor = self.motors[index]
        payload = (
            speed_bytes(direction, speed)
            + _uint(acceleration, 1, "acceleration")
            + _uint(pulses, 4, "pulses")
        )
        return self.send_command(motor, Command.RELATIVE_MOVE, payload)

    def stop(self, index: int) -> bytes:
        """Stop one motor, or all of them when ``index`` is negative."""
        return self.send_command(self._target(index), Command.STOP)

    def calibrate_encoder(self, index: int) -> bytes:
        """Start encoder calibration."""
        return self.send_command(self._target(index), Command.CALIBRATION, b"\x00")

    def set_current(self, index: int, milliamps: int) -> bytes:
        """Set the working current in mA."""
        payload = _uint(milliamps, 2, "current")
        return self.send_command(self._target(index), Command.CURRENT, payload)

    def _set_byte(self, index: int, command: Command, value: int, name: str) -> bytes:
        return self.send_command(self._target(index), command, _uint(value, 1, name))

    def set_subdivision(self, index: int, microsteps: int) -> bytes:
        """Set the microstep subdivision (0..255)."""
        return self._set_byte(index, Command.MICROSTEP, microsteps, "microsteps")

    def set_enable_pin_mode(self, index: int, mode: int) -> bytes:
        """Set the En pin mode: 0 active low, 1 active high, 2 always on."""
        return self._set_byte(index, Command.ENABLE, mode, "mode")

    def set_direction(self, index: int, direction: int) -> bytes:
        """Set the default direction: 0 clockwise, 1 counter-clockwise."""
        return self._set_byte(index, Command.DIRECTION, direction, "direction")

    def set_auto_screen_off(self, index: int, enable: int) -> bytes:
        """Enable or disable automatic screen switch-off."""
        return self._set_byte(index, Command.SCREEN_OFF, enable, "enable")

    def set_locked_rotor_protection(self, index: int, enable: int) -> bytes:
        """Enable or disable locked-rotor protection."""
        return self._set_byte(index, Command.LOCKED_ROTOR_PROTECTION, enable, "enable")

    def set_interpolation(self, index: int, enable: int) -> bytes:
        """Enable or disable microstep interpolation."""
        return self._set_byte(index, Command.INTERPOLATION, enable, "enable")

    def set_baudrate(self, index: int, baud_code: int) -> bytes:
        """Set the bus baud rate by code (1 = 9600 ... 7 = 256000)."""
        return self._set_byte(index, Command.BAUDRATE, baud_code, "baud code")

    def set_slave_address(self, index: int, address: int) -> bytes:
        """Give a driver a new address; the motor record is left unchanged."""
        return self._set_byte(index, Command.CHANGE_ADDRESS, address, "address")

    def set_slave_respond(self, index: int, enable: int) -> bytes:
        """Allow (1) or forbid (0) the driver to answer frames."""
        return self._set_byte(index, Command.RESPOND, enable, "enable")

    def go_home(self, index: int) -> bytes:
        """Start the return to origin."""
        return self.send_command(self._target(index), Command.GO_HOME)

    def set_home_parameters(
        self, index: int, trigger: int, direction: int, speed: int
    ) -> bytes:
        """Configure homing: trigger level, direction and speed."""
        payload = (
            _uint(trigger, 1, "trigger")
            + _uint(direction, 1, "direction")
            + _uint(speed, 2, "speed")
        )
        return self.send_command(self._target(index), Command.HOME_PARAMETERS, payload)

    def set_home_zero(self, index: int) -> bytes:
        """Take the current position as zero without moving."""
        return self.send_command(self._target(index), Command.HOME_ZERO)

    def restore_factory_settings(self, index: int) -> bytes:
        """Restore the driver's factory settings."""
        return self.send_command(self._target(index), Command.RESTORE_DEFAULTS)