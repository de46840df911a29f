# servo42d

Send commands to MKS SERVO42D stepper drivers over an RS485 bus, and
work out the wheel speeds of a three-wheel omnidirectional robot base
built from three of them.

## Installation

```
pip install .
```

This installs `pyserial`. To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `servo42d.protocol` builds and checks frames.
- `servo42d.driver` holds the motor records and writes commands to a serial port.
- `servo42d.base` covers the kinematics and set-up of the three-wheel base.
- `servo42d.cli` is the `servo42d` command.

## Frames (`servo42d.protocol`)

An outgoing frame is `0xFA`, the address, the function code, the payload
and then an 8-bit additive checksum. A status reply is five bytes:
`0xFB`, the address, the code, the status and the checksum.

```python
from servo42d.protocol import Command, build_frame, checksum, parse_response, speed_bytes

frame = build_frame(1, Command.STOP)         # b"\xfa\x01\xf7\xf2"
reply = parse_response(b"\xfb\x01\x80\x01\x7d", Command.CALIBRATION)
reply.success                                # True when status == 1
```

- `Command` is an `IntEnum` whose values are the function codes on the wire.
- `checksum(data)` returns the sum of the bytes modulo 256.
- `build_frame(address, command, payload)` raises `ValueError` if the
  address is outside 0..255.
- `speed_bytes(direction, speed)` clamps the speed to 0..3000 and keeps
  12 bits of it. It puts the direction in the top bit of the first byte.
- `parse_response(frame, expected_code)` returns a `Response` with the
  fields `address`, `code` and `status`. A frame of the wrong length or
  with the wrong header raises `ProtocolError`. A wrong checksum raises
  `ChecksumError`. A different function code raises
  `UnexpectedResponseError`. Both of these are subclasses of
  `ProtocolError`.

The module also defines the base's mechanical constants, for example
`PULSES_PER_MM` and `PULSES_PER_DEGREE`.

## The bus (`servo42d.driver`)

```python
from servo42d.driver import Servo42DBus, open_serial

port = open_serial("/dev/ttyUSB0", 38400)    # any pyserial URL also works, e.g. "loop://"
with Servo42DBus(port, 4) as bus:
    bus.set_current(1, 2000)                 # 2000 mA
    bus.set_subdivision(1, 16)
    bus.send_speed(bus.motors[1], 0, 200, 10)
    bus.move_relative(1, 1, 150, 10, 10000)
    bus.stop(-1)                             # negative index: broadcast to address 0
```

`Servo42DBus(port, motor_count)` works with any object that has
`write`, `flush` and `read`. It keeps a list of `Motor` records in
`bus.motors`. `reset_motors()` returns each record to its starting state
and gives it an address, numbered from 1. Leaving the `with` block
closes the port.

Every method that sends something returns the frame it wrote. When
logging is set to DEBUG, each frame is also logged as hex.

- `send_command(motor, command, payload)` sends any command.
- `send_speed(motor, direction, speed, acceleration)` takes a `Motor`.
  `move_relative(index, direction, speed, acceleration, pulses)` takes an
  index into `bus.motors`. Both clamp the speed to 0..3000.
- These methods take a motor index, and a negative index broadcasts:
  - `stop`
  - `calibrate_encoder`
  - `set_current`
  - `set_subdivision`
  - `set_enable_pin_mode`
  - `set_direction`
  - `set_auto_screen_off`
  - `set_locked_rotor_protection`
  - `set_interpolation`
  - `set_baudrate`
  - `set_slave_address`
  - `set_slave_respond`
  - `go_home`
  - `set_home_parameters`
  - `set_home_zero`
  - `restore_factory_settings`
- A value that does not fit its field raises `ValueError`. This covers
  acceleration, pulses, current, the byte-sized settings and the homing
  speed.
- `set_slave_address` does not update the motor record's `id`.
- `receive_response(expected_code)` reads one status reply.
  - It raises `TimeoutError` if nothing arrives within the port's timeout
    (0.5 s for ports from `open_serial`).
  - It raises a `ProtocolError` for a malformed reply.

## The omnidirectional base (`servo42d.base`)

```python
from servo42d.base import Movement, MoveType, OmniBase, wheel_speeds

rear, left, right = wheel_speeds(200, 0, 20)

base = OmniBase(bus)
base.configure_motors()
base.execute(Movement(200, 0, 20, pulses=10000, type=MoveType.DISPLACEMENT))
```

`wheel_speeds(vx, vy, vc)` returns a `WheelCommand` for the rear, left
and right wheels, in that order. Each `WheelCommand` has these fields:

- `motor`: the wheel's index in `bus.motors`.
- `speed`: the speed, truncated towards zero.
- `direction`: 1 when the wheel turns in reverse.

The function needs no hardware.

`configure_motors()` gives each wheel its address and label. It then
sends each wheel these settings:

- current: 2000 mA
- subdivision: 16 microsteps
- direction: 0 (clockwise)
- En pin mode: always on
- screen auto-off: enabled
- locked-rotor protection: enabled
- interpolation: enabled
- responses: enabled

The wheel addresses are rear 1, left 2 and right 3. Their indices in
`bus.motors` are 1, 3 and 2.

`apply_velocity`, `apply_displacement` and `execute` compute the wheel
commands and store each wheel's speed and direction on its `Motor`
record. They return the commands. `apply_displacement` raises
`ValueError` for a pulse count outside 0..2**32-1.

## Command line

```
servo42d PORT [--baudrate 38400] [--startup-delay 10] [--settle-delay 1] [-v]
```

The command runs these steps:

1. Waits `--startup-delay` seconds and prints `Starting robot...`.
2. Opens the port.
3. Configures the base's motors as described above.
4. Waits `--settle-delay` seconds.
5. Closes the port.

It exits with status 1 if the port cannot be opened. `-v` logs every
frame sent. Run `servo42d --help` to see all the options.

## What it does not do

- The base's movement methods do not send any frames to the drivers.
  They only compute and record wheel speeds and directions. To move the
  wheels, call `send_speed` or `move_relative` yourself.
- There are no methods that read position, speed or the enable state
  from a driver. The codes exist in `Command`, but no reply to them is
  decoded.
- Frames sent to the bus by other devices are not listened to or
  interpreted.
- The `servo42d` command only configures the motors. It does not run
  any motion sequence.