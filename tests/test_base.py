import pytest

from servo42d.base import (
    LEFT,
    REAR,
    RIGHT,
    Movement,
    MoveType,
    OmniBase,
    WheelCommand,
    wheel_speeds,
)
from servo42d.driver import Servo42DBus
from servo42d.protocol import Command, build_frame, checksum


class FakePort:
    def __init__(self):
        self.frames = []

    def write(self, data):
        self.frames.append(bytes(data))
        return len(data)

    def flush(self):
        pass

    def read(self, size=1):
        return b""


@pytest.fixture
def port():
    return FakePort()


@pytest.fixture
def base(port):
    return OmniBase(Servo42DBus(port))


def test_pure_rotation_drives_all_wheels_equally():
    rear, left, right = wheel_speeds(0, 0, 20)
    assert rear == WheelCommand(REAR, 20, 0)
    assert left == WheelCommand(LEFT, 20, 0)
    assert right == WheelCommand(RIGHT, 20, 0)


def test_negative_rotation_reverses_all_wheels():
    commands = wheel_speeds(0, 0, -20)
    assert [c.speed for c in commands] == [20, 20, 20]
    assert [c.direction for c in commands] == [1, 1, 1]


def test_stationary_base_gives_zero_commands():
    commands = wheel_speeds(0, 0, 0)
    assert all(c.speed == 0 and c.direction == 0 for c in commands)


def test_sideways_speed_mirrors_left_and_right():
    _, left, right = wheel_speeds(200, 0, 0)
    _, left_back, right_back = wheel_speeds(-200, 0, 0)
    assert left.speed == right.speed == left_back.speed == right_back.speed
    assert (left.direction, right.direction) == (1, 0)
    assert (left_back.direction, right_back.direction) == (0, 1)


def test_rear_wheel_ignores_vx():
    rear, _, _ = wheel_speeds(200, 0, 20)
    assert rear == WheelCommand(REAR, 20, 0)


def test_fractional_negative_keeps_direction_after_truncation():
    _, left, right = wheel_speeds(1, 0, 0)
    assert left.speed == 0 and left.direction == 1
    assert right.speed == 0 and right.direction == 0


def test_configure_assigns_ids_and_labels(base):
    base.configure_motors()
    motors = base.bus.motors
    assert (motors[REAR].id, motors[LEFT].id, motors[RIGHT].id) == (1, 2, 3)
    assert motors[REAR].label == "Rear"
    assert all(motors[i].speed == 300 for i in (REAR, LEFT, RIGHT))
    assert not any(motors[i].inverted for i in (REAR, LEFT, RIGHT))


def test_configure_sends_settings_in_order(base, port):
    base.configure_motors()
    assert len(port.frames) == 24
    expected_codes = [
        Command.CURRENT,
        Command.MICROSTEP,
        Command.DIRECTION,
        Command.ENABLE,
        Command.SCREEN_OFF,
        Command.LOCKED_ROTOR_PROTECTION,
        Command.INTERPOLATION,
        Command.RESPOND,
    ]
    for group, address in enumerate((1, 2, 3)):
        frames = port.frames[group * 8:(group + 1) * 8]
        assert [f[1] for f in frames] == [address] * 8
        assert [f[2] for f in frames] == [int(c) for c in expected_codes]
    assert all(f[-1] == checksum(f[:-1]) for f in port.frames)


def test_configure_current_frame_bytes(base, port):
    base.configure_motors()
    assert port.frames[0] == build_frame(1, Command.CURRENT, (2000).to_bytes(2, "little"))
    assert port.frames[0] == bytes.fromhex("FA0183D00755")


def test_apply_velocity_updates_motors_without_sending(base, port):
    commands = base.apply_velocity(0, 0, -20)
    assert port.frames == []
    for command in commands:
        motor = base.bus.motors[command.motor]
        assert (motor.speed, motor.direction) == (command.speed, command.direction)
    assert base.bus.motors[REAR].direction == 1


def test_apply_displacement_matches_velocity(base):
    assert base.apply_displacement(200, 0, 20, 10000) == wheel_speeds(200, 0, 20)


def test_apply_displacement_rejects_bad_pulses(base):
    with pytest.raises(ValueError):
        base.apply_displacement(0, 0, 0, -1)
    with pytest.raises(ValueError):
        base.apply_displacement(0, 0, 0, 1 << 32)


def test_execute_dispatches_on_type(base):
    velocity = base.execute(Movement(0, 0, 30))
    displacement = base.execute(Movement(0, 0, 30, 500, MoveType.DISPLACEMENT))
    assert velocity == displacement == wheel_speeds(0, 0, 30)
    with pytest.raises(ValueError):
        base.execute(Movement(0, 0, 30, -5, MoveType.DISPLACEMENT))


def test_movement_defaults_to_velocity():
    movement = Movement(1, 2, 3)
    assert movement.type is MoveType.VELOCITY
    assert movement.pulses == 0