"""Command line entry point: bring up the base's motors on an RS485 port."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Optional, Sequence

import serial

from servo42d.base import OmniBase
from servo42d.driver import DEFAULT_BAUDRATE, Servo42DBus, open_serial

STARTUP_DELAY = 10.0
SETTLE_DELAY = 1.0


def _non_negative_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the command."""
    parser = argparse.ArgumentParser(
        prog="servo42d",
        description="Initialise the motors of a three-wheel base on an RS485 bus.",
    )
    parser.add_argument("port", help="serial device or pyserial URL of the bus")
    parser.add_argument(
        "--baudrate", type=int, default=DEFAULT_BAUDRATE, help="bus baud rate"
    )
    parser.add_argument(
        "--startup-delay",
        type=_non_negative_float,
        default=STARTUP_DELAY,
        help="seconds to wait before starting",
    )
    parser.add_argument(
        "--settle-delay",
        type=_non_negative_float,
        default=SETTLE_DELAY,
        help="seconds to wait after configuring the motors",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log every frame sent"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Open the bus, configure the base's motors and return an exit status."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    time.sleep(args.startup_delay)
    print("Starting robot...")

    try:
        port = open_serial(args.port, args.baudrate)
    except (serial.SerialException, ValueError) as exc:
        print(f"error: cannot open {args.port}: {exc}", file=sys.stderr)
        return 1

    with Servo42DBus(port) as bus:
        OmniBase(bus).configure_motors()
        time.sleep(args.settle_delay)
    return 0


if __name__ == "__main__":
    sys.exit(main())