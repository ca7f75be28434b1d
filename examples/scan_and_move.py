"""Find toio cubes, then drive the nearest one and print its events.

Usage:
    uv run python examples/scan_and_move.py --scan 5
    uv run python examples/scan_and_move.py --listen 30
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from toio import (
    ConnectionEvent,
    Cube,
    LightPattern,
    Melody,
    Note,
    NotFoundError,
    SoundOp,
    discover_cubes,
)


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


async def run(scan: float, listen: float, speed: int) -> None:
    """Scan, drive the nearest cube briefly and print events."""
    print(f"Scanning for toio cubes ({scan:.1f}s)...")
    peripherals = await discover_cubes(timeout=scan)
    for peripheral in peripherals:
        print(
            f"  {peripheral.name or 'Unknown'} ({peripheral.address}) "
            f"rssi={peripheral.rssi} ~{peripheral.distance():.2f}m"
        )
    if not peripherals:
        raise NotFoundError("No toio cube found")

    async with Cube(peripherals[0]) as cube:
        print(f"Connected: {cube}")
        print(f"  protocol={await cube.version()} battery={await cube.battery()}%")

        await cube.configure_motor_speed_notifications(True)
        await cube.light(LightPattern.blink(red=0, green=0, blue=255, on=0.2, off=0.2, repeat=3))
        await cube.play(Melody((SoundOp(Note.C5, 0.2), SoundOp(Note.E5, 0.2), SoundOp(Note.G5, 0.4))))

        intent = await cube.move(x=10, y=30, speed=speed, duration=1.5)
        print(f"  driving left={intent.left_speed} right={intent.right_speed}")

        print(f"Listening for events ({listen:.1f}s, Ctrl+C to stop)...")
        async with cube.events() as events:
            try:
                async with asyncio.timeout(listen):
                    async for event in events:
                        if isinstance(event, ConnectionEvent):
                            print(f"[{_timestamp()}] connection {event.previous.name} -> {event.state.name}")
                        else:
                            print(f"[{_timestamp()}] {event}")
            except TimeoutError:
                pass

        await cube.stop()
        await cube.light_off()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scan for toio cubes, drive the nearest one and print its notifications."
    )
    parser.add_argument(
        "--scan",
        type=float,
        default=3.0,
        help="Scan window in seconds. Default: 3",
    )
    parser.add_argument(
        "--listen",
        type=float,
        default=30.0,
        help="How long to print events in seconds. Default: 30",
    )
    parser.add_argument(
        "--speed",
        type=int,
        default=40,
        help="Speed of the faster wheel (0-115). Default: 40",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log BLE traffic.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)
    try:
        asyncio.run(run(scan=args.scan, listen=args.listen, speed=args.speed))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
