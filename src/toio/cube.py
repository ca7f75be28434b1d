"""Main toio Core Cube class."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from typing import TypeVar

from .discovery import DEFAULT_SEARCH_TIMEOUT, Searcher
from .events import DEFAULT_STREAM_SIZE, EventStream
from .exceptions import ProtocolError
from .models.advertisement import Peripheral
from .models.enums import (
    ConnectionState,
    IdNotifyCondition,
    MoveType,
    SoundPresetId,
    SpeedChange,
    TargetResult,
    WriteOption,
)
from .models.light import LightOp, LightPattern
from .models.motion import MotorIntent
from .models.sound import Melody
from .planner import plan, plan_wheels, to_command
from .protocol.base import (
    BATTERY_UUID,
    BUTTON_UUID,
    MOTION_UUID,
    CommandFrame,
    Frame,
    ResponseFrame,
    seconds_to_units,
)
from .protocol.commands import (
    CollisionThreshold,
    ConfigVersionRequest,
    DoubleTapInterval,
    IdMissedNotificationSettings,
    IdNotificationSettings,
    LevelThreshold,
    LightsOff,
    MotorMultiTarget,
    MotorSpeedSettings,
    MotorTarget,
    SoundPreset,
    SoundStop,
    Target,
)
from .protocol.responses import (
    BatteryLevel,
    ButtonEvent,
    ConfigResponse,
    ConfigVersionResponse,
    IdPosition,
    IdStandard,
    MotionDetection,
    MotorMultiTargetResponse,
    MotorTargetResponse,
)
from .session import DEFAULT_RESPONSE_TIMEOUT, CubeSession
from .transport.base import Transport
from .transport.connection import BleakTransport

_LOGGER = logging.getLogger(__name__)

# Used when a target command leaves its timeout to the firmware
_FIRMWARE_TARGET_TIMEOUT = 10

_R = TypeVar("_R", bound=ResponseFrame)
_F = TypeVar("_F", bound=Frame)


class Cube:
    """toio Core Cube.

    Main API for driving a cube.

    Usage:
        # Connect to the nearest cube
        async with await Cube.nearest() as cube:
            await cube.go(50, 50, duration=1.0)

        # Pick from every cube in range
        cubes = await Cube.discover(timeout=5)
        async with cubes[0] as cube:
            print(await cube.battery())
    """

    def __init__(
            self,
            peripheral: Peripheral,
            transport: Transport | None = None,
            response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ):
        """Initialize the cube.

        Args:
            peripheral: Cube found by discovery
            transport: BLE transport (default: a new BleakTransport)
            response_timeout: Seconds to wait for command responses (default: 5)
        """
        self.peripheral = peripheral
        self._session = CubeSession(
            peripheral,
            transport if transport is not None else BleakTransport(),
            response_timeout=response_timeout,
        )
        self._request_ids = itertools.cycle(range(0x100))

    def __repr__(self) -> str:
        return f"Cube({self.address!r}, name={self.name!r}, state={self.state.name})"

    @classmethod
    async def discover(
        cls,
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        transport: Transport | None = None,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ) -> list[Cube]:
        """Scan and return every cube in range, nearest first."""
        transport = transport if transport is not None else BleakTransport()
        peripherals = await Searcher(transport, timeout=timeout).search()
        return [cls(p, transport, response_timeout) for p in peripherals]

    @classmethod
    async def nearest(
        cls,
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        transport: Transport | None = None,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ) -> Cube:
        """Scan and return the cube with the strongest signal.

        Raises:
            NotFoundError: If no cube was seen
        """
        transport = transport if transport is not None else BleakTransport()
        peripheral = await Searcher(transport, timeout=timeout).nearest()
        return cls(peripheral, transport, response_timeout)

    async def __aenter__(self) -> Cube:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    @property
    def address(self) -> str:
        return self.peripheral.address

    @property
    def name(self) -> str | None:
        return self.peripheral.name

    @property
    def rssi(self) -> int:
        """RSSI observed during discovery."""
        return self.peripheral.rssi

    @property
    def state(self) -> ConnectionState:
        return self._session.state

    @property
    def is_connected(self) -> bool:
        return self._session.is_connected

    @property
    def position(self) -> IdPosition | None:
        """Last position read from the mat, None until one is seen."""
        return self._session.position

    @property
    def standard_id(self) -> IdStandard | None:
        """Last Standard ID card read, None until one is seen."""
        return self._session.standard_id

    async def connect(self) -> None:
        """Connect to the cube.

        Raises:
            ConnectError: If the connection fails
        """
        await self._session.connect()

    async def disconnect(self) -> None:
        await self._session.disconnect()

    # Low level

    async def send(self, frame: CommandFrame, with_response: bool = True) -> None:
        """Write any command frame."""
        await self._session.send(frame, with_response)

    async def send_and_await(
        self,
        frame: CommandFrame,
        expected: type[ResponseFrame] | None = None,
        timeout: float | None = None,
    ) -> ResponseFrame:
        """Write a command frame and wait for its response."""
        return await self._session.send_and_await(frame, expected, timeout)

    def events(self, maxsize: int = DEFAULT_STREAM_SIZE) -> EventStream:
        """Subscribe to notifications and connection changes.

        Usage:
            async with cube.events() as events:
                async for event in events:
                    print(event)
        """
        return self._session.events(maxsize)

    async def _await(
        self,
        frame: CommandFrame,
        expected: type[_R],
        timeout: float | None = None,
    ) -> _R:
        response = await self._session.send_and_await(frame, expected, timeout)
        if not isinstance(response, expected):
            raise ProtocolError(f"Expected {expected.__name__}, got {response}")
        return response

    async def _read(self, characteristic: str, expected: type[_F]) -> _F:
        frame = await self._session.read(characteristic)
        if not isinstance(frame, expected):
            raise ProtocolError(f"Expected {expected.__name__}, got {frame}")
        return frame

    # Motion

    async def _drive(self, intent: MotorIntent) -> MotorIntent:
        if intent.clamped:
            _LOGGER.warning("Motor intent clamped to hardware limits: %s", intent)
        await self._session.send(to_command(intent))
        return intent

    async def go(self, left: int, right: int, duration: float | None = None) -> MotorIntent:
        """Run each wheel at a signed speed.

        Args:
            left: Left wheel speed, -115 to 115
            right: Right wheel speed, -115 to 115
            duration: Seconds to run, up to 2.55; None runs until the next command

        Returns:
            The intent actually sent, with ``clamped`` set if limits applied
        """
        return await self._drive(plan_wheels(left, right, duration))

    async def move(
        self,
        x: float,
        y: float,
        speed: int,
        duration: float | None = None,
    ) -> MotorIntent:
        """Steer with a left/right bias; the stronger side runs at ``speed``."""
        return await self._drive(plan(x, y, speed, duration))

    async def stop(self) -> None:
        await self._drive(plan_wheels(0, 0))

    def _next_request_id(self) -> int:
        return next(self._request_ids)

    async def move_to(
        self,
        x: int,
        y: int,
        angle: int,
        *,
        timeout: int = 0,
        move_type: MoveType = MoveType.CURVE,
        max_speed: int = 80,
        speed_change: SpeedChange = SpeedChange.CONSTANT,
    ) -> TargetResult:
        """Drive to a mat position and wait until the cube reports the outcome.

        Args:
            x: Target X on the mat
            y: Target Y on the mat
            angle: Heading in degrees at the target
            timeout: Seconds the cube may take, 0 for the firmware default (10 s)
            move_type: How the cube steers towards the target
            max_speed: Top speed, 10-255
            speed_change: Acceleration profile

        Returns:
            Result reported by the cube
        """
        frame = MotorTarget(
            self._next_request_id(),
            x,
            y,
            angle,
            timeout=timeout,
            move_type=move_type,
            max_speed=max_speed,
            speed_change=speed_change,
        )
        response = await self._await(
            frame, MotorTargetResponse, timeout=self._target_wait(timeout)
        )
        return response.result

    async def move_along(
        self,
        targets: Sequence[tuple[int, int, int]],
        *,
        timeout: int = 0,
        move_type: MoveType = MoveType.CURVE,
        max_speed: int = 80,
        speed_change: SpeedChange = SpeedChange.CONSTANT,
        write_option: WriteOption = WriteOption.OVERWRITE,
    ) -> TargetResult:
        """Drive through several (x, y, angle) positions in order.

        Returns:
            Result reported by the cube
        """
        frame = MotorMultiTarget(
            self._next_request_id(),
            tuple(Target(*target) for target in targets),
            timeout=timeout,
            move_type=move_type,
            max_speed=max_speed,
            speed_change=speed_change,
            write_option=write_option,
        )
        # The cube's timeout covers each target separately
        wait = self._target_wait(timeout) * len(frame.targets)
        response = await self._await(frame, MotorMultiTargetResponse, timeout=wait)
        return response.result

    def _target_wait(self, timeout: int) -> float:
        return (timeout or _FIRMWARE_TARGET_TIMEOUT) + self._session.response_timeout

    # Sound and light

    async def play(self, sound: Melody | SoundPresetId, volume: int = 0xFF) -> None:
        """Play a melody or one of the built-in sound effects."""
        if isinstance(sound, Melody):
            await self._session.send(sound.to_command())
        else:
            await self._session.send(SoundPreset(SoundPresetId(sound), volume))

    async def stop_sound(self) -> None:
        await self._session.send(SoundStop())

    async def light(self, pattern: LightPattern) -> None:
        await self._session.send(pattern.to_command())

    async def light_on(
        self,
        red: int,
        green: int,
        blue: int,
        duration: float | None = None,
    ) -> None:
        """Show one colour, for ``duration`` seconds or until changed."""
        await self._session.send(LightOp(red, green, blue, duration).to_command())

    async def light_off(self) -> None:
        await self._session.send(LightsOff())

    # Sensors

    async def version(self) -> str:
        """Read the BLE protocol version, e.g. ``"2.4.0"``."""
        response = await self._await(ConfigVersionRequest(), ConfigVersionResponse)
        return response.version

    async def battery(self) -> int:
        """Read the remaining battery in percent."""
        return (await self._read(BATTERY_UUID, BatteryLevel)).percent

    async def collision(self) -> bool:
        """Check whether the cube has detected a collision."""
        return (await self._read(MOTION_UUID, MotionDetection)).collision

    async def slope(self) -> bool:
        """Check whether the cube is tilted past the level threshold."""
        return not (await self._read(MOTION_UUID, MotionDetection)).level

    async def button(self) -> bool:
        """Check whether the function button is pressed."""
        return (await self._read(BUTTON_UUID, ButtonEvent)).pressed

    # Configuration

    async def _configure(
        self,
        frame: IdNotificationSettings | IdMissedNotificationSettings | MotorSpeedSettings,
    ) -> None:
        response = await self._session.send_and_await(frame)
        if not isinstance(response, ConfigResponse) or not response.succeeded:
            raise ProtocolError(f"Cube rejected {type(frame).__name__}: {response}")

    async def configure_id_notifications(
        self,
        interval: float = 0.0,
        condition: IdNotifyCondition = IdNotifyCondition.ALWAYS,
    ) -> None:
        """Set how often the ID reader reports.

        Args:
            interval: Minimum seconds between reports, 0-2.55
            condition: When to report

        Raises:
            ProtocolError: If the cube rejects the setting
        """
        await self._configure(IdNotificationSettings(seconds_to_units(interval), condition))

    async def configure_id_missed_notifications(self, sensitivity: float = 0.0) -> None:
        """Set how long the ID reader waits before reporting a missed ID.

        Raises:
            ProtocolError: If the cube rejects the setting
        """
        await self._configure(IdMissedNotificationSettings(seconds_to_units(sensitivity)))

    async def configure_motor_speed_notifications(self, enabled: bool = True) -> None:
        """Turn MotorSpeed notifications on or off.

        Raises:
            ProtocolError: If the cube rejects the setting
        """
        await self._configure(MotorSpeedSettings(enabled))

    async def set_level_threshold(self, angle: int = 45) -> None:
        """Set the tilt in degrees (1-45) beyond which the cube is not level."""
        await self._session.send(LevelThreshold(angle))

    async def set_collision_threshold(self, level: int = 7) -> None:
        """Set collision sensitivity (1 least, 10 most sensitive)."""
        await self._session.send(CollisionThreshold(level))

    async def set_double_tap_interval(self, interval: int = 5) -> None:
        """Set the double-tap window (1 shortest, 7 longest)."""
        await self._session.send(DoubleTapInterval(interval))
