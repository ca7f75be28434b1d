"""Test the Cube facade against a fake transport."""

from __future__ import annotations

import logging

import pytest
from conftest import CUBE_ADDRESS, FakeConnection, FakeTransport, advertisement

from toio import Cube
from toio.exceptions import DisconnectedError, NotFoundError, ProtocolError
from toio.models.enums import ConnectionState, IdNotifyCondition, Note, SoundPresetId, TargetResult
from toio.models.light import LightPattern
from toio.models.sound import Melody
from toio.protocol import (
    BATTERY_UUID,
    BUTTON_UUID,
    CONFIG_UUID,
    LIGHT_UUID,
    MOTION_UUID,
    MOTOR_UUID,
    SOUND_UUID,
    BatteryLevel,
)


def _cube_responder(characteristic: str, data: bytes):
    """Answer the commands a real cube acknowledges."""
    if characteristic == MOTOR_UUID and data[0] in (0x03, 0x04):
        yield MOTOR_UUID, bytes([data[0] | 0x80, data[1], TargetResult.OK])
    elif characteristic == CONFIG_UUID and data[0] == 0x01:
        yield CONFIG_UUID, b"\x81\x00" + b"2.4.0"
    elif characteristic == CONFIG_UUID and data[0] in (0x18, 0x19, 0x1C):
        yield CONFIG_UUID, bytes([data[0] | 0x80, 0x00, 0x00])


@pytest.fixture
def cube_connection() -> FakeConnection:
    connection = FakeConnection(_cube_responder)
    connection.values[BATTERY_UUID] = bytes([77])
    connection.values[MOTION_UUID] = bytes([0x01, 0x01, 0x00, 0x00, 0x01])
    connection.values[BUTTON_UUID] = bytes([0x01, 0x80])
    return connection


@pytest.fixture
def cube_transport(cube_connection) -> FakeTransport:
    return FakeTransport([advertisement(CUBE_ADDRESS, -48)], connection=cube_connection)


@pytest.fixture
def cube(peripheral, cube_transport) -> Cube:
    return Cube(peripheral, cube_transport, response_timeout=0.5)


class TestDiscovery:
    """Test the classmethod entry points."""

    @pytest.mark.asyncio
    async def test_discover(self):
        transport = FakeTransport([advertisement("AA:00", -70), advertisement("AA:01", -40)])

        cubes = await Cube.discover(timeout=1.0, transport=transport)

        assert [c.address for c in cubes] == ["AA:01", "AA:00"]
        assert cubes[0].rssi == -40
        assert cubes[0].state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_nearest(self, cube_transport):
        cube = await Cube.nearest(transport=cube_transport)

        assert cube.address == CUBE_ADDRESS
        assert cube.name == "toio Core Cube"

    @pytest.mark.asyncio
    async def test_nearest_without_cubes(self):
        with pytest.raises(NotFoundError):
            await Cube.nearest(transport=FakeTransport())


class TestLifecycle:
    """Test connection handling through the facade."""

    @pytest.mark.asyncio
    async def test_context_manager(self, cube):
        async with cube:
            assert cube.is_connected
            assert cube.state == ConnectionState.CONNECTED
        assert not cube.is_connected

    @pytest.mark.asyncio
    async def test_commands_require_connection(self, cube):
        with pytest.raises(DisconnectedError):
            await cube.go(10, 10)


class TestMotion:
    """Test motion commands."""

    @pytest.mark.asyncio
    async def test_go_timed(self, cube, cube_connection):
        async with cube:
            intent = await cube.go(30, -30, duration=0.5)

        assert not intent.clamped
        assert cube_connection.written[0] == (
            MOTOR_UUID,
            bytes([0x02, 0x01, 0x01, 30, 0x02, 0x02, 30, 50]),
        )

    @pytest.mark.asyncio
    async def test_move_scales_bias(self, cube, cube_connection):
        async with cube:
            await cube.move(5, 50, 50)

        assert cube_connection.written[0] == (
            MOTOR_UUID,
            bytes([0x01, 0x01, 0x01, 5, 0x02, 0x01, 50]),
        )

    @pytest.mark.asyncio
    async def test_clamped_intent_logged(self, cube, cube_connection, caplog):
        async with cube:
            with caplog.at_level(logging.WARNING, logger="toio.cube"):
                intent = await cube.go(300, 0)

        assert intent.clamped
        assert intent.left_speed == 115
        assert "clamped" in caplog.text

    @pytest.mark.asyncio
    async def test_stop(self, cube, cube_connection):
        async with cube:
            await cube.stop()

        assert cube_connection.written[0] == (
            MOTOR_UUID,
            bytes([0x01, 0x01, 0x01, 0, 0x02, 0x01, 0]),
        )

    @pytest.mark.asyncio
    async def test_move_to_awaits_result(self, cube, cube_connection):
        async with cube:
            first = await cube.move_to(100, 200, 90)
            second = await cube.move_to(300, 200, 0)

        assert first == TargetResult.OK
        assert second == TargetResult.OK
        request_ids = [data[1] for _, data in cube_connection.written]
        assert request_ids == [0, 1]

    @pytest.mark.asyncio
    async def test_move_along(self, cube, cube_connection):
        async with cube:
            result = await cube.move_along([(100, 100, 0), (200, 200, 90)])

        assert result == TargetResult.OK
        assert cube_connection.written[0][1][0] == 0x04


class TestLightAndSound:
    """Test light and sound commands."""

    @pytest.mark.asyncio
    async def test_light_on_and_off(self, cube, cube_connection):
        async with cube:
            await cube.light_on(255, 0, 0, duration=1.0)
            await cube.light_off()

        assert cube_connection.written == [
            (LIGHT_UUID, bytes([0x03, 100, 0x01, 0x01, 255, 0, 0])),
            (LIGHT_UUID, bytes([0x01])),
        ]

    @pytest.mark.asyncio
    async def test_light_pattern(self, cube, cube_connection):
        async with cube:
            await cube.light(LightPattern.blink(red=0, green=255, blue=0, repeat=2))

        characteristic, data = cube_connection.written[0]
        assert characteristic == LIGHT_UUID
        assert data[:3] == bytes([0x04, 2, 2])

    @pytest.mark.asyncio
    async def test_play_preset_and_melody(self, cube, cube_connection):
        async with cube:
            await cube.play(SoundPresetId.ENTER, volume=0x40)
            await cube.play(Melody.single(Note.A5, 0.5))
            await cube.stop_sound()

        assert cube_connection.written == [
            (SOUND_UUID, bytes([0x02, 0x00, 0x40])),
            (SOUND_UUID, bytes([0x03, 1, 1, 50, 69, 0xFF])),
            (SOUND_UUID, bytes([0x01])),
        ]


class TestSensors:
    """Test sensor reads."""

    @pytest.mark.asyncio
    async def test_version(self, cube):
        async with cube:
            assert await cube.version() == "2.4.0"

    @pytest.mark.asyncio
    async def test_battery(self, cube):
        async with cube:
            assert await cube.battery() == 77

    @pytest.mark.asyncio
    async def test_motion_reads(self, cube):
        async with cube:
            assert await cube.collision() is False
            assert await cube.slope() is False

    @pytest.mark.asyncio
    async def test_slope_when_not_level(self, cube, cube_connection):
        cube_connection.values[MOTION_UUID] = bytes([0x01, 0x00, 0x01, 0x00, 0x03])
        async with cube:
            assert await cube.slope() is True
            assert await cube.collision() is True

    @pytest.mark.asyncio
    async def test_button(self, cube):
        async with cube:
            assert await cube.button() is True

    @pytest.mark.asyncio
    async def test_events(self, cube, cube_connection):
        async with cube:
            events = cube.events()
            await cube_connection.notify(BATTERY_UUID, bytes([60]))
        received = [e async for e in events if isinstance(e, BatteryLevel)]
        assert received == [BatteryLevel(60)]

    @pytest.mark.asyncio
    async def test_position_unknown_before_reading(self, cube):
        assert cube.position is None
        assert cube.standard_id is None


class TestConfiguration:
    """Test sensor configuration."""

    @pytest.mark.asyncio
    async def test_configure_id_notifications(self, cube, cube_connection):
        async with cube:
            await cube.configure_id_notifications(0.1, IdNotifyCondition.ON_CHANGE)

        assert cube_connection.written[0] == (CONFIG_UUID, bytes([0x18, 0x00, 10, 0x01]))

    @pytest.mark.asyncio
    async def test_configure_rejected(self, cube, cube_connection):
        cube_connection.responder = lambda char, data: [(CONFIG_UUID, bytes([0x9C, 0x00, 0x01]))]
        async with cube:
            with pytest.raises(ProtocolError, match="MotorSpeedSettings"):
                await cube.configure_motor_speed_notifications(True)

    @pytest.mark.asyncio
    async def test_configure_missed_notifications(self, cube, cube_connection):
        async with cube:
            await cube.configure_id_missed_notifications(0.5)

        assert cube_connection.written[0] == (CONFIG_UUID, bytes([0x19, 0x00, 50]))

    @pytest.mark.asyncio
    async def test_thresholds(self, cube, cube_connection):
        async with cube:
            await cube.set_level_threshold(30)
            await cube.set_collision_threshold(2)
            await cube.set_double_tap_interval(3)

        assert [data for _, data in cube_connection.written] == [
            bytes([0x05, 0x00, 30]),
            bytes([0x06, 0x00, 2]),
            bytes([0x17, 0x00, 3]),
        ]
