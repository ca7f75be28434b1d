"""Test the cube session: lifecycle, correlation and dispatch."""

from __future__ import annotations

import asyncio
import logging

import pytest
from conftest import FakeConnection, FakeTransport

from toio.events import ConnectionEvent
from toio.exceptions import (
    ConnectError,
    DisconnectedError,
    ResponseTimeoutError,
    TransportError,
)
from toio.models.enums import ConnectionState, TargetResult
from toio.protocol import (
    BATTERY_UUID,
    CONFIG_UUID,
    ID_READER_UUID,
    MOTION_UUID,
    MOTOR_UUID,
    NOTIFY_UUIDS,
    BatteryLevel,
    ConfigVersionRequest,
    ConfigVersionResponse,
    IdPosition,
    IdStandard,
    MotorControl,
    MotorTarget,
    MotorTargetResponse,
)
from toio.session import CubeSession


def _target_responder(characteristic: str, data: bytes):
    """Answer every MotorTarget with a success result echoing its id."""
    if characteristic == MOTOR_UUID and data[0] == 0x03:
        yield MOTOR_UUID, bytes([0x83, data[1], TargetResult.OK])


async def _wait_for_writes(connection: FakeConnection, count: int) -> None:
    for _ in range(100):
        if len(connection.written) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} writes, got {connection.written}")


async def _wait_for_state(session: CubeSession, state: ConnectionState) -> None:
    for _ in range(100):
        if session.state == state:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"session stuck in {session.state}")


async def _collect(stream) -> list:
    return [event async for event in stream]


class TestLifecycle:
    """Test connect and disconnect."""

    @pytest.mark.asyncio
    async def test_connect_subscribes_and_reports_state(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        events = session.events()

        await session.connect()

        assert session.state == ConnectionState.CONNECTED
        assert session.is_connected
        assert connection.subscribed == list(NOTIFY_UUIDS)

        await session.disconnect()
        changes = [event async for event in events]
        assert [(e.previous, e.state) for e in changes] == [
            (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
            (ConnectionState.CONNECTING, ConnectionState.CONNECTED),
            (ConnectionState.CONNECTED, ConnectionState.DISCONNECTING),
            (ConnectionState.DISCONNECTING, ConnectionState.DISCONNECTED),
        ]
        assert all(isinstance(e, ConnectionEvent) for e in changes)

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, peripheral, transport):
        session = CubeSession(peripheral, transport)

        await session.connect()
        await session.connect()

        assert transport.connect_calls == 1
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_connect_failure(self, peripheral, failing_transport):
        session = CubeSession(peripheral, failing_transport)

        with pytest.raises(ConnectError, match="not found"):
            await session.connect()

        assert session.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_connect_failure_ends_streams(self, peripheral, failing_transport):
        session = CubeSession(peripheral, failing_transport)
        events = session.events()

        with pytest.raises(ConnectError):
            await session.connect()

        changes = await asyncio.wait_for(_collect(events), timeout=1)
        assert [(e.previous, e.state) for e in changes] == [
            (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
            (ConnectionState.CONNECTING, ConnectionState.DISCONNECTED),
        ]
        assert events.closed

    @pytest.mark.asyncio
    async def test_stream_opened_while_disconnected_follows_next_connection(
        self, peripheral, transport
    ):
        session = CubeSession(peripheral, transport)
        await session.connect()
        await session.disconnect()
        events = session.events()

        assert not events.closed

        await session.connect()
        await transport.connection.notify(BATTERY_UUID, bytes([42]))
        await session.disconnect()

        received = await asyncio.wait_for(_collect(events), timeout=1)
        assert BatteryLevel(42) in received
        assert received[-1] == ConnectionEvent(
            peripheral.address, ConnectionState.DISCONNECTING, ConnectionState.DISCONNECTED
        )

    @pytest.mark.asyncio
    async def test_unexpected_transport_error_wrapped(self, peripheral, transport):
        transport.connect_error = OSError("adapter off")
        session = CubeSession(peripheral, transport)

        with pytest.raises(ConnectError, match="adapter off") as exc_info:
            await session.connect()

        assert isinstance(exc_info.value.__cause__, OSError)
        assert session.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_subscribe_failure_closes_connection(self, peripheral, transport, connection):
        connection.subscribe_error = ConnectError("Failed to subscribe")
        session = CubeSession(peripheral, transport)

        with pytest.raises(ConnectError):
            await session.connect()

        assert connection.disconnect_calls == 1
        assert session.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()

        await session.disconnect()

        assert session.state == ConnectionState.DISCONNECTED
        assert connection.disconnect_calls == 1

    @pytest.mark.asyncio
    async def test_disconnect_when_disconnected_is_noop(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)

        await session.disconnect()

        assert connection.disconnect_calls == 0

    @pytest.mark.asyncio
    async def test_reconnect_after_link_loss(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()
        connection.drop()
        await _wait_for_state(session, ConnectionState.DISCONNECTED)

        await session.connect()

        assert session.is_connected
        assert transport.connect_calls == 2
        await session.disconnect()

    def test_illegal_transition(self, peripheral, transport):
        session = CubeSession(peripheral, transport)
        with pytest.raises(RuntimeError, match="DISCONNECTED -> CONNECTED"):
            session._transition(ConnectionState.CONNECTED)


class TestSend:
    """Test fire-and-forget writes."""

    @pytest.mark.asyncio
    async def test_send_writes_encoded_frame(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()

        await session.send(MotorControl(10, -10))

        assert connection.written == [(MOTOR_UUID, bytes([0x01, 0x01, 0x01, 10, 0x02, 0x02, 10]))]
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_send_preserves_order(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()

        await asyncio.gather(*(session.send(MotorControl(speed, speed)) for speed in range(5)))

        assert [data[3] for _, data in connection.written] == [0, 1, 2, 3, 4]
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_send_requires_connection(self, peripheral, transport):
        session = CubeSession(peripheral, transport)

        with pytest.raises(DisconnectedError):
            await session.send(MotorControl(0, 0))

    @pytest.mark.asyncio
    async def test_write_failure(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()
        connection.write_error = TransportError("Write failed: GATT error")

        with pytest.raises(TransportError, match="GATT error"):
            await session.send(MotorControl(0, 0))
        await session.disconnect()


class TestSendAndAwait:
    """Test request/response correlation."""

    @pytest.mark.asyncio
    async def test_resolves_with_matching_response(self, peripheral, transport, connection):
        connection.responder = _target_responder
        session = CubeSession(peripheral, transport)
        await session.connect()

        response = await session.send_and_await(MotorTarget(9, 100, 100, 0))

        assert response == MotorTargetResponse(9, TargetResult.OK)
        assert session._pending == {}
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_version_request(self, peripheral, transport, connection):
        connection.responder = lambda char, data: [(CONFIG_UUID, b"\x81\x00" + b"2.4.0")]
        session = CubeSession(peripheral, transport)
        await session.connect()

        response = await session.send_and_await(ConfigVersionRequest())

        assert response == ConfigVersionResponse("2.4.0")
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_same_kind_queues_and_never_crosses(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()

        first = asyncio.create_task(session.send_and_await(MotorTarget(1, 10, 10, 0)))
        second = asyncio.create_task(session.send_and_await(MotorTarget(2, 20, 20, 0)))
        await _wait_for_writes(connection, 1)
        await asyncio.sleep(0)

        # The second command waits for the first to resolve
        assert len(connection.written) == 1

        # A response for the queued request does not resolve the first one
        await connection.notify(MOTOR_UUID, bytes([0x83, 2, TargetResult.OK]))
        assert not first.done()

        await connection.notify(MOTOR_UUID, bytes([0x83, 1, TargetResult.TIMEOUT]))
        assert (await first).request_id == 1

        await _wait_for_writes(connection, 2)
        await connection.notify(MOTOR_UUID, bytes([0x83, 2, TargetResult.OK]))
        assert (await second) == MotorTargetResponse(2, TargetResult.OK)
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_timeout_and_late_response(self, peripheral, transport, connection, caplog):
        session = CubeSession(peripheral, transport)
        await session.connect()

        with pytest.raises(ResponseTimeoutError, match="MotorTargetResponse"):
            await session.send_and_await(MotorTarget(3, 0, 0, 0), timeout=0.05)
        assert session._pending == {}

        with caplog.at_level(logging.WARNING, logger="toio.session"):
            await connection.notify(MOTOR_UUID, bytes([0x83, 3, TargetResult.OK]))
        assert "unsolicited" in caplog.text
        assert session.is_connected
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_default_timeout(self, peripheral, transport):
        session = CubeSession(peripheral, transport, response_timeout=0.05)
        await session.connect()

        with pytest.raises(ResponseTimeoutError, match="0.05s"):
            await session.send_and_await(ConfigVersionRequest())
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_cancelled_caller_clears_pending(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()

        task = asyncio.create_task(session.send_and_await(MotorTarget(4, 0, 0, 0)))
        await _wait_for_writes(connection, 1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session._pending == {}
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_frame_without_response_rejected(self, peripheral, transport):
        session = CubeSession(peripheral, transport)
        await session.connect()

        with pytest.raises(ValueError, match="use send"):
            await session.send_and_await(MotorControl(0, 0))
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_link_loss_fails_pending(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()
        events = session.events()

        task = asyncio.create_task(session.send_and_await(MotorTarget(5, 0, 0, 0)))
        await _wait_for_writes(connection, 1)
        connection.drop()

        with pytest.raises(DisconnectedError):
            await task
        assert session.state == ConnectionState.DISCONNECTED

        received = [event async for event in events]
        assert received[-1] == ConnectionEvent(
            peripheral.address, ConnectionState.CONNECTED, ConnectionState.DISCONNECTED
        )


class TestDispatch:
    """Test notification decoding and publication."""

    @pytest.mark.asyncio
    async def test_events_are_published_in_order(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()
        events = session.events()

        await connection.notify(BATTERY_UUID, bytes([80]))
        await connection.notify(BATTERY_UUID, bytes([79]))
        await session.disconnect()

        received = [e async for e in events if isinstance(e, BatteryLevel)]
        assert received == [BatteryLevel(80), BatteryLevel(79)]

    @pytest.mark.asyncio
    async def test_malformed_frames_do_not_stop_dispatch(
        self, peripheral, transport, connection, caplog
    ):
        session = CubeSession(peripheral, transport)
        await session.connect()
        events = session.events()

        with caplog.at_level(logging.WARNING, logger="toio.session"):
            await connection.notify(MOTION_UUID, b"")
            await connection.notify(MOTION_UUID, bytes([0x01, 0x01]))
            await connection.notify(MOTION_UUID, bytes([0x7F]))
            await connection.notify(BATTERY_UUID, bytes([55]))

        assert caplog.text.count("Dropping frame") == 3
        assert session.is_connected
        await session.disconnect()
        received = [e async for e in events if not isinstance(e, ConnectionEvent)]
        assert received == [BatteryLevel(55)]

    @pytest.mark.asyncio
    async def test_position_and_standard_id_cached(self, peripheral, transport, connection):
        session = CubeSession(peripheral, transport)
        await session.connect()
        assert session.position is None
        assert session.standard_id is None

        await connection.notify(ID_READER_UUID, bytes.fromhex("01" "0100" "0200" "0300" "0400" "0500" "0600"))
        await connection.notify(ID_READER_UUID, bytes([0x02, 0x01, 0x00, 0x00, 0x00, 0x5A, 0x00]))

        assert session.position == IdPosition(1, 2, 3, 4, 5, 6)
        assert session.standard_id == IdStandard(1, 90)

        # A missed ID keeps the last known position
        await connection.notify(ID_READER_UUID, b"\x03")
        assert session.position == IdPosition(1, 2, 3, 4, 5, 6)
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_read_decodes_value(self, peripheral, transport, connection):
        connection.values[BATTERY_UUID] = bytes([42])
        session = CubeSession(peripheral, transport)
        await session.connect()

        assert await session.read(BATTERY_UUID) == BatteryLevel(42)
        await session.disconnect()

    @pytest.mark.asyncio
    async def test_read_requires_connection(self, peripheral, transport):
        session = CubeSession(peripheral, transport)

        with pytest.raises(DisconnectedError):
            await session.read(BATTERY_UUID)
