"""One connection to a cube and the traffic flowing over it."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from .events import DEFAULT_STREAM_SIZE, ConnectionEvent, EventBroadcaster, EventStream
from .exceptions import (
    ConnectError,
    DecodeError,
    DisconnectedError,
    ResponseTimeoutError,
)
from .models.advertisement import Peripheral
from .models.enums import ConnectionState
from .protocol.base import NOTIFY_UUIDS, CommandFrame, EventFrame, Frame, ResponseFrame
from .protocol.codec import decode, encode
from .protocol.responses import IdPosition, IdStandard
from .transport.base import Connection, Transport

_LOGGER = logging.getLogger(__name__)

DEFAULT_RESPONSE_TIMEOUT = 5.0
# How long disconnect() waits for the notification stream to end
_DISPATCH_STOP_TIMEOUT = 2.0

_TRANSITIONS = frozenset({
    (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
    (ConnectionState.CONNECTING, ConnectionState.CONNECTED),
    (ConnectionState.CONNECTING, ConnectionState.DISCONNECTED),
    (ConnectionState.CONNECTED, ConnectionState.DISCONNECTING),
    (ConnectionState.CONNECTED, ConnectionState.DISCONNECTED),
    (ConnectionState.DISCONNECTING, ConnectionState.DISCONNECTED),
})


@dataclass
class PendingRequest:
    """An awaited response.

    Attributes:
        expected: Response frame type that resolves the request
        token: Correlation token the response must echo, if any
        future: Resolved with the response frame
    """

    expected: type[ResponseFrame]
    token: int | None
    future: asyncio.Future[ResponseFrame] = field(repr=False)


class CubeSession:
    """Owns one connection to a cube.

    Runs a dispatch task that decodes notifications, resolves pending
    requests and publishes events to subscribers. At most one request per
    response type is outstanding; a second one waits for the first.
    """

    def __init__(
            self,
            peripheral: Peripheral,
            transport: Transport,
            response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ):
        """Initialize the session.

        Args:
            peripheral: Cube to connect to
            transport: BLE transport used to open the connection
            response_timeout: Default seconds send_and_await() waits (default: 5)
        """
        self.peripheral = peripheral
        self.response_timeout = response_timeout

        self._transport = transport
        self._connection: Connection | None = None
        self._state = ConnectionState.DISCONNECTED
        self._dispatch_task: asyncio.Task[None] | None = None
        self._broadcaster = EventBroadcaster()

        self._lifecycle_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._kind_locks: dict[type[ResponseFrame], asyncio.Lock] = {}
        self._pending: dict[type[ResponseFrame], PendingRequest] = {}

        self._position: IdPosition | None = None
        self._standard_id: IdStandard | None = None

    @property
    def address(self) -> str:
        return self.peripheral.address

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def position(self) -> IdPosition | None:
        """Last position reported by the ID reader, None before the first."""
        return self._position

    @property
    def standard_id(self) -> IdStandard | None:
        """Last Standard ID reported by the ID reader, None before the first."""
        return self._standard_id

    def _transition(self, new_state: ConnectionState) -> None:
        previous = self._state
        if (previous, new_state) not in _TRANSITIONS:
            raise RuntimeError(
                f"Invalid connection state transition: {previous.name} -> {new_state.name}"
            )
        self._state = new_state
        _LOGGER.debug(
            "Connection state %s: %s -> %s", self.address, previous.name, new_state.name
        )
        self._broadcaster.publish(ConnectionEvent(self.address, previous, new_state))

    # Lifecycle

    async def connect(self) -> None:
        """Connect, subscribe to notifications and start dispatching.

        No-op if already connected.

        Raises:
            ConnectError: If the connection or a subscription fails
        """
        async with self._lifecycle_lock:
            if self._state == ConnectionState.CONNECTED:
                return

            self._transition(ConnectionState.CONNECTING)
            _LOGGER.debug("Connecting to %s", self.address)

            connection: Connection | None = None
            try:
                connection = await self._transport.connect(self.peripheral)
                notifications = await connection.subscribe(NOTIFY_UUIDS)
            except ConnectError:
                await self._abort_connect(connection)
                raise
            except asyncio.CancelledError:
                await self._abort_connect(connection)
                raise
            except Exception as e:
                await self._abort_connect(connection)
                raise ConnectError(f"Failed to connect to {self.address}: {e}") from e

            self._connection = connection
            self._transition(ConnectionState.CONNECTED)
            self._dispatch_task = asyncio.create_task(
                self._dispatch(notifications), name=f"toio-dispatch-{self.address}"
            )
            _LOGGER.info("Connected to %s", self.address)

    async def _abort_connect(self, connection: Connection | None) -> None:
        if connection is not None:
            try:
                await connection.disconnect()
            except Exception as e:
                _LOGGER.debug("Error closing failed connection: %s", e)
        self._transition(ConnectionState.DISCONNECTED)
        self._broadcaster.close_all()

    async def disconnect(self) -> None:
        """Disconnect and wait for the dispatch task to finish.

        No-op if already disconnected.
        """
        async with self._lifecycle_lock:
            if self._state != ConnectionState.CONNECTED:
                return

            self._transition(ConnectionState.DISCONNECTING)
            connection = self._connection
            task = self._dispatch_task
            try:
                if connection is not None:
                    await connection.disconnect()
            finally:
                if task is not None and not task.done():
                    try:
                        await asyncio.wait_for(task, timeout=_DISPATCH_STOP_TIMEOUT)
                    except asyncio.TimeoutError:
                        _LOGGER.warning(
                            "Notification stream for %s did not end, dispatch cancelled",
                            self.address,
                        )
                if self._state != ConnectionState.DISCONNECTED:
                    self._link_closed()

    # Traffic

    def _require_connection(self) -> Connection:
        if self._state != ConnectionState.CONNECTED or self._connection is None:
            raise DisconnectedError(f"Not connected to {self.address}")
        return self._connection

    async def send(self, frame: CommandFrame, with_response: bool = True) -> None:
        """Write a frame to its characteristic.

        Args:
            frame: Command to send
            with_response: Ask the BLE stack to confirm the write (default: True)

        Raises:
            DisconnectedError: If not connected
            TransportError: If the write fails
        """
        connection = self._require_connection()
        data = encode(frame)
        async with self._write_lock:
            _LOGGER.debug("TX %s %s: %s", self.address, type(frame).__name__, data.hex())
            await connection.write(frame.characteristic, data, response=with_response)

    async def send_and_await(
        self,
        frame: CommandFrame,
        expected: type[ResponseFrame] | None = None,
        timeout: float | None = None,
    ) -> ResponseFrame:
        """Send a frame and wait for the response that answers it.

        A second call expecting the same response type waits until the
        first one resolves, times out or is cancelled.

        Args:
            frame: Command to send
            expected: Response type to wait for (default: frame.response_type)
            timeout: Seconds to wait (default: the session's response_timeout)

        Returns:
            The response frame

        Raises:
            ValueError: If no response type is known for the frame
            DisconnectedError: If not connected, or the link drops while waiting
            ResponseTimeoutError: If the response does not arrive in time
        """
        expected = expected or frame.response_type
        if expected is None:
            raise ValueError(f"{type(frame).__name__} has no response, use send()")
        if timeout is None:
            timeout = self.response_timeout

        lock = self._kind_locks.setdefault(expected, asyncio.Lock())
        async with lock:
            self._require_connection()
            request = PendingRequest(
                expected=expected,
                token=frame.token,
                future=asyncio.get_running_loop().create_future(),
            )
            self._pending[expected] = request
            try:
                await self.send(frame)
                return await asyncio.wait_for(request.future, timeout=timeout)
            except asyncio.TimeoutError as e:
                raise ResponseTimeoutError(
                    f"No {expected.__name__} from {self.address} within {timeout}s"
                ) from e
            finally:
                if self._pending.get(expected) is request:
                    del self._pending[expected]

    async def read(self, characteristic: str) -> Frame:
        """Read a characteristic and decode its value.

        Raises:
            DisconnectedError: If not connected
            TransportError: If the read fails
            DecodeError: If the value cannot be decoded
        """
        connection = self._require_connection()
        data = await connection.read(characteristic)
        _LOGGER.debug("READ %s %s: %s", self.address, characteristic, data.hex())
        frame = decode(characteristic, data)
        self._remember(frame)
        return frame

    def events(self, maxsize: int = DEFAULT_STREAM_SIZE) -> EventStream:
        """Subscribe to events published from now on.

        The stream ends when the current connection ends. A stream opened
        while disconnected follows the next connection attempt: it sees its
        state changes and ends when that attempt fails or that connection
        ends. Until connect() is called it stays open and empty.
        """
        return self._broadcaster.subscribe(maxsize)

    # Dispatch

    def _remember(self, frame: Frame) -> None:
        if isinstance(frame, IdPosition):
            self._position = frame
        elif isinstance(frame, IdStandard):
            self._standard_id = frame

    def _resolve(self, frame: ResponseFrame) -> None:
        request = self._pending.get(type(frame))
        if request is None or request.future.done():
            _LOGGER.warning("Dropping unsolicited %s from %s", frame, self.address)
            return
        if request.token is not None and frame.token != request.token:
            _LOGGER.warning(
                "Dropping %s from %s: expected token %d", frame, self.address, request.token
            )
            return
        del self._pending[type(frame)]
        request.future.set_result(frame)

    def _handle(self, characteristic: str, data: bytes) -> None:
        _LOGGER.debug("RX %s %s: %s", self.address, characteristic, data.hex())
        try:
            frame = decode(characteristic, data)
        except DecodeError as e:
            _LOGGER.warning("Dropping frame from %s: %s", self.address, e)
            return

        if isinstance(frame, ResponseFrame):
            self._resolve(frame)
        elif isinstance(frame, EventFrame):
            self._remember(frame)
            self._broadcaster.publish(frame)
        else:
            _LOGGER.warning("Dropping unexpected %s from %s", frame, self.address)

    async def _dispatch(self, notifications: AsyncIterator[tuple[str, bytes]]) -> None:
        try:
            async for characteristic, data in notifications:
                self._handle(characteristic, data)
        except Exception as e:
            _LOGGER.error("Notification stream for %s failed: %s", self.address, e)
        finally:
            if self._state != ConnectionState.DISCONNECTED:
                self._link_closed()

    def _link_closed(self) -> None:
        """Fail outstanding requests, publish the state change and end streams."""
        if self._state == ConnectionState.CONNECTED:
            _LOGGER.warning("Connection to %s lost", self.address)
        else:
            _LOGGER.info("Disconnected from %s", self.address)

        self._connection = None
        pending, self._pending = self._pending, {}
        for request in pending.values():
            if not request.future.done():
                request.future.set_exception(
                    DisconnectedError(f"Connection to {self.address} closed")
                )

        self._transition(ConnectionState.DISCONNECTED)
        self._broadcaster.close_all()
