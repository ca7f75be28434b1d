"""toio BLE Protocol Package.

  Asyncio driver for toio Core Cubes over Bluetooth Low Energy.
  """

from .cube import Cube
from .discovery import DEFAULT_SEARCH_TIMEOUT, Searcher, discover_cubes
from .events import ConnectionEvent, EventBroadcaster, EventStream
from .exceptions import (
    ConnectError,
    DecodeError,
    DisconnectedError,
    NotFoundError,
    ProtocolError,
    ResponseTimeoutError,
    ToioError,
    TransportError,
    TruncatedError,
    UnknownTypeError,
)
from .models.advertisement import Advertisement, Peripheral, estimate_distance
from .models.enums import (
    ButtonState,
    ConnectionState,
    IdNotifyCondition,
    MoveType,
    Note,
    Posture,
    SoundPresetId,
    SpeedChange,
    TargetResult,
    WriteOption,
)
from .models.light import LightOp, LightPattern
from .models.motion import MotorIntent
from .models.sound import Melody, SoundOp
from .planner import plan, plan_wheels
from .protocol import MAX_MOTOR_SPEED, SERVICE_UUID
from .session import CubeSession
from .transport import BleakTransport, BLEConnection, Connection, Transport

__version__ = "0.1.0"

__all__ = [
    # Main API
    "Cube",
    "CubeSession",
    "Searcher",
    "discover_cubes",
    "plan",
    "plan_wheels",
    # Events
    "EventStream",
    "EventBroadcaster",
    "ConnectionEvent",
    # Transport
    "Transport",
    "Connection",
    "BleakTransport",
    "BLEConnection",
    # Exceptions
    "ToioError",
    "TransportError",
    "ConnectError",
    "DisconnectedError",
    "DecodeError",
    "UnknownTypeError",
    "TruncatedError",
    "ResponseTimeoutError",
    "NotFoundError",
    "ProtocolError",
    # Models
    "Advertisement",
    "Peripheral",
    "MotorIntent",
    "LightOp",
    "LightPattern",
    "SoundOp",
    "Melody",
    "estimate_distance",
    # Enums
    "ButtonState",
    "ConnectionState",
    "IdNotifyCondition",
    "MoveType",
    "Note",
    "Posture",
    "SoundPresetId",
    "SpeedChange",
    "TargetResult",
    "WriteOption",
    # Constants
    "SERVICE_UUID",
    "MAX_MOTOR_SPEED",
    "DEFAULT_SEARCH_TIMEOUT",
]
