"""toio BLE wire protocol."""

from .base import (
    BATTERY_UUID,
    BUTTON_UUID,
    CONFIG_UUID,
    DURATION_UNIT_MS,
    ID_READER_UUID,
    LIGHT_UUID,
    MAX_DURATION_UNITS,
    MAX_MOTOR_SPEED,
    MOTION_UUID,
    MOTOR_UUID,
    NOTIFY_UUIDS,
    SERVICE_UUID,
    SOUND_UUID,
    CommandFrame,
    EventFrame,
    Frame,
    ResponseFrame,
)
from .codec import FRAME_TYPES, decode, encode
from .commands import (
    CollisionThreshold,
    ConfigVersionRequest,
    DoubleTapInterval,
    IdMissedNotificationSettings,
    IdNotificationSettings,
    LevelThreshold,
    LightOff,
    LightOn,
    LightSequence,
    LightsOff,
    LightStep,
    MotorAcceleration,
    MotorControl,
    MotorControlTimed,
    MotorMultiTarget,
    MotorSpeedSettings,
    MotorTarget,
    SoundPreset,
    SoundSequence,
    SoundStep,
    SoundStop,
    Target,
)
from .responses import (
    BatteryLevel,
    ButtonEvent,
    ConfigResponse,
    ConfigVersionResponse,
    IdMissedNotificationResponse,
    IdNotificationResponse,
    IdPosition,
    IdPositionMissed,
    IdStandard,
    IdStandardMissed,
    MotionDetection,
    MotorMultiTargetResponse,
    MotorSpeed,
    MotorSpeedSettingsResponse,
    MotorTargetResponse,
)

__all__ = [
    # Constants
    "SERVICE_UUID",
    "ID_READER_UUID",
    "MOTOR_UUID",
    "LIGHT_UUID",
    "SOUND_UUID",
    "MOTION_UUID",
    "BUTTON_UUID",
    "BATTERY_UUID",
    "CONFIG_UUID",
    "NOTIFY_UUIDS",
    "MAX_MOTOR_SPEED",
    "DURATION_UNIT_MS",
    "MAX_DURATION_UNITS",
    # Codec
    "FRAME_TYPES",
    "encode",
    "decode",
    # Frame bases
    "Frame",
    "CommandFrame",
    "ResponseFrame",
    "EventFrame",
    # Commands
    "MotorControl",
    "MotorControlTimed",
    "MotorTarget",
    "MotorMultiTarget",
    "MotorAcceleration",
    "Target",
    "LightsOff",
    "LightOff",
    "LightOn",
    "LightSequence",
    "LightStep",
    "SoundStop",
    "SoundPreset",
    "SoundSequence",
    "SoundStep",
    "ConfigVersionRequest",
    "LevelThreshold",
    "CollisionThreshold",
    "DoubleTapInterval",
    "IdNotificationSettings",
    "IdMissedNotificationSettings",
    "MotorSpeedSettings",
    # Responses and events
    "MotorTargetResponse",
    "MotorMultiTargetResponse",
    "MotorSpeed",
    "ConfigResponse",
    "ConfigVersionResponse",
    "IdNotificationResponse",
    "IdMissedNotificationResponse",
    "MotorSpeedSettingsResponse",
    "IdPosition",
    "IdStandard",
    "IdPositionMissed",
    "IdStandardMissed",
    "MotionDetection",
    "ButtonEvent",
    "BatteryLevel",
]
