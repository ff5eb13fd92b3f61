"""
MAVLink message builders and the ATTITUDE decode.

pymavlink is the codec: these helpers only choose field values.  Messages
are built as dialect message objects and packed by the link, which stamps
them with its default header (source system/component, sequence).
"""

from dataclasses import dataclass

from pymavlink import mavutil

from headinghold.errors import DecodeMismatch

mavlink = mavutil.mavlink  # active dialect module (MAVLink 1 / common)

ATTITUDE_MSG_ID = mavlink.MAVLINK_MSG_ID_ATTITUDE  # 30

# MANUAL_CONTROL axis ranges on the wire
AXIS_SCALE = 100.0
AXIS_MIN = -1000
AXIS_MAX = 1000
THROTTLE_MIN = 0


def heartbeat_message():
    """GCS liveness message: quadrotor / ArduPilot, standby."""
    return mavlink.MAVLink_heartbeat_message(
        mavlink.MAV_TYPE_QUADROTOR,
        mavlink.MAV_AUTOPILOT_ARDUPILOTMEGA,
        0,  # base_mode: no flags
        0,  # custom_mode
        mavlink.MAV_STATE_STANDBY,
        3,  # mavlink_version
    )


def request_parameters():
    """PARAM_REQUEST_LIST for every system/component."""
    return mavlink.MAVLink_param_request_list_message(0, 0)


def request_stream(rate_hz=10):
    """REQUEST_DATA_STREAM enabling all streams (id 0) at ``rate_hz``."""
    return mavlink.MAVLink_request_data_stream_message(
        0, 0,
        0,        # MAV_DATA_STREAM_ALL
        rate_hz,
        1,        # 1 = start streaming, 0 = stop
    )


def arm_command():
    """COMMAND_LONG arming the vehicle ahead of manual control."""
    return mavlink.MAVLink_command_long_message(
        0, 0,
        mavlink.MAV_CMD_COMPONENT_ARM_DISARM,
        0,  # confirmation
        1.0, 1.0, 400.0, 0.0, 1.0, 0.0, 0.0,
    )


def handshake_messages(rate_hz=10):
    """The startup sequence, in send order."""
    return [request_parameters(), request_stream(rate_hz), arm_command()]


def _axis(value, low=AXIS_MIN, high=AXIS_MAX):
    # int() truncates toward zero, matching the wire's integer conversion
    return max(low, min(high, int(value * AXIS_SCALE)))


def manual_control(x, y, z, r, buttons=0, target=1):
    """MANUAL_CONTROL from unscaled axis inputs.

    Each axis is multiplied by 100 and truncated: x, y, r land in
    [-1000, 1000] and the throttle z in [0, 1000].
    """
    return mavlink.MAVLink_manual_control_message(
        target,
        _axis(x),
        _axis(y),
        _axis(z, low=THROTTLE_MIN),
        _axis(r),
        buttons,
    )


@dataclass(frozen=True)
class AttitudeReport:
    """Decoded ATTITUDE payload, still in wire units (rad, rad/s)."""

    time_boot_ms: int
    roll: float
    pitch: float
    yaw: float
    rollspeed: float
    pitchspeed: float
    yawspeed: float


def decode_attitude(msg) -> AttitudeReport:
    """Decode a message that carried the ATTITUDE id.

    Raises DecodeMismatch when the codec produced any other variant.
    """
    if not isinstance(msg, mavlink.MAVLink_attitude_message):
        raise DecodeMismatch(
            f"message id {ATTITUDE_MSG_ID} decoded as {msg.get_type()}")
    return AttitudeReport(
        time_boot_ms=msg.time_boot_ms,
        roll=msg.roll,
        pitch=msg.pitch,
        yaw=msg.yaw,
        rollspeed=msg.rollspeed,
        pitchspeed=msg.pitchspeed,
        yawspeed=msg.yawspeed,
    )
