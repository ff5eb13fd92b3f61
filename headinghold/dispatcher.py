"""
Command dispatcher: controller output -> MANUAL_CONTROL.
"""

from enum import Enum

from headinghold.config import DispatchConfig, TARGET_SYSID
from headinghold.controller import ControlOutput
from headinghold.logutil import get_logger
from headinghold.messages import manual_control

log = get_logger("dispatcher")


class CommandProfile(Enum):
    """Motion profiles as (forward bias applied, rotation sign)."""

    CRUISE_POSITIVE = (True, 1)    # inside deadband, yaw below setpoint
    CRUISE_NEGATIVE = (True, -1)   # inside deadband, yaw above setpoint
    ROTATE_POSITIVE = (False, 1)   # outside deadband, yaw below setpoint
    ROTATE_NEGATIVE = (False, -1)  # outside deadband, yaw above setpoint

    @property
    def forward(self) -> bool:
        return self.value[0]

    @property
    def sign(self) -> int:
        return self.value[1]


def select_profile(error, yaw, setpoint, tolerance) -> CommandProfile:
    """Pick the profile from error magnitude and which side of the setpoint
    the heading is on.  On target (yaw == setpoint) counts as the positive
    side; the rotation is zero there anyway.
    """
    above = yaw > setpoint
    if error < tolerance:
        return CommandProfile.CRUISE_NEGATIVE if above else CommandProfile.CRUISE_POSITIVE
    return CommandProfile.ROTATE_NEGATIVE if above else CommandProfile.ROTATE_POSITIVE


class CommandDispatcher:
    """Turns each ControlOutput into one MANUAL_CONTROL send."""

    def __init__(self, link, setpoint, tolerance, config=None, target=TARGET_SYSID):
        self.link = link
        self.setpoint = setpoint
        self.tolerance = tolerance
        self.config: DispatchConfig = config or DispatchConfig()
        self.target = target
        self.last_profile = None
        self.sent_count = 0

    def build(self, output: ControlOutput, yaw):
        """Return (profile, message) for one controller output."""
        cfg = self.config
        profile = select_profile(output.error, yaw, self.setpoint, self.tolerance)
        rotation = output.direction * output.strength / cfg.strength_scale
        msg = manual_control(
            cfg.forward_bias if profile.forward else 0.0,
            0.0,
            cfg.throttle,
            rotation,
            buttons=0,
            target=self.target,
        )
        return profile, msg

    def dispatch(self, output: ControlOutput, yaw) -> CommandProfile:
        """Build and send the command.  LinkError propagates to the caller."""
        profile, msg = self.build(output, yaw)
        if profile is not self.last_profile:
            log.debug("Profile -> %s", profile.name)
        self.link.send(msg)
        self.last_profile = profile
        self.sent_count += 1
        return profile
