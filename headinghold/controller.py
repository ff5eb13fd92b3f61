"""
Heading controller: PID over yaw error.
"""

from dataclasses import dataclass

from headinghold.config import ControllerConfig
from headinghold.errors import TimingFault


@dataclass(frozen=True)
class ControlOutput:
    """Result of one controller update.

    ``error`` is the unsigned yaw error (degrees); ``direction`` is the
    sign of ``setpoint - yaw`` (+1, -1, or 0 on target) and decides which
    way the correction turns.
    """

    error: float
    direction: int
    integral: float
    strength: float
    dt: float


class HeadingPID:
    """
    PID on the magnitude of the yaw error.

    The integral accumulates ``error * dt`` once per update and is only
    cleared by constructing a new controller.  The derivative term uses
    the measured yaw rate divided by the update interval.
    """

    def __init__(self, config=None):
        self.config: ControllerConfig = config or ControllerConfig()
        self.integral = 0.0

    @property
    def setpoint(self):
        return self.config.setpoint

    def update(self, yaw, yawspeed, dt) -> ControlOutput:
        """
        Compute the yaw strength for the current heading.

        yaw: current heading (deg); yawspeed: yaw rate (deg/s);
        dt: seconds since the previous update.  Raises TimingFault when
        dt <= 0, leaving the integral untouched.
        """
        if dt <= 0:
            raise TimingFault(dt)
        cfg = self.config
        offset = cfg.setpoint - yaw
        error = abs(offset)
        self.integral += error * dt
        strength = cfg.kp * error + cfg.ki * self.integral + cfg.kd * (yawspeed / dt)
        direction = (offset > 0) - (offset < 0)
        return ControlOutput(
            error=error,
            direction=direction,
            integral=self.integral,
            strength=strength,
            dt=dt,
        )
