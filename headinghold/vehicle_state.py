"""
Vehicle state owned by the control task.

``Attitude`` is an immutable snapshot: the telemetry demultiplexer swaps a
whole new instance into ``VehicleState.attitude`` per decoded report, so
readers never observe a half-updated orientation.
"""

import math
import time
from dataclasses import dataclass, asdict

from headinghold.messages import AttitudeReport


@dataclass(frozen=True)
class Attitude:
    """Orientation snapshot.

    yaw is in degrees and yawspeed in deg/s; roll, pitch and their rates
    stay in the wire's radians since only the heading is controlled.
    """

    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    rollspeed: float = 0.0
    pitchspeed: float = 0.0
    yawspeed: float = 0.0

    @classmethod
    def from_report(cls, report: AttitudeReport) -> "Attitude":
        return cls(
            roll=report.roll,
            pitch=report.pitch,
            yaw=math.degrees(report.yaw),
            rollspeed=report.rollspeed,
            pitchspeed=report.pitchspeed,
            yawspeed=math.degrees(report.yawspeed),
        )


class VehicleState:
    """Mutable container for the telemetry the loop consumes."""

    def __init__(self):
        self.reset()

    def reset(self):
        """Clear all fields to defaults."""
        self.attitude = Attitude()
        self.attitude_updates = 0
        self.last_attitude_time = 0.0  # monotonic seconds, 0 = never

    def update_attitude(self, attitude: Attitude):
        self.attitude = attitude
        self.attitude_updates += 1
        self.last_attitude_time = time.monotonic()

    def attitude_age(self):
        if self.last_attitude_time == 0.0:
            return float("inf")
        return time.monotonic() - self.last_attitude_time

    def snapshot(self) -> dict:
        """Return a plain-dict snapshot of the current state."""
        data = asdict(self.attitude)
        data["attitude_updates"] = self.attitude_updates
        return data
