"""
Telemetry demultiplexer.

Pulls inbound messages off the link, picks out ATTITUDE (id 30) and
swaps a freshly decoded ``Attitude`` into the vehicle state.  Everything
else is ignored.
"""

import threading
import time

from headinghold.config import IDLE_INTERVAL_S
from headinghold.errors import DecodeMismatch
from headinghold.event_bus import EventType
from headinghold.logutil import get_logger
from headinghold.messages import ATTITUDE_MSG_ID, decode_attitude
from headinghold.vehicle_state import Attitude, VehicleState

log = get_logger("telemetry")


class TelemetryDemux:
    """Receive side of the control task.

    ``skip_malformed`` downgrades a DecodeMismatch from fatal to a logged,
    dropped sample.
    """

    def __init__(self, link, state=None, idle_interval=IDLE_INTERVAL_S,
                 stop_event=None, event_bus=None, skip_malformed=False):
        self.link = link
        self.state: VehicleState = state or VehicleState()
        self.idle_interval = idle_interval
        self.event_bus = event_bus
        self.skip_malformed = skip_malformed
        self._stop_event = stop_event or threading.Event()

        # Diagnostics
        self.msg_count = 0
        self.ignored_count = 0
        self.malformed_count = 0
        self._start_time = time.monotonic()
        self._first_msg_time = None

    @property
    def attitude(self) -> Attitude:
        return self.state.attitude

    def poll(self):
        """One receive attempt.

        Returns the new Attitude when an ATTITUDE report was ingested,
        otherwise None.  When nothing was waiting, idles for
        ``idle_interval`` first.  LinkError and DecodeMismatch propagate.
        """
        msg = self.link.receive()
        if msg is None:
            # no messages currently available -- wait a while
            self._stop_event.wait(self.idle_interval)
            return None
        return self.ingest(msg)

    def ingest(self, msg):
        """Route one inbound message; return the new Attitude or None."""
        self.msg_count += 1
        if self._first_msg_time is None:
            self._first_msg_time = time.monotonic()
            log.info("First MAVLink message received after %.1fs: %s",
                     self._first_msg_time - self._start_time, msg.get_type())

        if msg.get_msgId() != ATTITUDE_MSG_ID:
            self.ignored_count += 1
            return None

        try:
            report = decode_attitude(msg)
        except DecodeMismatch:
            if not self.skip_malformed:
                raise
            self.malformed_count += 1
            log.warning("Dropping malformed attitude sample: %s", msg.get_type())
            return None

        attitude = Attitude.from_report(report)
        self.state.update_attitude(attitude)
        if self.event_bus and self.event_bus.has_subscribers(EventType.ATTITUDE_UPDATED):
            self.event_bus.emit(EventType.ATTITUDE_UPDATED, self.state.snapshot())
        return attitude
