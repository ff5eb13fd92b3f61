"""
Shared fixtures for heading-hold tests.

Provides fake links (scripted inbound messages, recorded sends) and a
controllable clock so the control loop can be driven without a socket.
"""

import math
import threading
from collections import deque

import pytest

from headinghold.messages import mavlink


class FakeLink:
    """Stand-in for MAVLinkLink.

    ``inbound`` items are returned by receive() in order; an exception
    instance is raised instead of returned, and an exhausted queue reads
    as "nothing waiting" (None).  ``send_errors`` holds exceptions (or
    None for success) consumed by the next sends.
    """

    def __init__(self, inbound=None, send_errors=None, on_send=None):
        self.inbound = deque(inbound or [])
        self.send_errors = deque(send_errors or [])
        self.on_send = on_send
        self.sent = []
        self.send_attempts = 0
        self.receive_calls = 0
        self.closed = False
        self.address = "fake:"
        self._lock = threading.Lock()

    def receive(self):
        self.receive_calls += 1
        if not self.inbound:
            return None
        item = self.inbound.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def send(self, msg):
        with self._lock:
            self.send_attempts += 1
            exc = self.send_errors.popleft() if self.send_errors else None
            if exc is None:
                self.sent.append(msg)
        if self.on_send:
            self.on_send(self, msg, exc)
        if exc is not None:
            raise exc

    def close(self):
        self.closed = True

    def sent_types(self):
        return [m.get_type() for m in self.sent]


class FakeClock:
    """Monotonic clock advancing ``step`` seconds per reading."""

    def __init__(self, start=100.0, step=0.1):
        self.now = start
        self.step = step
        self.readings = 0

    def __call__(self):
        value = self.now
        self.now += self.step
        self.readings += 1
        return value


def attitude_msg(yaw_deg=0.0, yawspeed_deg=0.0, roll=0.0, pitch=0.0,
                 rollspeed=0.0, pitchspeed=0.0, time_boot_ms=0):
    """Build an ATTITUDE message; yaw inputs in degrees, rest in radians."""
    return mavlink.MAVLink_attitude_message(
        time_boot_ms, roll, pitch,
        math.radians(yaw_deg),
        rollspeed, pitchspeed,
        math.radians(yawspeed_deg),
    )


@pytest.fixture
def fake_link():
    return FakeLink()


@pytest.fixture
def clock():
    return FakeClock()
