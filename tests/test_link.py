"""
Tests for the MAVLink transport link.
"""

import math
import socket
import threading
import time

import pytest
from pymavlink import mavutil
from pymavlink.dialects.v20 import common as mavlink2

from headinghold.errors import ConnectError, LinkError
from headinghold.link import MAVLinkLink
from headinghold.messages import heartbeat_message, mavlink
from headinghold.telemetry import TelemetryDemux


class FakeMav:
    def __init__(self, error=None, delay=0.0):
        self.error = error
        self.delay = delay
        self.sent = []
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def send(self, msg):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.error is not None:
                raise self.error
            self.sent.append(msg)
        finally:
            with self._guard:
                self.active -= 1


class FakeConn:
    def __init__(self, mav=None, inbound=None):
        self.mav = mav or FakeMav()
        self.inbound = list(inbound or [])
        self.closed = False

    def recv_msg(self):
        if not self.inbound:
            return None
        item = self.inbound.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


def attitude_frame(module, yaw_deg):
    """Pack an ATTITUDE frame from vehicle 1 with the given dialect module."""
    packer = module.MAVLink(None, srcSystem=1, srcComponent=1)
    msg = module.MAVLink_attitude_message(1000, 0.0, 0.0, math.radians(yaw_deg),
                                          0.0, 0.0, 0.0)
    return msg.pack(packer)


def poll_attitude(demux, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        attitude = demux.poll()
        if attitude is not None:
            return attitude
    return None


class TestSend:

    def test_send_packs_through_connection(self):
        conn = FakeConn()
        link = MAVLinkLink(conn)
        msg = heartbeat_message()
        link.send(msg)
        assert conn.mav.sent == [msg]
        assert link.sent_count == 1

    def test_concurrent_sends_are_serialised(self):
        conn = FakeConn(FakeMav(delay=0.002))
        link = MAVLinkLink(conn)
        threads = [threading.Thread(target=lambda: [link.send(heartbeat_message())
                                                    for _ in range(5)])
                   for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(conn.mav.sent) == 40
        assert conn.mav.max_active == 1

    @pytest.mark.parametrize("error", [BlockingIOError(), ConnectionRefusedError()])
    def test_transient_send_errors(self, error):
        link = MAVLinkLink(FakeConn(FakeMav(error=error)))
        with pytest.raises(LinkError) as info:
            link.send(heartbeat_message())
        assert info.value.transient is True

    def test_fatal_send_error(self):
        link = MAVLinkLink(FakeConn(FakeMav(error=OSError("network down"))))
        with pytest.raises(LinkError) as info:
            link.send(heartbeat_message())
        assert info.value.transient is False
        assert link.sent_count == 0


class TestReceive:

    def test_nothing_waiting_is_none(self):
        assert MAVLinkLink(FakeConn()).receive() is None

    def test_blocking_io_is_none(self):
        assert MAVLinkLink(FakeConn(inbound=[BlockingIOError()])).receive() is None

    def test_returns_message(self):
        msg = heartbeat_message()
        link = MAVLinkLink(FakeConn(inbound=[msg]))
        assert link.receive() is msg
        assert link.received_count == 1

    def test_socket_error_is_fatal(self):
        link = MAVLinkLink(FakeConn(inbound=[OSError("bad fd")]))
        with pytest.raises(LinkError) as info:
            link.receive()
        assert info.value.transient is False

    def test_unparsable_bytes_are_dropped(self):
        link = MAVLinkLink(FakeConn(inbound=[mavlink.MAVError("invalid MAVLink prefix")]))
        assert link.receive() is None

    def test_protocol_switch_is_fatal(self):
        conn = FakeConn(inbound=[heartbeat_message()])
        link = MAVLinkLink(conn)
        conn.WIRE_PROTOCOL_VERSION = "2.0"
        with pytest.raises(LinkError):
            link.receive()


class TestConnect:

    def test_bad_address_raises_connect_error(self):
        with pytest.raises(ConnectError):
            MAVLinkLink.connect("udpin:256.256.256.256:14550")

    def test_loopback_connect_and_close(self):
        link = MAVLinkLink.connect("udpin:127.0.0.1:0")
        try:
            assert link.receive() is None
        finally:
            link.close()

    def test_close_is_idempotent(self):
        conn = FakeConn()
        link = MAVLinkLink(conn)
        link.close()
        link.close()
        assert conn.closed


class TestLoopbackWire:
    """Real datagrams through a udpin link on the loopback interface."""

    @pytest.fixture
    def loopback(self):
        link = MAVLinkLink.connect("udpin:127.0.0.1:0")
        port = link._conn.port.getsockname()[1]
        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

        def send(data):
            sender.sendto(bytes(data), ("127.0.0.1", port))

        yield link, send
        sender.close()
        link.close()

    def test_auto_version_switch_disabled(self, loopback):
        link, _ = loopback
        assert link._conn.first_byte is False

    def test_v1_attitude_decodes(self, loopback):
        link, send = loopback
        demux = TelemetryDemux(link, idle_interval=0.01)
        send(attitude_frame(mavlink, 45.0))
        attitude = poll_attitude(demux)
        assert attitude is not None
        assert attitude.yaw == pytest.approx(45.0, abs=1e-3)

    def test_v2_first_frame_keeps_link_on_v1(self, loopback):
        link, send = loopback
        demux = TelemetryDemux(link, idle_interval=0.01)
        send(attitude_frame(mavlink2, 10.0))
        # Drain the v2 datagram; it must read as noise, not as a bad ATTITUDE.
        deadline = time.monotonic() + 0.3
        while time.monotonic() < deadline:
            assert demux.poll() is None
        assert link.wire_protocol_version == "1.0"
        assert mavutil.mavlink.WIRE_PROTOCOL_VERSION == "1.0"
        assert demux.state.attitude_updates == 0

        # Enough v1 frames to resync past any partial frame the noise started.
        for _ in range(10):
            send(attitude_frame(mavlink, 45.0))
        attitude = poll_attitude(demux)
        assert attitude is not None
        assert attitude.yaw == pytest.approx(45.0, abs=1e-3)
