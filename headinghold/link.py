"""
MAVLink transport link.

Wraps a pymavlink connection and exposes the two primitives the loop
needs: a thread-safe ``send`` shared by the heartbeat thread and the
control task, and a non-blocking ``receive`` used by the control task
only.
"""

import threading

from pymavlink import mavutil

from headinghold.config import GCS_SYSID, GCS_COMPID
from headinghold.errors import ConnectError, LinkError
from headinghold.logutil import get_logger

WIRE_PROTOCOL_VERSION = "1.0"  # pinned; no negotiation

# Send failures that leave the socket usable
TRANSIENT_SEND_ERRORS = (BlockingIOError, InterruptedError, ConnectionRefusedError)

log = get_logger("link")


class MAVLinkLink:
    """
    Shared handle to a pymavlink connection.

    ``send`` may be called from any number of threads: pymavlink's packer
    and sequence counter are not thread-safe, so every send runs under
    ``_send_lock`` as one complete operation.  ``receive`` has a single
    owner and takes no lock.
    """

    def __init__(self, conn, address=None):
        self._conn = conn           # pymavlink connection handle
        # pymavlink switches the whole dialect to MAVLink 2 when the first
        # inbound byte is the v2 marker.  Keep the v1 parser: v2 frames then
        # read as BAD_DATA and are ignored.
        if hasattr(conn, "first_byte"):
            conn.first_byte = False
        self.address = address
        self._send_lock = threading.Lock()
        self.sent_count = 0
        self.received_count = 0

    @classmethod
    def connect(cls, address, source_system=GCS_SYSID, source_component=GCS_COMPID):
        """Open ``address`` (e.g. "udpin:0.0.0.0:14550") and return a link.

        Connection string formats:
          "udpin:0.0.0.0:14550"       (listen for inbound UDP)
          "udpout:192.168.0.10:14550" (send outbound UDP)
          "tcp:192.168.0.10:5760"     (TCP client)
        """
        version = mavutil.mavlink.WIRE_PROTOCOL_VERSION
        if version != WIRE_PROTOCOL_VERSION:
            raise ConnectError(
                f"codec speaks MAVLink {version}, expected {WIRE_PROTOCOL_VERSION}")

        log.info("Opening MAVLink connection: %s", address)
        try:
            conn = mavutil.mavlink_connection(
                address,
                source_system=source_system,
                source_component=source_component,
                robust_parsing=True,
            )
        except Exception as exc:
            log.exception("Failed to open MAVLink connection")
            raise ConnectError(f"cannot connect to {address}: {exc}") from exc

        # Log socket details for diagnostics
        sock = getattr(conn, "port", None)
        if sock is not None and hasattr(sock, "getsockname"):
            try:
                log.info("Socket local address: %s", sock.getsockname())
            except OSError:
                pass
        return cls(conn, address=address)

    def send(self, msg):
        """Pack and write one message.  Raises LinkError on failure."""
        with self._send_lock:
            try:
                self._conn.mav.send(msg)
            except TRANSIENT_SEND_ERRORS as exc:
                raise LinkError(f"send {msg.get_type()} failed: {exc}",
                                transient=True) from exc
            except OSError as exc:
                raise LinkError(f"send {msg.get_type()} failed: {exc}") from exc
            self.sent_count += 1

    def receive(self):
        """Return the next inbound message, or None when nothing is waiting.

        Raises LinkError when the transport fails.
        """
        try:
            msg = self._conn.recv_msg()
        except BlockingIOError:
            return None
        except OSError as exc:
            raise LinkError(f"receive failed: {exc}") from exc
        except mavutil.mavlink.MAVError as exc:
            log.debug("Dropping unparsable bytes: %s", exc)
            return None
        version = self.wire_protocol_version
        if version != WIRE_PROTOCOL_VERSION:
            raise LinkError(
                f"link switched to MAVLink {version}, pinned to {WIRE_PROTOCOL_VERSION}")
        if msg is not None:
            self.received_count += 1
        return msg

    @property
    def wire_protocol_version(self):
        """Protocol the connection currently parses and packs."""
        return getattr(self._conn, "WIRE_PROTOCOL_VERSION",
                       mavutil.mavlink.WIRE_PROTOCOL_VERSION)

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            log.info("MAVLink connection closed")
