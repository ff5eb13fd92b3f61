"""
GCS heartbeat emitter.

Sends HEARTBEAT from its own daemon thread so the vehicle keeps seeing a
live ground station regardless of what the control loop is doing.
"""

import threading

from headinghold.config import HEARTBEAT_INTERVAL_S
from headinghold.errors import LinkError
from headinghold.event_bus import EventType
from headinghold.logutil import get_logger
from headinghold.messages import heartbeat_message

log = get_logger("heartbeat")


class HeartbeatEmitter:
    """
    Periodic HEARTBEAT sender.

    After a successful send it waits ``interval`` seconds.  After a failed
    send it reports the failure and tries again straight away, with no
    wait: a link that stays down makes this thread spin.
    """

    def __init__(self, link, interval=HEARTBEAT_INTERVAL_S, stop_event=None,
                 event_bus=None):
        self.link = link
        self.interval = interval
        self.event_bus = event_bus
        self._stop_event = stop_event or threading.Event()
        self._thread = None
        self.sent_count = 0
        self.failed_count = 0

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            log.warning("start() called but already running")
            return
        # Daemon thread: dies with the process, there is no other exit path
        # unless the stop event is set.
        self._thread = threading.Thread(target=self.run, name="heartbeat", daemon=True)
        self._thread.start()
        log.info("Heartbeat thread started (%.1fs interval)", self.interval)

    def stop(self, timeout=5.0):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run(self):
        msg = heartbeat_message()
        while not self._stop_event.is_set():
            if self.beat(msg):
                self._stop_event.wait(self.interval)

    def beat(self, msg=None):
        """Send one heartbeat.  Return True on success."""
        try:
            self.link.send(msg if msg is not None else heartbeat_message())
        except LinkError as exc:
            log.error("Heartbeat send failed: %s", exc)
            return self._failed(exc)
        except Exception as exc:
            # Packing errors and the like must not kill the thread.
            log.exception("Heartbeat send failed")
            return self._failed(exc)
        self.sent_count += 1
        return True

    def _failed(self, exc):
        self.failed_count += 1
        if self.event_bus:
            self.event_bus.emit(EventType.HEARTBEAT_FAILED, {"error": str(exc)})
        return False
