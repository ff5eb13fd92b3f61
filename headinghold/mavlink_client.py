"""
Heading-hold MAVLink client.

Owns the main control task: sends the startup handshake, launches the
heartbeat thread, then runs receive -> decode -> control -> dispatch until
a fatal condition or ``stop()``.  Attitude, vehicle state and the PID
belong to this task alone; the heartbeat thread shares only the link's
send.
"""

import threading
import time

from headinghold.config import Settings
from headinghold.controller import HeadingPID
from headinghold.dispatcher import CommandDispatcher
from headinghold.errors import HeadingHoldError, LinkError
from headinghold.event_bus import EventType
from headinghold.heartbeat import HeartbeatEmitter
from headinghold.logutil import get_logger
from headinghold.messages import handshake_messages
from headinghold.telemetry import TelemetryDemux
from headinghold.vehicle_state import VehicleState

WATCHDOG_LOG_INTERVAL_S = 5.0

log = get_logger("mavlink_client")


class HeadingHoldClient:
    """
    Closed-loop yaw controller over a ``MAVLinkLink``.

    ``clock`` supplies the monotonic timestamps the controller's dt is
    taken from.
    """

    def __init__(self, link, settings=None, event_bus=None, state=None,
                 clock=time.monotonic):
        self.link = link
        self.settings: Settings = (settings or Settings()).validate()
        self.event_bus = event_bus
        self.state: VehicleState = state or VehicleState()
        self._clock = clock
        self._stop_event = threading.Event()  # ends the loop and the heartbeat

        cfg = self.settings
        self.telemetry = TelemetryDemux(
            link, self.state,
            idle_interval=cfg.idle_interval,
            stop_event=self._stop_event,
            event_bus=event_bus,
            skip_malformed=cfg.skip_malformed,
        )
        self.controller = HeadingPID(cfg.controller)
        self.dispatcher = CommandDispatcher(
            link,
            setpoint=cfg.controller.setpoint,
            tolerance=cfg.controller.error_tolerance,
            config=cfg.dispatch,
            target=cfg.link.target_system,
        )
        self.heartbeat = HeartbeatEmitter(
            link, cfg.heartbeat_interval,
            stop_event=self._stop_event,
            event_bus=event_bus,
        )

        self.iterations = 0
        self.skipped_sends = 0
        self._last_time = None
        self._start_time = None
        self._last_watchdog_log = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self):
        """Send the handshake, then start the heartbeat thread.

        A handshake failure raises LinkError before anything is started.
        """
        for msg in handshake_messages(self.settings.link.stream_rate_hz):
            self.link.send(msg)
            log.info("Handshake: sent %s", msg.get_type())
        self.heartbeat.start()

    def stop(self):
        """Signal the loop and heartbeat to finish."""
        self._stop_event.set()
        self.heartbeat.stop()

    @property
    def stopped(self):
        return self._stop_event.is_set()

    def run(self):
        """Run the control loop.

        Returns the HeadingHoldError that terminated it, or None when it
        ended through ``stop()``.
        """
        self._start_time = self._clock()
        if self._last_time is None:
            self._last_time = self._start_time
        log.info("Control loop started: setpoint %.1f deg, tolerance %.1f deg",
                 self.controller.setpoint, self.settings.controller.error_tolerance)
        try:
            while not self._stop_event.is_set():
                self.step()
        except HeadingHoldError as exc:
            log.error("Control loop terminated: %s: %s", type(exc).__name__, exc)
            if self.event_bus:
                self.event_bus.emit(EventType.LOOP_TERMINATED,
                                    {"reason": type(exc).__name__, "message": str(exc)})
            return exc
        log.info("Control loop stopped after %d iterations", self.iterations)
        return None

    def step(self):
        """One iteration.  Returns the ControlOutput, or None when no
        attitude report arrived.  Fatal conditions raise."""
        if self._last_time is None:
            self._last_time = self._clock()

        attitude = self.telemetry.poll()
        if attitude is None:
            self._watchdog()
            return None

        now = self._clock()
        dt = now - self._last_time
        self._last_time = now
        output = self.controller.update(attitude.yaw, attitude.yawspeed, dt)
        self.iterations += 1

        try:
            profile = self.dispatcher.dispatch(output, attitude.yaw)
        except LinkError as exc:
            if not exc.transient:
                raise
            self.skipped_sends += 1
            log.warning("Command send skipped: %s", exc)
            profile = None

        log.info("yaw=%.2f yawspeed=%.2f error=%.2f integral=%.3f strength=%.3f profile=%s",
                 attitude.yaw, attitude.yawspeed, output.error, output.integral,
                 output.strength, profile.name if profile is not None else "-")
        if self.event_bus and self.event_bus.has_subscribers(EventType.CONTROL_UPDATED):
            self.event_bus.emit(EventType.CONTROL_UPDATED, {
                "yaw": attitude.yaw,
                "yawspeed": attitude.yawspeed,
                "error": output.error,
                "integral": output.integral,
                "strength": output.strength,
                "direction": output.direction,
                "profile": profile.name if profile is not None else None,
            })
        return output

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _watchdog(self):
        """Warn every few seconds while no attitude has arrived yet."""
        if self.state.attitude_updates or self._start_time is None:
            return
        elapsed = self._clock() - self._start_time
        if elapsed - self._last_watchdog_log >= WATCHDOG_LOG_INTERVAL_S:
            self._last_watchdog_log = elapsed
            log.warning("Still waiting for ATTITUDE... (%.0fs elapsed, conn=%s)",
                        elapsed, getattr(self.link, "address", None))
