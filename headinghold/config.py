"""
Configuration for the heading-hold loop.

Defaults live in the module-level block below; ``Settings.from_env()``
lets a deployment override them through ``HEADINGHOLD_*`` environment
variables and the CLI overrides those in turn.

Usage:
    from headinghold.config import Settings
    settings = Settings.from_env()
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Mapping, Optional

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_ADDRESS = "udpin:0.0.0.0:14550"  # listen for the vehicle on the GCS port
GCS_SYSID = 255     # default MAVLink header: GCS system id
GCS_COMPID = 0      # default MAVLink header: component 0
TARGET_SYSID = 1    # vehicle addressed by MANUAL_CONTROL
DEFAULT_STREAM_RATE_HZ = 10

HEARTBEAT_INTERVAL_S = 1.0
IDLE_INTERVAL_S = 1.0  # wait after a receive that found nothing

# Heading controller
KP = 1.2
KI = 0.3
KD = 0.0015
SETPOINT_DEG = 90.0
ERROR_TOLERANCE_DEG = 5.0

# Command profiles (axis inputs before the x100 wire scaling)
FORWARD_BIAS = 1.0   # -> x = 100 of [-1000, 1000]
THROTTLE = 5.0       # -> z = 500, neutral of [0, 1000]
STRENGTH_SCALE = 100.0

ENV_PREFIX = "HEADINGHOLD_"


@dataclass
class LinkConfig:
    """Where to connect and how to address the vehicle."""

    address: str = DEFAULT_ADDRESS
    source_system: int = GCS_SYSID
    source_component: int = GCS_COMPID
    target_system: int = TARGET_SYSID
    stream_rate_hz: int = DEFAULT_STREAM_RATE_HZ


@dataclass(frozen=True)
class ControllerConfig:
    """
    Gains and target for the yaw PID.  Frozen: constant for a run.

    Attributes:
        kp, ki, kd: PID gains.
        setpoint: Target yaw (degrees).
        error_tolerance: Deadband radius (degrees).  Inside it the vehicle
            keeps a small forward bias while correcting.
    """

    kp: float = KP
    ki: float = KI
    kd: float = KD
    setpoint: float = SETPOINT_DEG
    error_tolerance: float = ERROR_TOLERANCE_DEG


@dataclass
class DispatchConfig:
    """Axis values for the MANUAL_CONTROL profiles."""

    forward_bias: float = FORWARD_BIAS
    throttle: float = THROTTLE
    strength_scale: float = STRENGTH_SCALE


@dataclass
class Settings:
    """Everything a run needs, in one place."""

    link: LinkConfig = field(default_factory=LinkConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    heartbeat_interval: float = HEARTBEAT_INTERVAL_S
    idle_interval: float = IDLE_INTERVAL_S
    skip_malformed: bool = False

    def validate(self) -> "Settings":
        """Raise ValueError on settings the loop cannot run with."""
        if self.controller.error_tolerance <= 0:
            raise ValueError("error_tolerance must be positive")
        if self.heartbeat_interval <= 0:
            raise ValueError("heartbeat_interval must be positive")
        if self.idle_interval <= 0:
            raise ValueError("idle_interval must be positive")
        if self.dispatch.strength_scale == 0:
            raise ValueError("strength_scale must be non-zero")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a nested dictionary."""
        return asdict(self)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from defaults overridden by HEADINGHOLD_* variables."""
        env = os.environ if environ is None else environ

        def get(name, cast, default):
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}{name}: invalid value {raw!r}") from None

        link = LinkConfig(
            address=get("ADDRESS", str, DEFAULT_ADDRESS),
            source_system=get("SOURCE_SYSTEM", int, GCS_SYSID),
            source_component=get("SOURCE_COMPONENT", int, GCS_COMPID),
            target_system=get("TARGET_SYSTEM", int, TARGET_SYSID),
            stream_rate_hz=get("STREAM_RATE_HZ", int, DEFAULT_STREAM_RATE_HZ),
        )
        controller = ControllerConfig(
            kp=get("KP", float, KP),
            ki=get("KI", float, KI),
            kd=get("KD", float, KD),
            setpoint=get("SETPOINT", float, SETPOINT_DEG),
            error_tolerance=get("TOLERANCE", float, ERROR_TOLERANCE_DEG),
        )
        dispatch = DispatchConfig(
            forward_bias=get("FORWARD_BIAS", float, FORWARD_BIAS),
            throttle=get("THROTTLE", float, THROTTLE),
            strength_scale=get("STRENGTH_SCALE", float, STRENGTH_SCALE),
        )
        return cls(
            link=link,
            controller=controller,
            dispatch=dispatch,
            heartbeat_interval=get("HEARTBEAT_INTERVAL", float, HEARTBEAT_INTERVAL_S),
            idle_interval=get("IDLE_INTERVAL", float, IDLE_INTERVAL_S),
            skip_malformed=get("SKIP_MALFORMED", _parse_bool, False),
        ).validate()


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)
