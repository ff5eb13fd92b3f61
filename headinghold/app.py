"""
Command-line entry point for the heading-hold ground station.

Usage:
    headinghold --address udpin:0.0.0.0:14550 --setpoint 120
"""

import argparse
import dataclasses
import logging
import sys

from headinghold.config import Settings
from headinghold.errors import ConnectError, LinkError
from headinghold.link import MAVLinkLink
from headinghold.logutil import setup_logging, get_logger
from headinghold.mavlink_client import HeadingHoldClient

EXIT_OK = 0
EXIT_TERMINATED = 1
EXIT_STARTUP_FAILED = 2

log = get_logger("app")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Hold a MAVLink vehicle on a heading with MANUAL_CONTROL"
    )
    parser.add_argument("--address", help="pymavlink connection string")
    parser.add_argument("--setpoint", type=float, help="target yaw (deg)")
    parser.add_argument("--kp", type=float, help="proportional gain")
    parser.add_argument("--ki", type=float, help="integral gain")
    parser.add_argument("--kd", type=float, help="derivative gain")
    parser.add_argument("--tolerance", type=float, help="deadband radius (deg)")
    parser.add_argument("--skip-malformed", action="store_true", default=None,
                        help="drop attitude samples that fail to decode instead of stopping")
    parser.add_argument("--log-dir", help="also write a log file here")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug output")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    """Apply command-line overrides on top of ``base``."""
    link = base.link
    if args.address:
        link = dataclasses.replace(link, address=args.address)

    overrides = {
        "kp": args.kp,
        "ki": args.ki,
        "kd": args.kd,
        "setpoint": args.setpoint,
        "error_tolerance": args.tolerance,
    }
    controller = dataclasses.replace(
        base.controller, **{k: v for k, v in overrides.items() if v is not None})

    skip = base.skip_malformed if args.skip_malformed is None else args.skip_malformed
    return dataclasses.replace(
        base, link=link, controller=controller, skip_malformed=skip).validate()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_dir=args.log_dir,
                  console_level=logging.DEBUG if args.verbose else None)

    try:
        settings = settings_from_args(args, Settings.from_env())
    except ValueError as exc:
        log.error("Invalid configuration: %s", exc)
        return EXIT_STARTUP_FAILED
    log.debug("Settings: %s", settings.to_dict())

    try:
        link = MAVLinkLink.connect(
            settings.link.address,
            source_system=settings.link.source_system,
            source_component=settings.link.source_component,
        )
    except ConnectError as exc:
        log.error("%s", exc)
        return EXIT_STARTUP_FAILED

    client = HeadingHoldClient(link, settings)
    try:
        try:
            client.start()
        except LinkError as exc:
            log.error("Handshake failed: %s", exc)
            return EXIT_STARTUP_FAILED
        reason = client.run()
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
        reason = None
    finally:
        client.stop()
        link.close()
    return EXIT_OK if reason is None else EXIT_TERMINATED


if __name__ == "__main__":
    sys.exit(main())
