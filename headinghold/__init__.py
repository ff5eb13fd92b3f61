"""
Heading-hold ground station.

Closed-loop yaw control of a MAVLink vehicle from the ground: attitude
telemetry in, MANUAL_CONTROL commands out, with an independent GCS
heartbeat.
"""

import os

# Pin the wire protocol to MAVLink 1 with the common dialect.  pymavlink
# picks its dialect module from the environment the first time mavutil is
# imported, so this must run before any submodule imports pymavlink.
os.environ.pop("MAVLINK20", None)
os.environ["MAVLINK_DIALECT"] = "common"

__version__ = "0.1.0"
