"""
Exception hierarchy for the heading-hold loop.

Every condition that ends a task derives from ``HeadingHoldError`` so the
client can catch the whole family in one place.  "No data available" on
a non-blocking receive is not an exception: ``MAVLinkLink.receive()``
returns ``None`` for it.
"""


class HeadingHoldError(Exception):
    """Base class for all loop-terminating conditions."""


class LinkError(HeadingHoldError):
    """Send or receive failure on the MAVLink transport.

    ``transient`` marks send failures worth skipping an iteration for
    (socket momentarily full, ICMP port-unreachable echoed back on UDP)
    rather than tearing the loop down.
    """

    def __init__(self, message, transient=False):
        super().__init__(message)
        self.transient = transient


class ConnectError(LinkError):
    """The connection could not be opened or speaks the wrong protocol."""


class DecodeMismatch(HeadingHoldError):
    """A message carrying the ATTITUDE id did not decode as ATTITUDE."""


class TimingFault(HeadingHoldError):
    """The control clock did not advance between two iterations."""

    def __init__(self, dt):
        super().__init__(f"non-positive control interval dt={dt!r}")
        self.dt = dt
