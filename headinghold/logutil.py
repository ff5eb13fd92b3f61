"""
Logging utility for the heading-hold ground station.

Console logging always; a timestamped log file when a directory is given
so a flight session can be reviewed afterwards.
"""

import logging
import os
import sys
from datetime import datetime

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
LOG_LEVEL = logging.DEBUG
CONSOLE_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE = None  # path of the active log file, if any
_initialised = False  # guard to ensure setup_logging() runs only once


def setup_logging(log_dir=None, level=None, console_level=None):
    """
    Initialise console (+ optional file) logging.  Safe to call multiple
    times; only the first call configures handlers.

    Console logging is set up first so the loop still reports status if
    the log directory turns out not to be writable.
    """
    global _initialised, LOG_FILE
    if _initialised:
        return
    _initialised = True

    root = logging.getLogger()
    root.setLevel(level or LOG_LEVEL)

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(console_level or CONSOLE_LEVEL)
    ch.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(ch)

    if not log_dir:
        return

    # File handler: best-effort
    try:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"headinghold_{timestamp}.log")
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)  # everything goes to file for post-run analysis
        fh.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root.addHandler(fh)
        LOG_FILE = log_file
        logging.info("Logging initialised -> %s", log_file)
    except OSError:
        logging.warning("File logging unavailable, console only")


def get_logger(name: str) -> logging.Logger:
    """Return a named logger.  Call setup_logging() first."""
    return logging.getLogger(name)
