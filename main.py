"""
Thin entry point at the repo root.  Delegates to headinghold.app so the
loop can be started with ``python main.py`` from a checkout.
"""

import os
import sys

# Ensure the repo root is on the path
_HERE = os.path.dirname(os.path.abspath(__file__))
if _HERE not in sys.path:
    sys.path.insert(0, _HERE)

from headinghold.app import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
