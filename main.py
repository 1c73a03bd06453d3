#!/usr/bin/env python3
# /twinpane/main.py
"""
twinpane launcher for source checkouts.

Puts ``src/`` on the import path and hands over to ``twinpane.main.start``,
the same function the installed ``twinpane`` console script runs.
"""

import os
import sys

project_root = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from twinpane.main import start  # noqa: E402


if __name__ == "__main__":
    start()
