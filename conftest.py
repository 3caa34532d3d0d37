"""Pytest configuration for project root.

Ensures the source packages are importable without installation and turns
on verbose logging for the test session.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Add the ``src`` directory to ``sys.path`` so that ``te_core`` and
# ``strategies`` are importable without installation.
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

logging.basicConfig(level=logging.DEBUG)
