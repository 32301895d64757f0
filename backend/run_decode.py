#!/usr/bin/env python3
"""
Decode a session archive without installing the package.

Usage:
    python run_decode.py path/to/session.zip [--strict] [--show-warnings]
"""

import sys
from pathlib import Path

# Add the package to path
sys.path.insert(0, str(Path(__file__).parent))

from tracksalvage.cli import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
