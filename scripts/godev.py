#!/usr/bin/env python3
"""
GoDev Runner Script.

Runs godev from a source checkout without installing it.
Requires Python 3.11+.

Usage:
    python scripts/godev.py path/to/main.go
"""

import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from lifecycle.main import main


if __name__ == "__main__":
    sys.exit(main())
