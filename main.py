#!/usr/bin/env python3
"""
Indoor Floor Editor - Main Application Entry Point

Runs the editor from a source checkout; installed copies use the
``indoor-editor`` console script instead.
"""

import sys
from pathlib import Path

# Ensure package imports work when executed as a script
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from indoor_editor.app import main

if __name__ == "__main__":
    sys.exit(main())
