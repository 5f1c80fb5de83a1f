"""
Pytest configuration for test discovery and imports.

Modules live directly under src/ (no package), so src/ goes on sys.path
for the tests to import them by name.
"""

import os
import sys

ROOT_DIR = os.path.dirname(__file__)
SRC_DIR = os.path.join(ROOT_DIR, "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)
