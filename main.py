#!/usr/bin/env python3
"""
Cluster Rolling Upgrader

Upgrades the control-plane machine of a Cluster API managed cluster, waits
for its node to rejoin ready at the target version, then upgrades every
worker machine concurrently.

This script supports running directly from a source checkout that uses the
src/ layout: it adds the local `src/` directory to sys.path before importing.
For production use, prefer installing the project and using the provided
console script.

Examples:
  # Show what would be upgraded
  python3 main.py --kubeconfig ~/.kube/config --version 1.12.3 --dry-run

  # Upgrade the cluster and keep a JSON report
  python3 main.py --version 1.12.3 --report-file report.json
"""

import os
import sys

# Add src/ to path to import modules directly
REPO_ROOT = os.path.dirname(os.path.abspath(__file__))
SRC_PATH = os.path.join(REPO_ROOT, "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from cli import main

if __name__ == "__main__":
    sys.exit(main())
