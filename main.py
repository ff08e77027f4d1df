#!/usr/bin/env python3
"""
Open-Data Compliance Gateway - Entry Point

Manual lookups against the municipal open-data compliance datasets.

Usage:
    python main.py <command> [options]

Examples:
    python main.py lookup --bin 1034304 --address "142 W 17th St"
    python main.py normalize 1-00234-0056
    python main.py endpoints

For more options:
    python main.py --help
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from opendata_gateway.cli import main

if __name__ == "__main__":
    sys.exit(main())
