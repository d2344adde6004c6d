#!/usr/bin/env python3
"""Initialize the EPL Hub database."""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from epl_hub.config import Config
from epl_hub.database import init_db
from epl_hub.logging import setup_logging


def main():
    """Create tables, then seed teams, fixtures and the admin account."""
    setup_logging(Config.LOG_LEVEL, Config.LOG_FILE)
    print(f"Initializing EPL Hub database at {Config.DATABASE_PATH}...")
    init_db()
    print("Done!")


if __name__ == "__main__":
    main()
