#!/usr/bin/env python3
"""
Initialize the admissions database.

Creates the healthcare_dataset table on the configured database
(DATABASE_URL, default a SQLite file under data/processed).

Usage:
    python scripts/init_db.py [--drop]

Options:
    --drop  Drop existing tables before creating (USE WITH CAUTION!)
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from admissions.config import settings
from admissions.database import create_all_tables, drop_all_tables


def main():
    parser = argparse.ArgumentParser(description="Initialize the admissions database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()

    logger.info(f"Database: {settings.database.url}")

    if args.drop:
        logger.warning("Dropping all tables...")
        drop_all_tables()

    create_all_tables()
    logger.info("Tables created")


if __name__ == "__main__":
    main()
