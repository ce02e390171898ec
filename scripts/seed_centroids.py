#!/usr/bin/env python3
"""
Seed the ZIP and city centroid caches from the open US cities dataset.

Idempotent: skips when city_centroids already holds more rows than the
configured threshold (config/coverage.yaml, seed.already_seeded_threshold).

Usage:
    python scripts/seed_centroids.py            # Seed if not yet seeded
    python scripts/seed_centroids.py --force    # Re-download and upsert anyway
    python scripts/seed_centroids.py --verbose  # Debug logging
"""

import argparse
import logging
import os
import sys
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "scripts"))

# Prevent Streamlit from auto-launching
os.environ.setdefault("STREAMLIT_SERVER_HEADLESS", "true")

from centroids import run_seed
from errors import SeedError
from turso_db import TursoDatabase

logger = logging.getLogger("seed_centroids")


def main():
    parser = argparse.ArgumentParser(description="Seed ZIP and city centroid caches")
    parser.add_argument("--force", action="store_true",
                        help="Seed even if the city table is already populated")
    parser.add_argument("--dataset-url", default=None,
                        help="Override the dataset URL from coverage.yaml")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable debug logging")
    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    from _credentials import load_credentials
    try:
        creds = load_credentials()
    except ValueError as e:
        logger.error("Credential error: %s", e)
        sys.exit(1)

    # Connect to Turso directly (not through Streamlit cache)
    db = TursoDatabase(url=creds["TURSO_DATABASE_URL"], auth_token=creds["TURSO_AUTH_TOKEN"])
    db.init_schema()

    try:
        result = run_seed(db, force=args.force, dataset_url=args.dataset_url)
    except SeedError as e:
        logger.error("Seeding failed: %s", e.message)
        sys.exit(1)

    if result["status"] == "skipped":
        print(f"city_centroids already has {result['city_count']} rows. Skipping seed.")
        print("Use --force to re-seed.")
        return

    print(f"\nDone. Upserted {result['zip_count']} ZIP centroids and {result['city_count']} city centroids.")
    print(f"  zip_centroids now has {db.count_zip_centroids()} rows")
    print(f"  city_centroids now has {db.count_city_centroids()} rows")


if __name__ == "__main__":
    main()
