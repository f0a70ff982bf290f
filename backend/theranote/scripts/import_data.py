# backend/theranote/scripts/import_data.py
"""
Load the JSON dumps of the previous system into the database.

    theranote-import ./data

Expects <kind>_rows.json files (see FILES). Missing files are skipped with a
warning. Re-running against the same directory imports nothing new.
"""
import argparse
import asyncio
import json
import logging
import os
import sys

from theranote import config
from theranote.db import SessionLocal, engine
from theranote.services.import_service import import_rows

logger = logging.getLogger("theranote.import")

# therapists before patients before sessions/notes, links last
FILES = [
    ("therapists_rows.json", "therapists"),
    ("patients_rows.json", "patients"),
    ("sessions_rows.json", "sessions"),
    ("medical_history_notes_rows.json", "notes"),
    ("therapist_patients_rows.json", "therapist_patients"),
]


def load_rows(path: str) -> list[dict]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of rows")
    return data


async def import_directory(data_dir: str) -> dict[str, int]:
    totals = {}
    async with SessionLocal() as db:
        for filename, kind in FILES:
            path = os.path.join(data_dir, filename)
            if not os.path.exists(path):
                logger.warning("File %s not found, skipping", filename)
                continue
            logger.info("Importing %s...", filename)
            result = await import_rows(db, kind, load_rows(path))
            logger.info(
                "%s: imported %d, already present %d, failed %d (of %d)",
                kind, result.imported, result.skipped, result.failed, result.received,
            )
            totals[kind] = result.imported
    await engine.dispose()
    return totals


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import rows dumped from the previous system.")
    parser.add_argument("data_dir", nargs="?", default="data", help="directory holding *_rows.json files")
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    if not os.path.isdir(args.data_dir):
        logger.error("Data directory %s does not exist", args.data_dir)
        return 1
    asyncio.run(import_directory(args.data_dir))
    return 0


if __name__ == "__main__":
    sys.exit(main())
