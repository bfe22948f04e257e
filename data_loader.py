"""Load the joined per-tract tables the scoring endpoint ranks."""
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import TRACT_DATA_PATH
from filter_aggregator import pad_geoid

TABLE_NAMES = ("zones", "ethnicity", "demographics", "income")


def _normalize_rows(table: str, rows: Any) -> List[Dict[str, Any]]:
    if not isinstance(rows, list):
        raise ValueError(f"Table '{table}' must be a list of rows")

    normalized: List[Dict[str, Any]] = []
    seen = set()
    skipped = 0
    for row in rows:
        geoid = pad_geoid(row.get("GEOID", row.get("geoid"))) if isinstance(row, dict) else None
        if geoid is None or geoid in seen:
            skipped += 1
            continue
        seen.add(geoid)
        normalized.append({**row, "GEOID": geoid})

    if skipped:
        print(f"[DataLoader] Skipped {skipped} rows in '{table}' with missing, invalid or duplicate GEOIDs")
    return normalized


def parse_tract_tables(payload: Any) -> Dict[str, List[Dict[str, Any]]]:
    """Validate a decoded snapshot and key every row by its 11-digit GEOID."""
    if not isinstance(payload, dict):
        raise ValueError("Tract snapshot must be a JSON object")
    if "zones" not in payload:
        raise ValueError("Tract snapshot has no 'zones' table")
    return {table: _normalize_rows(table, payload.get(table) or []) for table in TABLE_NAMES}


@lru_cache(maxsize=4)
def load_tract_tables(path: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
    data_path = Path(path or TRACT_DATA_PATH)
    if not data_path.is_file():
        raise FileNotFoundError(f"Tract snapshot not found at {data_path}")

    print(f"[DataLoader] Loading tract tables from {data_path}")
    with data_path.open(encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as e:
            raise ValueError(f"Tract snapshot at {data_path} is not valid JSON: {e}") from e

    tables = parse_tract_tables(payload)
    print(f"[DataLoader] Loaded {len(tables['zones'])} zones")
    return tables
