from __future__ import annotations

from pathlib import Path

from raidline.persistence.duckdb_store import AnalyticsStore


def run_match_etl(sqlite_path: Path, duckdb_path: Path, match_id: str) -> None:
    store = AnalyticsStore(duckdb_path)
    store.refresh_from_sqlite_for_match(sqlite_path, match_id=match_id)
