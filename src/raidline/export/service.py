from __future__ import annotations

from pathlib import Path
from typing import Any

import duckdb

MATCH_DATASETS = {
    "mart_match_summaries": "match_summary",
    "mart_raid_events": "raid_events",
    "mart_team_points": "team_points",
}


class ExportService:
    def __init__(self, analytics_db: Path) -> None:
        self.analytics_db = analytics_db

    def export_match_datasets(self, output_dir: Path, match_id: str) -> list[Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        outputs: list[Path] = []
        with duckdb.connect(str(self.analytics_db)) as conn:
            for table, name in MATCH_DATASETS.items():
                outputs.extend(self._export_table(conn, table, match_id, output_dir / f"{match_id}_{name}"))
        return outputs

    def _export_table(self, conn: Any, table: str, match_id: str, stem: Path) -> list[Path]:
        csv_path = stem.with_suffix(".csv")
        parquet_path = stem.with_suffix(".parquet")
        # COPY takes no bound parameters, so the match id is inlined as a quoted literal
        literal = match_id.replace("'", "''")
        query = f"SELECT * FROM {table} WHERE match_id = '{literal}'"
        conn.execute(f"COPY ({query}) TO '{csv_path.as_posix()}' (HEADER, DELIMITER ',')")
        conn.execute(f"COPY ({query}) TO '{parquet_path.as_posix()}' (FORMAT PARQUET)")
        return [csv_path, parquet_path]
