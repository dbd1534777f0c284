from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

import duckdb


class AnalyticsStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> Any:
        return duckdb.connect(str(self.db_path))

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS mart_match_summaries (
                    match_id VARCHAR PRIMARY KEY,
                    team_a_id VARCHAR,
                    team_b_id VARCHAR,
                    team_a_score INTEGER,
                    team_b_score INTEGER,
                    status VARCHAR,
                    winner_team_id VARCHAR
                );

                CREATE TABLE IF NOT EXISTS mart_raid_events (
                    event_id VARCHAR PRIMARY KEY,
                    match_id VARCHAR,
                    half INTEGER,
                    raid_number INTEGER,
                    raiding_team_id VARCHAR,
                    defending_team_id VARCHAR,
                    raider_id VARCHAR,
                    event_type VARCHAR,
                    raiding_points INTEGER,
                    defending_points INTEGER,
                    all_out_points INTEGER,
                    is_do_or_die BOOLEAN,
                    is_all_out BOOLEAN,
                    is_super_tackle BOOLEAN,
                    raid_time INTEGER,
                    outcome_code VARCHAR
                );

                CREATE TABLE IF NOT EXISTS mart_team_points (
                    match_id VARCHAR,
                    team_id VARCHAR,
                    raid_points INTEGER,
                    tackle_points INTEGER,
                    all_out_points INTEGER,
                    total_points INTEGER,
                    raids INTEGER,
                    empty_raids INTEGER,
                    super_tackles INTEGER,
                    PRIMARY KEY(match_id, team_id)
                );
                """
            )

    def refresh_from_sqlite_for_match(self, sqlite_path: Path, match_id: str) -> None:
        self.initialize_schema()
        with sqlite3.connect(sqlite_path) as sconn, self.connect() as dconn:
            summary_rows = sconn.execute(
                """
                SELECT match_id, team_a_id, team_b_id, team_a_score, team_b_score, status, winner_team_id
                FROM matches WHERE match_id = ?
                """,
                (match_id,),
            ).fetchall()
            self._upsert_rows(dconn, "mart_match_summaries", "match_id", summary_rows)

            raid_rows = sconn.execute(
                """
                SELECT event_id, match_id, half, raid_number, raiding_team_id, defending_team_id, raider_id,
                       event_type, raiding_points, defending_points, all_out_points,
                       is_do_or_die, is_all_out, is_super_tackle, raid_time, outcome_code
                FROM raid_events WHERE match_id = ?
                ORDER BY raid_number
                """,
                (match_id,),
            ).fetchall()
            raid_rows = [(*r[:11], bool(r[11]), bool(r[12]), bool(r[13]), *r[14:]) for r in raid_rows]
            # undone raids are deleted upstream, so the mart is rebuilt rather than merged
            dconn.execute("DELETE FROM mart_raid_events WHERE match_id = ?", [match_id])
            if raid_rows:
                dconn.executemany(
                    f"INSERT INTO mart_raid_events VALUES ({','.join(['?'] * len(raid_rows[0]))})",
                    raid_rows,
                )
            self._refresh_team_points(dconn, match_id)

    def _refresh_team_points(self, dconn: Any, match_id: str) -> None:
        dconn.execute("DELETE FROM mart_team_points WHERE match_id = ?", [match_id])
        # a tackled raid can only all-out the raiding side, so its bonus goes to the defenders
        dconn.execute(
            """
            INSERT INTO mart_team_points
            SELECT match_id, team_id,
                   SUM(raid_points), SUM(tackle_points), SUM(all_out_points),
                   SUM(raid_points + tackle_points + all_out_points),
                   SUM(raids), SUM(empty_raids), SUM(super_tackles)
            FROM (
                SELECT match_id, raiding_team_id AS team_id,
                       raiding_points AS raid_points, 0 AS tackle_points,
                       CASE WHEN event_type = 'tackle' THEN 0 ELSE all_out_points END AS all_out_points,
                       1 AS raids,
                       CASE WHEN event_type = 'empty' THEN 1 ELSE 0 END AS empty_raids,
                       0 AS super_tackles
                FROM mart_raid_events WHERE match_id = ?
                UNION ALL
                SELECT match_id, defending_team_id AS team_id,
                       0, defending_points,
                       CASE WHEN event_type = 'tackle' THEN all_out_points ELSE 0 END,
                       0, 0,
                       CASE WHEN is_super_tackle THEN 1 ELSE 0 END
                FROM mart_raid_events WHERE match_id = ?
            ) AS credited
            GROUP BY match_id, team_id
            """,
            [match_id, match_id],
        )

    def team_points(self, match_id: str) -> list[tuple]:
        with self.connect() as conn:
            return conn.execute(
                """
                SELECT team_id, raid_points, tackle_points, all_out_points, total_points, raids, empty_raids, super_tackles
                FROM mart_team_points WHERE match_id = ? ORDER BY team_id
                """,
                [match_id],
            ).fetchall()

    def _upsert_rows(self, conn: Any, table: str, key_col: str, rows: list[tuple]) -> None:
        if not rows:
            return
        keys = [r[0] for r in rows]
        placeholders = ",".join(["?"] * len(keys))
        conn.execute(f"DELETE FROM {table} WHERE {key_col} IN ({placeholders})", keys)
        values_placeholder = ",".join(["?"] * len(rows[0]))
        conn.executemany(f"INSERT INTO {table} VALUES ({values_placeholder})", rows)
