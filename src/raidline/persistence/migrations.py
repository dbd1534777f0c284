from __future__ import annotations

import sqlite3

MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS matches (
            match_id TEXT PRIMARY KEY,
            team_a_id TEXT,
            team_b_id TEXT,
            next_match_id TEXT,
            is_team_a_winner_slot INTEGER,
            team_a_score INTEGER NOT NULL DEFAULT 0,
            team_b_score INTEGER NOT NULL DEFAULT 0,
            current_half INTEGER NOT NULL DEFAULT 1,
            active_team TEXT,
            out_player_ids_json TEXT NOT NULL DEFAULT '[]',
            status TEXT NOT NULL DEFAULT 'not_started',
            phase TEXT NOT NULL DEFAULT 'not_started',
            current_timer INTEGER,
            is_timer_running INTEGER NOT NULL DEFAULT 0,
            winner_team_id TEXT,
            extra_json TEXT NOT NULL DEFAULT '{}',
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS players (
            player_id TEXT PRIMARY KEY,
            team_id TEXT NOT NULL,
            name TEXT NOT NULL,
            jersey_number INTEGER,
            starting INTEGER NOT NULL DEFAULT 1
        );

        CREATE TABLE IF NOT EXISTS raid_events (
            event_id TEXT PRIMARY KEY,
            match_id TEXT NOT NULL,
            half INTEGER NOT NULL,
            raid_number INTEGER NOT NULL,
            raiding_team_id TEXT NOT NULL,
            defending_team_id TEXT NOT NULL,
            raider_id TEXT NOT NULL,
            event_type TEXT NOT NULL,
            raiding_points INTEGER NOT NULL,
            defending_points INTEGER NOT NULL,
            all_out_points INTEGER NOT NULL,
            is_do_or_die INTEGER NOT NULL,
            is_all_out INTEGER NOT NULL,
            is_super_tackle INTEGER NOT NULL,
            raid_time INTEGER NOT NULL,
            defenders_out_json TEXT NOT NULL,
            revived_json TEXT NOT NULL,
            tackler_id TEXT,
            outcome_code TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (match_id) REFERENCES matches(match_id) ON DELETE CASCADE
        );
        """,
    ),
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_raid_events_match ON raid_events(match_id, raid_number);
        CREATE INDEX IF NOT EXISTS idx_players_team ON players(team_id);
        """,
    ),
]


class MigrationRunner:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def apply(self) -> None:
        self.conn.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT DEFAULT CURRENT_TIMESTAMP)")
        applied = {
            row[0]
            for row in self.conn.execute("SELECT version FROM schema_migrations").fetchall()
        }
        for version, sql in MIGRATIONS:
            if version in applied:
                continue
            self.conn.executescript(sql)
            self.conn.execute("INSERT INTO schema_migrations(version) VALUES (?)", (version,))
        self.conn.commit()

    def current_version(self) -> int:
        row = self.conn.execute("SELECT MAX(version) FROM schema_migrations").fetchone()
        return int(row[0] or 0)
