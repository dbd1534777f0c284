from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from raidline.contracts import MatchRecord, RaidEvent, RosterEntry
from raidline.core import PersistenceFailure
from raidline.persistence.migrations import MigrationRunner

logger = logging.getLogger("raidline.persistence")

# partial-state keys stored in their own columns; everything else lands in extra_json
_STATE_COLUMNS = {
    "team_a_score": "team_a_score",
    "team_b_score": "team_b_score",
    "current_half": "current_half",
    "active_team": "active_team",
    "status": "status",
    "phase": "phase",
    "current_timer": "current_timer",
    "is_timer_running": "is_timer_running",
    "winner_team_id": "winner_team_id",
}

_RAID_EVENT_COLUMNS = (
    "event_id",
    "match_id",
    "half",
    "raid_number",
    "raiding_team_id",
    "defending_team_id",
    "raider_id",
    "event_type",
    "raiding_points",
    "defending_points",
    "all_out_points",
    "is_do_or_die",
    "is_all_out",
    "is_super_tackle",
    "raid_time",
    "defenders_out_json",
    "revived_json",
    "tackler_id",
    "outcome_code",
)


class MatchStore:
    """SQLite store for match rows, rosters and raid events.

    Implements the persistence, roster and winner-advancement collaborators
    of the live runtime. Driver errors surface as ``PersistenceFailure``.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self, operation: str) -> Iterator[sqlite3.Connection]:
        conn: sqlite3.Connection | None = None
        try:
            conn = self.connect()
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.warning(f"{operation} failed on {self.db_path}: {exc}")
            raise PersistenceFailure(f"{operation} failed: {exc}") from exc
        finally:
            if conn is not None:
                conn.close()

    def initialize_schema(self) -> None:
        with self._session("initialize_schema") as conn:
            MigrationRunner(conn).apply()

    def register_match(self, record: MatchRecord) -> None:
        slot = None if record.is_team_a_winner_slot is None else int(record.is_team_a_winner_slot)
        with self._session("register_match") as conn:
            conn.execute("INSERT OR IGNORE INTO matches(match_id) VALUES (?)", (record.match_id,))
            conn.execute(
                """
                UPDATE matches
                SET team_a_id = ?, team_b_id = ?, next_match_id = ?, is_team_a_winner_slot = ?
                WHERE match_id = ?
                """,
                (record.team_a_id, record.team_b_id, record.next_match_id, slot, record.match_id),
            )

    def load_match_record(self, match_id: str) -> MatchRecord | None:
        with self._session("load_match_record") as conn:
            row = conn.execute(
                "SELECT match_id, team_a_id, team_b_id, next_match_id, is_team_a_winner_slot FROM matches WHERE match_id = ?",
                (match_id,),
            ).fetchone()
        if row is None or row[1] is None or row[2] is None:
            return None
        return MatchRecord(
            match_id=row[0],
            team_a_id=row[1],
            team_b_id=row[2],
            next_match_id=row[3],
            is_team_a_winner_slot=None if row[4] is None else bool(row[4]),
        )

    def save_players(self, entries: Iterable[RosterEntry]) -> None:
        with self._session("save_players") as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO players(player_id, team_id, name, jersey_number, starting)
                VALUES (?, ?, ?, ?, ?)
                """,
                [(e.player_id, e.team_id, e.name, e.jersey_number, int(e.starting)) for e in entries],
            )

    def roster_for(self, team_id: str) -> list[RosterEntry]:
        with self._session("roster_for") as conn:
            rows = conn.execute(
                "SELECT player_id, team_id, name, jersey_number, starting FROM players WHERE team_id = ? ORDER BY rowid",
                (team_id,),
            ).fetchall()
        return [
            RosterEntry(player_id=r[0], team_id=r[1], name=r[2], jersey_number=r[3], starting=bool(r[4]))
            for r in rows
        ]

    def save_event(self, raid_event: RaidEvent) -> bool:
        row = (
            raid_event.event_id,
            raid_event.match_id,
            raid_event.half,
            raid_event.raid_number,
            raid_event.raiding_team_id,
            raid_event.defending_team_id,
            raid_event.raider_id,
            raid_event.event_type,
            raid_event.raiding_points,
            raid_event.defending_points,
            raid_event.all_out_points,
            int(raid_event.is_do_or_die),
            int(raid_event.is_all_out),
            int(raid_event.is_super_tackle),
            raid_event.raid_time,
            json.dumps(list(raid_event.defenders_out)),
            json.dumps(list(raid_event.revived)),
            raid_event.tackler_id,
            raid_event.outcome_code,
        )
        placeholders = ", ".join(["?"] * len(_RAID_EVENT_COLUMNS))
        with self._session("save_event") as conn:
            conn.execute("INSERT OR IGNORE INTO matches(match_id) VALUES (?)", (raid_event.match_id,))
            conn.execute(
                f"INSERT OR REPLACE INTO raid_events({', '.join(_RAID_EVENT_COLUMNS)}) VALUES ({placeholders})",
                row,
            )
        return True

    def delete_event(self, event_id: str) -> None:
        with self._session("delete_event") as conn:
            conn.execute("DELETE FROM raid_events WHERE event_id = ?", (event_id,))

    def save_match_state(self, match_id: str, partial: Mapping[str, Any]) -> bool:
        columns: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in partial.items():
            if key in _STATE_COLUMNS:
                columns[_STATE_COLUMNS[key]] = int(value) if isinstance(value, bool) else value
            elif key == "out_player_ids":
                columns["out_player_ids_json"] = json.dumps(list(value))
            else:
                extra[key] = value

        with self._session("save_match_state") as conn:
            conn.execute("INSERT OR IGNORE INTO matches(match_id) VALUES (?)", (match_id,))
            if extra:
                current = conn.execute("SELECT extra_json FROM matches WHERE match_id = ?", (match_id,)).fetchone()
                columns["extra_json"] = json.dumps(_merge_extra(json.loads(current[0]), extra), default=str)
            if columns:
                assignments = ", ".join(f"{name} = ?" for name in columns)
                conn.execute(
                    f"UPDATE matches SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE match_id = ?",
                    (*columns.values(), match_id),
                )
        return True

    def advance(self, next_match_id: str, slot: str, winning_team_id: str) -> None:
        if slot not in ("team_a", "team_b"):
            raise PersistenceFailure(f"unknown bracket slot '{slot}'")
        with self._session("advance") as conn:
            conn.execute("INSERT OR IGNORE INTO matches(match_id) VALUES (?)", (next_match_id,))
            conn.execute(f"UPDATE matches SET {slot}_id = ? WHERE match_id = ?", (winning_team_id, next_match_id))
        logger.info(f"{winning_team_id} placed in {slot} of {next_match_id}")

    def load_match_state(self, match_id: str) -> dict[str, Any] | None:
        with self._session("load_match_state") as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM matches WHERE match_id = ?", (match_id,)).fetchone()
        if row is None:
            return None
        state = {key: row[key] for key in row.keys() if key not in ("out_player_ids_json", "extra_json")}
        state["out_player_ids"] = json.loads(row["out_player_ids_json"])
        state["is_timer_running"] = bool(row["is_timer_running"])
        state.update(json.loads(row["extra_json"]))
        return state

    def list_raid_events(self, match_id: str) -> list[dict[str, Any]]:
        with self._session("list_raid_events") as conn:
            rows = conn.execute(
                f"SELECT {', '.join(_RAID_EVENT_COLUMNS)} FROM raid_events WHERE match_id = ? ORDER BY raid_number, created_at",
                (match_id,),
            ).fetchall()
        events = []
        for raw in rows:
            row = dict(zip(_RAID_EVENT_COLUMNS, raw))
            row["defenders_out"] = json.loads(row.pop("defenders_out_json"))
            row["revived"] = json.loads(row.pop("revived_json"))
            for flag in ("is_do_or_die", "is_all_out", "is_super_tackle"):
                row[flag] = bool(row[flag])
            events.append(row)
        return events


def _merge_extra(current: dict[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(current)
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged
