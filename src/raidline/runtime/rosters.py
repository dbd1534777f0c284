from __future__ import annotations

from typing import Any, Iterable, Mapping

from raidline.contracts import RosterEntry


class StaticRosterProvider:
    """In-memory roster source, used by match scripts and replays."""

    def __init__(self, entries: Iterable[RosterEntry]) -> None:
        self._entries = list(entries)

    def roster_for(self, team_id: str) -> list[RosterEntry]:
        return [e for e in self._entries if e.team_id == team_id]

    @classmethod
    def from_mapping(cls, teams: Mapping[str, Iterable[Any]]) -> StaticRosterProvider:
        """Build from ``{team_id: [player_id | {"player_id": ..., ...}]}``.

        Bare ids are treated as starters in listed order.
        """
        entries: list[RosterEntry] = []
        for team_id, players in teams.items():
            for raw in players:
                if isinstance(raw, str):
                    entries.append(RosterEntry(player_id=raw, team_id=team_id, name=raw))
                    continue
                entries.append(
                    RosterEntry(
                        player_id=str(raw["player_id"]),
                        team_id=team_id,
                        name=str(raw.get("name", raw["player_id"])),
                        jersey_number=raw.get("jersey_number"),
                        starting=bool(raw.get("starting", True)),
                    )
                )
        return cls(entries)
