from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from raidline.contracts import ActionRequest, ActionResult, MatchRecord, TeamSide
from raidline.core import config_from_mapping, make_id, seeded_random
from raidline.persistence import MatchStore
from raidline.runtime.rosters import StaticRosterProvider
from raidline.runtime.session import LiveMatchRuntime


@dataclass(slots=True)
class ReplayAction:
    action_type: str
    payload: dict[str, Any]


@dataclass(slots=True)
class MatchScript:
    """A recorded match: the setup plus the actions fed to the runtime, in order."""

    match: dict[str, Any]
    rosters: dict[str, list[Any]]
    match_format: str = "pro"
    config: dict[str, Any] = field(default_factory=dict)
    first_raiding_team: str = TeamSide.A.value

    def record(self) -> MatchRecord:
        return MatchRecord(
            match_id=str(self.match["match_id"]),
            team_a_id=str(self.match["team_a_id"]),
            team_b_id=str(self.match["team_b_id"]),
            next_match_id=self.match.get("next_match_id"),
            is_team_a_winner_slot=self.match.get("is_team_a_winner_slot"),
        )


class ReplayHarness:
    def __init__(self, seed: int, script: MatchScript) -> None:
        self.seed = seed
        self.script = script
        self.actions: list[ReplayAction] = []

    def record(self, action_type: str, payload: dict[str, Any] | None = None) -> None:
        self.actions.append(ReplayAction(action_type=str(action_type), payload=dict(payload or {})))

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "match": self.script.match,
            "rosters": self.script.rosters,
            "format": self.script.match_format,
            "config": self.script.config,
            "first_raiding_team": self.script.first_raiding_team,
            "actions": [{"action_type": a.action_type, "payload": a.payload} for a in self.actions],
        }

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @staticmethod
    def load(path: Path) -> ReplayHarness:
        return ReplayHarness.from_dict(json.loads(path.read_text(encoding="utf-8")))

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ReplayHarness:
        script = MatchScript(
            match=dict(data["match"]),
            rosters={team_id: list(players) for team_id, players in data["rosters"].items()},
            match_format=str(data.get("format", "pro")),
            config=dict(data.get("config", {})),
            first_raiding_team=str(data.get("first_raiding_team", TeamSide.A.value)),
        )
        harness = ReplayHarness(seed=int(data.get("seed", 0)), script=script)
        for raw in data.get("actions", []):
            harness.record(raw["action_type"], raw.get("payload", {}))
        return harness

    def build_runtime(self, root: Path, **kwargs: Any) -> LiveMatchRuntime:
        script = self.script
        record = script.record()
        store = MatchStore(root / "data" / "raidline.sqlite3")
        store.initialize_schema()
        store.register_match(record)
        rosters = StaticRosterProvider.from_mapping(script.rosters)
        for team_id in (record.team_a_id, record.team_b_id):
            store.save_players(rosters.roster_for(team_id))
        kwargs.setdefault("advancement", store)
        return LiveMatchRuntime.create(
            record,
            store,
            store,
            config=config_from_mapping(script.config, base=script.match_format),
            first_raiding_team=TeamSide(script.first_raiding_team),
            random_source=seeded_random(self.seed),
            root=root,
            **kwargs,
        )

    def run(self, runtime: LiveMatchRuntime) -> list[ActionResult]:
        return [
            runtime.handle_action(ActionRequest(make_id("req"), action.action_type, action.payload))
            for action in self.actions
        ]

    def replay(self, root: Path) -> tuple[dict[str, Any], dict[str, Any]]:
        runtime_a = self.build_runtime(root / "replay_a")
        runtime_b = self.build_runtime(root / "replay_b")
        self.run(runtime_a)
        self.run(runtime_b)
        return self.fingerprint(runtime_a), self.fingerprint(runtime_b)

    @staticmethod
    def fingerprint(runtime: LiveMatchRuntime) -> dict[str, Any]:
        board = runtime.scoreboard()
        events = runtime.persistence.list_raid_events(runtime.state.match_id) if isinstance(runtime.persistence, MatchStore) else []
        return {
            "scoreboard": board,
            "raids": [
                (e["raid_number"], e["raider_id"], e["raiding_points"], e["defending_points"], e["all_out_points"], e["outcome_code"])
                for e in events
            ],
        }
