from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping, Sequence

from raidline.contracts import (
    ActionRequest,
    ActionType,
    AudioCue,
    EngineEvent,
    EventType,
    MatchConfig,
    MatchRecord,
    MatchState,
    RaidAction,
    RaidEvent,
    RosterEntry,
    TeamSide,
)
from raidline.core import EventBus, PersistenceFailure, make_id
from raidline.runtime import LiveMatchRuntime, StaticRosterProvider
from raidline.scoring import create_match, start_match

TEAM_A = "TA"
TEAM_B = "TB"
MATCH_ID = "M1"


def roster_entries(team_id: str, prefix: str, count: int = 9) -> list[RosterEntry]:
    return [
        RosterEntry(player_id=f"{prefix}{i}", team_id=team_id, name=f"{prefix} player {i}", jersey_number=i, starting=i <= 7)
        for i in range(1, count + 1)
    ]


def roster_provider(count_a: int = 9, count_b: int = 9) -> StaticRosterProvider:
    return StaticRosterProvider(roster_entries(TEAM_A, "A", count_a) + roster_entries(TEAM_B, "B", count_b))


def match_record(next_match_id: str | None = None, is_team_a_winner_slot: bool | None = None) -> MatchRecord:
    return MatchRecord(
        match_id=MATCH_ID,
        team_a_id=TEAM_A,
        team_b_id=TEAM_B,
        next_match_id=next_match_id,
        is_team_a_winner_slot=is_team_a_winner_slot,
    )


def new_match(
    config: MatchConfig | None = None,
    first: TeamSide = TeamSide.A,
    next_match_id: str | None = None,
    is_team_a_winner_slot: bool | None = None,
) -> MatchState:
    return create_match(match_record(next_match_id, is_team_a_winner_slot), roster_provider(), config, first)


def live_match(**kwargs: Any) -> MatchState:
    return start_match(new_match(**kwargs)).state


def with_out(state: MatchState, *player_ids: str) -> MatchState:
    return replace(state, out_queue=tuple(player_ids))


def with_streak(state: MatchState, side: TeamSide, streak: int) -> MatchState:
    team = state.team(side)
    team = replace(team, tally=replace(team.tally, empty_raid_streak=streak))
    return replace(state, team_a=team) if side is TeamSide.A else replace(state, team_b=team)


def raid(raider_id: str, **kwargs: Any) -> RaidAction:
    if "defenders_out" in kwargs:
        kwargs["defenders_out"] = tuple(kwargs["defenders_out"])
    return RaidAction(raider_id=raider_id, **kwargs)


def cues(events: Sequence[EngineEvent]) -> list[AudioCue]:
    return [e.payload["cue"] for e in events if e.event_type == EventType.AUDIO_CUE]


def of_type(events: Sequence[EngineEvent], event_type: EventType) -> list[EngineEvent]:
    return [e for e in events if e.event_type == event_type]


class FakePersistence:
    def __init__(self) -> None:
        self.events: dict[str, RaidEvent] = {}
        self.states: list[tuple[str, dict[str, Any]]] = []
        self.deleted: list[str] = []
        self.fail_writes = False
        self.reject_writes = False
        self.fail_deletes = False

    def save_event(self, raid_event: RaidEvent) -> bool:
        if self.fail_writes:
            raise PersistenceFailure("database unavailable")
        if self.reject_writes:
            return False
        self.events[raid_event.event_id] = raid_event
        return True

    def save_match_state(self, match_id: str, partial: Mapping[str, Any]) -> bool:
        if self.fail_writes:
            raise PersistenceFailure("database unavailable")
        if self.reject_writes:
            return False
        self.states.append((match_id, dict(partial)))
        return True

    def delete_event(self, event_id: str) -> None:
        if self.fail_deletes:
            raise PersistenceFailure("delete refused")
        self.deleted.append(event_id)
        self.events.pop(event_id, None)

    @property
    def last_state(self) -> dict[str, Any]:
        return self.states[-1][1]


class RecordingAudio:
    def __init__(self, muted: bool = False) -> None:
        self.muted = muted
        self.played: list[AudioCue] = []

    def play(self, cue: AudioCue) -> None:
        self.played.append(cue)


class RecordingAdvancement:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    def advance(self, next_match_id: str, slot: str, winning_team_id: str) -> None:
        self.calls.append((next_match_id, slot, winning_team_id))


class FixedChoice:
    """RandomSource stand-in that always picks the item at ``index``."""

    def __init__(self, index: int) -> None:
        self.index = index

    def choice(self, items: Sequence[Any]) -> Any:
        return items[self.index]


def make_runtime(
    root: Path | None = None,
    config: MatchConfig | None = None,
    next_match_id: str | None = None,
    is_team_a_winner_slot: bool | None = None,
    random_source: Any = None,
    event_bus: EventBus | None = None,
) -> tuple[LiveMatchRuntime, FakePersistence, RecordingAudio, RecordingAdvancement]:
    persistence = FakePersistence()
    audio = RecordingAudio()
    advancement = RecordingAdvancement()
    runtime = LiveMatchRuntime.create(
        match_record(next_match_id, is_team_a_winner_slot),
        roster_provider(),
        persistence,
        config=config,
        audio=audio,
        advancement=advancement,
        random_source=random_source,
        root=root,
        event_bus=event_bus,
    )
    return runtime, persistence, audio, advancement


def request(action_type: ActionType | str, payload: dict[str, Any] | None = None) -> ActionRequest:
    return ActionRequest(make_id("req"), action_type, payload or {})


def script_rosters() -> dict[str, list[str]]:
    return {
        TEAM_A: [f"A{i}" for i in range(1, 10)],
        TEAM_B: [f"B{i}" for i in range(1, 10)],
    }


def script_match() -> dict[str, Any]:
    return {"match_id": MATCH_ID, "team_a_id": TEAM_A, "team_b_id": TEAM_B, "next_match_id": "M2", "is_team_a_winner_slot": True}
