from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence


class TeamSide(str, Enum):
    A = "A"
    B = "B"

    @property
    def other(self) -> TeamSide:
        return TeamSide.B if self is TeamSide.A else TeamSide.A


class MatchStatus(str, Enum):
    NOT_STARTED = "not_started"
    LIVE = "live"
    HALF_TIME = "half_time"
    COMPLETED = "completed"
    LOCKED = "locked"


class MatchPhase(str, Enum):
    NOT_STARTED = "not_started"
    LIVE_HALF_1 = "live_half_1"
    COMPLETING_RAID = "completing_raid"
    HALF_TIME_BREAK = "half_time_break"
    LIVE_HALF_2 = "live_half_2"
    TIE_BREAKER = "tie_breaker"
    MATCH_ENDED = "match_ended"


class RaidPhase(str, Enum):
    IDLE = "idle"
    RAIDING = "raiding"


class RaidOutcome(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    EMPTY = "empty"


class AudioCue(str, Enum):
    TICK = "tick"
    BUZZER = "buzzer"
    SUCCESS = "success"
    DOD_BUZZER = "dod_buzzer"
    RAID_START = "raid_start"


class EventType(str, Enum):
    PERSIST_RAID = "persist_raid"
    DELETE_RAID = "delete_raid"
    SAVE_MATCH_STATE = "save_match_state"
    AUDIO_CUE = "audio_cue"
    ADVANCE_WINNER = "advance_winner"


class ActionType(str, Enum):
    START_MATCH = "start_match"
    PAUSE_MATCH = "pause_match"
    RESUME_MATCH = "resume_match"
    TICK = "tick"
    START_RAID = "start_raid"
    STOP_RAID = "stop_raid"
    RESOLVE_RAID = "resolve_raid"
    UNDO = "undo"
    REDO = "redo"
    SUBSTITUTE = "substitute"
    CALL_TIMEOUT = "call_timeout"
    CALL_OFFICIAL_TIMEOUT = "call_official_timeout"
    END_TIMEOUT = "end_timeout"
    START_SECOND_HALF = "start_second_half"
    SETUP_TIE_BREAKER = "setup_tie_breaker"
    SHOOTOUT_RAID = "shootout_raid"
    END_MATCH = "end_match"
    LOCK_MATCH = "lock_match"
    SET_MUTED = "set_muted"
    FLUSH_PENDING = "flush_pending"
    GET_SCOREBOARD = "get_scoreboard"


OFFICIAL_TIMEOUT = "official"
ACTIVE_SLOTS = 7
RECENT_OUTCOME_WINDOW = 5


class RandomSource(Protocol):
    def choice(self, items: Sequence[Any]) -> Any: ...


@dataclass(frozen=True, slots=True)
class RosterEntry:
    player_id: str
    team_id: str
    name: str = ""
    jersey_number: int | None = None
    starting: bool = True


@dataclass(frozen=True, slots=True)
class Roster:
    active: tuple[str, ...]
    bench: tuple[str, ...] = ()

    def __contains__(self, player_id: object) -> bool:
        return player_id in self.active or player_id in self.bench

    @property
    def all_ids(self) -> tuple[str, ...]:
        return self.active + self.bench


@dataclass(frozen=True, slots=True)
class MatchRecord:
    match_id: str
    team_a_id: str
    team_b_id: str
    next_match_id: str | None = None
    is_team_a_winner_slot: bool | None = None


@dataclass(frozen=True, slots=True)
class RaidAction:
    raider_id: str
    touch_points: int = 0
    bonus_point: bool = False
    raider_out: bool = False
    defenders_out: tuple[str, ...] = ()
    tackler_id: str | None = None
    outcome: RaidOutcome = RaidOutcome.SUCCESS

    @property
    def raid_points(self) -> int:
        return self.touch_points + (1 if self.bonus_point else 0)

    @property
    def is_empty(self) -> bool:
        return self.raid_points == 0 and not self.raider_out

    def to_payload(self) -> dict[str, Any]:
        return {
            "raider_id": self.raider_id,
            "touch_points": self.touch_points,
            "bonus_point": self.bonus_point,
            "raider_out": self.raider_out,
            "defenders_out": list(self.defenders_out),
            "tackler_id": self.tackler_id,
            "outcome": self.outcome.value,
        }

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> RaidAction:
        return RaidAction(
            raider_id=str(payload["raider_id"]),
            touch_points=int(payload.get("touch_points", 0)),
            bonus_point=bool(payload.get("bonus_point", False)),
            raider_out=bool(payload.get("raider_out", False)),
            defenders_out=tuple(str(p) for p in payload.get("defenders_out", ())),
            tackler_id=payload.get("tackler_id"),
            outcome=RaidOutcome(payload.get("outcome", RaidOutcome.SUCCESS.value)),
        )


@dataclass(frozen=True, slots=True)
class TeamStats:
    raid_points: int = 0
    tackle_points: int = 0
    bonus_points: int = 0
    all_out_points: int = 0
    raids: int = 0
    successful_raids: int = 0
    empty_raids: int = 0
    super_tackles: int = 0
    do_or_die_raids: int = 0

    @property
    def total_points(self) -> int:
        return self.raid_points + self.tackle_points + self.bonus_points + self.all_out_points


@dataclass(frozen=True, slots=True)
class TeamTally:
    """Scoring-derived per-team fields; restored as a unit on undo."""

    empty_raid_streak: int = 0
    stats: TeamStats = field(default_factory=TeamStats)
    recent_outcomes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TeamState:
    team_id: str
    roster: Roster
    tally: TeamTally = field(default_factory=TeamTally)
    timeouts_used: int = 0


@dataclass(frozen=True, slots=True)
class ClockState:
    match_remaining: int
    match_running: bool = False
    raid_remaining: int = 0
    raid_running: bool = False
    timeout_remaining: int = 0
    timeout_owner: str | None = None
    interval_remaining: int = 0
    paused: bool = False
    frozen: bool = False
    ticks: int = 0

    @property
    def timeout_active(self) -> bool:
        return self.timeout_owner is not None


@dataclass(frozen=True, slots=True)
class HalfSummary:
    half: int
    team_a_score: int
    team_b_score: int
    team_a_raids: int
    team_b_raids: int


@dataclass(frozen=True, slots=True)
class MatchSnapshot:
    action: RaidAction
    raiding_team: TeamSide
    score_before: tuple[int, int]
    out_before: tuple[str, ...]
    is_all_out: bool
    event_id: str
    tallies_before: tuple[TeamTally, TeamTally]
    half: int = 1
    # on-court slot order per team; out status follows the slot through later substitutions
    slots_before: tuple[tuple[str, ...], tuple[str, ...]] = ((), ())


@dataclass(frozen=True, slots=True)
class HistoryStack:
    undo: tuple[MatchSnapshot, ...] = ()
    redo: tuple[MatchSnapshot, ...] = ()


@dataclass(frozen=True, slots=True)
class TieBreakerState:
    raiders_a: tuple[str, ...]
    raiders_b: tuple[str, ...]
    first_raiding_team: TeamSide
    raid_index: int = 0
    score_a: int = 0
    score_b: int = 0
    winner: TeamSide | None = None
    golden_raid_team: TeamSide | None = None
    outcomes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MatchConfig:
    raid_duration: int = 30
    half_duration: int = 1200
    interval_duration: int = 300
    timeout_duration: int = 60
    max_timeouts: int = 2
    sync_interval: int = 10


@dataclass(frozen=True, slots=True)
class MatchState:
    record: MatchRecord
    config: MatchConfig
    team_a: TeamState
    team_b: TeamState
    clock: ClockState
    first_raiding_team: TeamSide
    raiding_team: TeamSide
    team_a_score: int = 0
    team_b_score: int = 0
    current_half: int = 1
    out_queue: tuple[str, ...] = ()
    status: MatchStatus = MatchStatus.NOT_STARTED
    phase: MatchPhase = MatchPhase.NOT_STARTED
    raid_phase: RaidPhase = RaidPhase.IDLE
    selected_raider: str | None = None
    history: HistoryStack = field(default_factory=HistoryStack)
    half_summaries: tuple[HalfSummary, ...] = ()
    tie_breaker: TieBreakerState | None = None
    winner: TeamSide | None = None
    raid_number: int = 0

    @property
    def match_id(self) -> str:
        return self.record.match_id

    @property
    def out_player_ids(self) -> frozenset[str]:
        return frozenset(self.out_queue)

    def team(self, side: TeamSide) -> TeamState:
        return self.team_a if side is TeamSide.A else self.team_b

    def score(self, side: TeamSide) -> int:
        return self.team_a_score if side is TeamSide.A else self.team_b_score

    def side_of(self, player_id: str) -> TeamSide | None:
        if player_id in self.team_a.roster:
            return TeamSide.A
        if player_id in self.team_b.roster:
            return TeamSide.B
        return None

    def out_players(self, side: TeamSide) -> tuple[str, ...]:
        roster = self.team(side).roster
        return tuple(p for p in self.out_queue if p in roster)

    def active_players(self, side: TeamSide) -> tuple[str, ...]:
        out = self.out_player_ids
        return tuple(p for p in self.team(side).roster.active if p not in out)

    def is_do_or_die(self, side: TeamSide | None = None) -> bool:
        side = side or self.raiding_team
        return self.team(side).tally.empty_raid_streak >= 2


@dataclass(frozen=True, slots=True)
class RaidEvent:
    event_id: str
    match_id: str
    half: int
    raid_number: int
    raiding_team_id: str
    defending_team_id: str
    raider_id: str
    event_type: str
    raiding_points: int
    defending_points: int
    all_out_points: int
    is_do_or_die: bool
    is_all_out: bool
    is_super_tackle: bool
    raid_time: int
    defenders_out: tuple[str, ...]
    revived: tuple[str, ...]
    tackler_id: str | None
    outcome_code: str


@dataclass(frozen=True, slots=True)
class EngineEvent:
    event_type: EventType
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ActionRequest:
    request_id: str
    action_type: ActionType | str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ActionResult:
    request_id: str
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]


class PersistenceGateway(Protocol):
    def save_event(self, raid_event: RaidEvent) -> bool: ...

    def save_match_state(self, match_id: str, partial: Mapping[str, Any]) -> bool: ...

    def delete_event(self, event_id: str) -> None: ...


class RosterProvider(Protocol):
    def roster_for(self, team_id: str) -> list[RosterEntry]: ...


class AudioNotifier(Protocol):
    muted: bool

    def play(self, cue: AudioCue) -> None: ...


class WinnerAdvancement(Protocol):
    def advance(self, next_match_id: str, slot: str, winning_team_id: str) -> None: ...
