from .types import (
    ACTIVE_SLOTS,
    OFFICIAL_TIMEOUT,
    RECENT_OUTCOME_WINDOW,
    ActionRequest,
    ActionResult,
    ActionType,
    AudioCue,
    AudioNotifier,
    ClockState,
    EngineEvent,
    EventType,
    ForensicArtifact,
    HalfSummary,
    HistoryStack,
    MatchConfig,
    MatchPhase,
    MatchRecord,
    MatchSnapshot,
    MatchState,
    MatchStatus,
    PersistenceGateway,
    RaidAction,
    RaidEvent,
    RaidOutcome,
    RaidPhase,
    RandomSource,
    Roster,
    RosterEntry,
    RosterProvider,
    TeamSide,
    TeamState,
    TeamStats,
    TeamTally,
    TieBreakerState,
    WinnerAdvancement,
)

__all__ = [
    "ACTIVE_SLOTS",
    "OFFICIAL_TIMEOUT",
    "RECENT_OUTCOME_WINDOW",
    "ActionRequest",
    "ActionResult",
    "ActionType",
    "AudioCue",
    "AudioNotifier",
    "ClockState",
    "EngineEvent",
    "EventType",
    "ForensicArtifact",
    "HalfSummary",
    "HistoryStack",
    "MatchConfig",
    "MatchPhase",
    "MatchRecord",
    "MatchSnapshot",
    "MatchState",
    "MatchStatus",
    "PersistenceGateway",
    "RaidAction",
    "RaidEvent",
    "RaidOutcome",
    "RaidPhase",
    "RandomSource",
    "Roster",
    "RosterEntry",
    "RosterProvider",
    "TeamSide",
    "TeamState",
    "TeamStats",
    "TeamTally",
    "TieBreakerState",
    "WinnerAdvancement",
]
