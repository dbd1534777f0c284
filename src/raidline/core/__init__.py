from .config import config_from_mapping, default_match_formats, validate_config
from .errors import (
    ConfigurationError,
    EngineIntegrityError,
    InsufficientRoster,
    InvalidRaidAction,
    InvalidRaiderState,
    InvalidTieBreakerSetup,
    MatchNotLive,
    NothingToRedo,
    NothingToUndo,
    PersistenceFailure,
    PlayerNotFound,
    RaidInFlight,
    RosterError,
    ScoringError,
    StateViolation,
    TimeoutActive,
    TimeoutLimitReached,
    build_forensic_artifact,
    persist_forensic_artifact,
)
from .events import EventBus
from .ids import make_id, utc_stamp
from .randomness import PythonRandomSource, match_random, seeded_random

__all__ = [
    "ConfigurationError",
    "EngineIntegrityError",
    "EventBus",
    "InsufficientRoster",
    "InvalidRaidAction",
    "InvalidRaiderState",
    "InvalidTieBreakerSetup",
    "MatchNotLive",
    "NothingToRedo",
    "NothingToUndo",
    "PersistenceFailure",
    "PlayerNotFound",
    "PythonRandomSource",
    "RaidInFlight",
    "RosterError",
    "ScoringError",
    "StateViolation",
    "TimeoutActive",
    "TimeoutLimitReached",
    "build_forensic_artifact",
    "config_from_mapping",
    "default_match_formats",
    "make_id",
    "match_random",
    "persist_forensic_artifact",
    "seeded_random",
    "utc_stamp",
    "validate_config",
]
