from .clock import format_clock, tick_clocks
from .history import redo, undo
from .machine import (
    build_roster,
    call_official_timeout,
    call_timeout,
    close_half,
    create_match,
    end_match,
    end_timeout,
    lock_match,
    pause_match,
    redo_raid,
    resume_match,
    setup_tie_breaker,
    start_match,
    start_raid,
    start_second_half,
    stop_raid,
    submit_raid,
    submit_shootout_raid,
    tick,
    undo_raid,
)
from .models import RaidResolution, Transition
from .resolver import RaidResolver, resolve_raid
from .scoreboard import build_scoreboard
from .substitution import substitute, swap_slot
from .tiebreaker import decide_first_raiding_team, scheduled_raider

__all__ = [
    "RaidResolution",
    "RaidResolver",
    "Transition",
    "build_roster",
    "build_scoreboard",
    "call_official_timeout",
    "call_timeout",
    "close_half",
    "create_match",
    "decide_first_raiding_team",
    "end_match",
    "end_timeout",
    "format_clock",
    "lock_match",
    "pause_match",
    "redo",
    "redo_raid",
    "resolve_raid",
    "resume_match",
    "scheduled_raider",
    "setup_tie_breaker",
    "start_match",
    "start_raid",
    "start_second_half",
    "stop_raid",
    "submit_raid",
    "submit_shootout_raid",
    "substitute",
    "swap_slot",
    "tick",
    "tick_clocks",
    "undo",
]
