from __future__ import annotations

from dataclasses import asdict
from typing import Any

from raidline.contracts import MatchState, TeamSide
from raidline.scoring.clock import format_clock
from raidline.scoring.history import can_redo, can_undo
from raidline.scoring.machine import shootout_partial


def _team_view(state: MatchState, side: TeamSide) -> dict[str, Any]:
    team = state.team(side)
    return {
        "team_id": team.team_id,
        "score": state.score(side),
        "active": list(team.roster.active),
        "bench": list(team.roster.bench),
        "out": list(state.out_players(side)),
        "on_court": len(state.active_players(side)),
        "empty_raid_streak": team.tally.empty_raid_streak,
        "do_or_die": state.is_do_or_die(side),
        "timeouts_remaining": max(state.config.max_timeouts - team.timeouts_used, 0),
        "last_raids": list(team.tally.recent_outcomes),
        "stats": asdict(team.tally.stats) | {"total_points": team.tally.stats.total_points},
    }


def build_scoreboard(state: MatchState) -> dict[str, Any]:
    clock = state.clock
    board: dict[str, Any] = {
        "match_id": state.match_id,
        "status": state.status.value,
        "phase": state.phase.value,
        "half": state.current_half,
        "raiding_team": state.raiding_team.value,
        "raid_phase": state.raid_phase.value,
        "selected_raider": state.selected_raider,
        "match_clock": format_clock(clock.match_remaining),
        "raid_clock": format_clock(clock.raid_remaining),
        "interval_clock": format_clock(clock.interval_remaining),
        "paused": clock.paused,
        "timeout": {"owner": clock.timeout_owner, "remaining": clock.timeout_remaining} if clock.timeout_active else None,
        "team_a": _team_view(state, TeamSide.A),
        "team_b": _team_view(state, TeamSide.B),
        "can_undo": can_undo(state),
        "can_redo": can_redo(state),
        "half_summaries": [asdict(s) for s in state.half_summaries],
        "winner": state.team(state.winner).team_id if state.winner else None,
    }
    if state.tie_breaker is not None:
        board["tie_breaker"] = shootout_partial(state.tie_breaker)
    return board
