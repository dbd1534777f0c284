from __future__ import annotations

from dataclasses import replace

from raidline.contracts import MatchStatus, MatchState, RaidPhase, Roster, TeamSide
from raidline.core import MatchNotLive, PlayerNotFound, RaidInFlight
from raidline.scoring import effects
from raidline.scoring.models import Transition


def swap_slot(
    roster: Roster,
    out_queue: tuple[str, ...],
    active_player_id: str,
    bench_player_id: str,
    team_id: str,
) -> tuple[Roster, tuple[str, ...]]:
    """Swap an on-court slot with a bench player.

    Out status belongs to the slot: if the outgoing player was out, the
    incoming player takes their exact place in the out queue so revival
    order is unchanged.
    """
    if active_player_id not in roster.active:
        raise PlayerNotFound(active_player_id, team_id)
    if bench_player_id not in roster.bench:
        raise PlayerNotFound(bench_player_id, team_id)

    active = tuple(bench_player_id if p == active_player_id else p for p in roster.active)
    bench = tuple(active_player_id if p == bench_player_id else p for p in roster.bench)
    queue = tuple(bench_player_id if p == active_player_id else p for p in out_queue)
    return Roster(active=active, bench=bench), queue


def substitute(state: MatchState, side: TeamSide, active_player_id: str, bench_player_id: str) -> Transition:
    if state.status in (MatchStatus.COMPLETED, MatchStatus.LOCKED):
        raise MatchNotLive(f"match {state.match_id} is {state.status.value}; rosters are read-only")
    if state.raid_phase is RaidPhase.RAIDING:
        raise RaidInFlight("substitutions are not allowed while a raid is in flight")

    team = state.team(side)
    roster, out_queue = swap_slot(team.roster, state.out_queue, active_player_id, bench_player_id, team.team_id)
    team = replace(team, roster=roster)
    next_state = replace(
        state,
        team_a=team if side is TeamSide.A else state.team_a,
        team_b=team if side is TeamSide.B else state.team_b,
        out_queue=out_queue,
    )
    event = effects.save_state(
        next_state,
        substitution={"team_id": team.team_id, "out": active_player_id, "in": bench_player_id},
    )
    return Transition(next_state, [event])
