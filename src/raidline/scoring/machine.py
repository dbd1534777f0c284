from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any, Sequence

from raidline.contracts import (
    ACTIVE_SLOTS,
    OFFICIAL_TIMEOUT,
    AudioCue,
    ClockState,
    HalfSummary,
    MatchConfig,
    MatchPhase,
    MatchRecord,
    MatchState,
    MatchStatus,
    RaidAction,
    RaidPhase,
    RandomSource,
    Roster,
    RosterEntry,
    RosterProvider,
    TeamSide,
    TeamState,
    TieBreakerState,
)
from raidline.core import (
    InsufficientRoster,
    InvalidTieBreakerSetup,
    MatchNotLive,
    RaidInFlight,
    RosterError,
    TimeoutActive,
    TimeoutLimitReached,
    validate_config,
)
from raidline.scoring import clock as clocks
from raidline.scoring import effects, history, tiebreaker
from raidline.scoring.models import Transition
from raidline.scoring.resolver import RaidResolver, ensure_live, ensure_raider_eligible

HALF_PHASES = frozenset({MatchPhase.LIVE_HALF_1, MatchPhase.LIVE_HALF_2})


def build_roster(entries: Sequence[RosterEntry], team_id: str) -> Roster:
    players = [e for e in entries if e.team_id == team_id]
    if len(players) < ACTIVE_SLOTS:
        raise InsufficientRoster(
            f"team '{team_id}' has {len(players)} players; {ACTIVE_SLOTS} are required to start a match"
        )
    ordered = sorted(players, key=lambda e: not e.starting)
    ids = [e.player_id for e in ordered]
    if len(set(ids)) != len(ids):
        raise RosterError(f"team '{team_id}' lists a player more than once")
    return Roster(active=tuple(ids[:ACTIVE_SLOTS]), bench=tuple(ids[ACTIVE_SLOTS:]))


def create_match(
    record: MatchRecord,
    roster_provider: RosterProvider,
    config: MatchConfig | None = None,
    first_raiding_team: TeamSide = TeamSide.A,
) -> MatchState:
    config = validate_config(config or MatchConfig())
    roster_a = build_roster(roster_provider.roster_for(record.team_a_id), record.team_a_id)
    roster_b = build_roster(roster_provider.roster_for(record.team_b_id), record.team_b_id)
    shared = set(roster_a.all_ids) & set(roster_b.all_ids)
    if shared:
        raise RosterError(f"players listed on both teams: {sorted(shared)}")
    first = TeamSide(first_raiding_team)
    return MatchState(
        record=record,
        config=config,
        team_a=TeamState(team_id=record.team_a_id, roster=roster_a),
        team_b=TeamState(team_id=record.team_b_id, roster=roster_b),
        clock=ClockState(match_remaining=config.half_duration),
        first_raiding_team=first,
        raiding_team=first,
    )


def start_match(state: MatchState) -> Transition:
    if state.phase is not MatchPhase.NOT_STARTED:
        raise MatchNotLive(f"match {state.match_id} has already started")
    next_state = replace(
        state,
        status=MatchStatus.LIVE,
        phase=MatchPhase.LIVE_HALF_1,
        clock=replace(state.clock, match_running=True),
    )
    return Transition(next_state, [effects.save_state(next_state), effects.audio(AudioCue.BUZZER)])


def pause_match(state: MatchState) -> Transition:
    _ensure_half_running(state)
    next_state = replace(state, clock=replace(state.clock, match_running=False))
    return Transition(next_state, [effects.save_timer(next_state)])


def resume_match(state: MatchState) -> Transition:
    _ensure_half_running(state)
    next_state = replace(state, clock=replace(state.clock, match_running=state.clock.match_remaining > 0))
    return Transition(next_state, [effects.save_timer(next_state)])


def _ensure_half_running(state: MatchState) -> None:
    if state.status is not MatchStatus.LIVE or state.phase not in HALF_PHASES:
        raise MatchNotLive(f"match {state.match_id} is {state.phase.value}; no half is being played")


def start_raid(state: MatchState, raider_id: str) -> Transition:
    ensure_live(state)
    if state.phase is MatchPhase.COMPLETING_RAID:
        raise MatchNotLive("the half has expired; no new raid can start")
    if state.raid_phase is RaidPhase.RAIDING:
        raise RaidInFlight(f"raid by '{state.selected_raider}' is still in flight")
    if state.clock.paused:
        raise TimeoutActive("a timeout is running")
    ensure_raider_eligible(state, raider_id)
    next_state = replace(
        state,
        raid_phase=RaidPhase.RAIDING,
        selected_raider=raider_id,
        clock=clocks.start_raid_clock(state.clock, state.config),
    )
    events = [effects.audio(AudioCue.RAID_START)]
    if state.is_do_or_die():
        events.append(effects.audio(AudioCue.DOD_BUZZER))
    return Transition(next_state, events)


def stop_raid(state: MatchState) -> Transition:
    """Cancel the raid in flight; a no-op when nothing is in flight."""
    if state.raid_phase is RaidPhase.IDLE:
        return Transition(state)
    next_state = replace(
        state,
        raid_phase=RaidPhase.IDLE,
        selected_raider=None,
        clock=clocks.reset_raid_clock(state.clock),
    )
    if next_state.phase is MatchPhase.COMPLETING_RAID:
        return close_half(next_state)
    return Transition(next_state)


def submit_raid(state: MatchState, action: RaidAction, resolver: RaidResolver | None = None) -> Transition:
    resolution = (resolver or RaidResolver()).resolve(state, action)
    transition = Transition(history.record(resolution), resolution.events, resolution.raid_event)
    if transition.state.phase is MatchPhase.COMPLETING_RAID:
        return transition.then(close_half(transition.state))
    return transition


def undo_raid(state: MatchState) -> Transition:
    return history.undo(state)


def redo_raid(state: MatchState, resolver: RaidResolver | None = None) -> Transition:
    return history.redo(state, resolver)


def tick(state: MatchState) -> Transition:
    if state.status not in (MatchStatus.LIVE, MatchStatus.HALF_TIME):
        return Transition(state)
    result = clocks.tick_clocks(state.clock, state.phase)
    next_state = replace(state, clock=result.clock)
    transition = Transition(next_state, result.events)
    if result.match_expired:
        if next_state.raid_phase is RaidPhase.RAIDING:
            # the raid in flight resolves normally before the half closes
            frozen = replace(next_state, phase=MatchPhase.COMPLETING_RAID, clock=replace(next_state.clock, frozen=True))
            return Transition(frozen, transition.events + [effects.save_timer(frozen)])
        return transition.then(close_half(next_state))
    if next_state.phase in HALF_PHASES and next_state.clock.ticks % state.config.sync_interval == 0:
        transition.events.append(effects.save_timer(next_state))
    return transition


def close_half(state: MatchState) -> Transition:
    clock = replace(
        clocks.clear_timeout_clock(clocks.reset_raid_clock(state.clock)),
        match_running=False,
        frozen=False,
    )
    summary = HalfSummary(
        half=state.current_half,
        team_a_score=state.team_a_score,
        team_b_score=state.team_b_score,
        team_a_raids=state.team_a.tally.stats.raids,
        team_b_raids=state.team_b.tally.stats.raids,
    )
    closed = replace(
        state,
        clock=clock,
        raid_phase=RaidPhase.IDLE,
        selected_raider=None,
        half_summaries=state.half_summaries + (summary,),
    )
    if state.current_half == 1:
        next_state = replace(
            closed,
            phase=MatchPhase.HALF_TIME_BREAK,
            status=MatchStatus.HALF_TIME,
            clock=replace(clock, interval_remaining=state.config.interval_duration),
        )
        return Transition(next_state, [effects.save_state(next_state, half_1_summary=asdict(summary))])
    return finish_regulation(closed)


def finish_regulation(state: MatchState, allow_draw: bool = False) -> Transition:
    if state.team_a_score != state.team_b_score:
        leader = TeamSide.A if state.team_a_score > state.team_b_score else TeamSide.B
        return _complete(state, leader)
    if allow_draw:
        return _complete(state, None)
    next_state = replace(state, phase=MatchPhase.TIE_BREAKER, status=MatchStatus.LIVE)
    return Transition(next_state, [effects.save_state(next_state, tie_breaker_required=True)])


def _complete(state: MatchState, winner: TeamSide | None) -> Transition:
    next_state = replace(
        state,
        phase=MatchPhase.MATCH_ENDED,
        status=MatchStatus.COMPLETED,
        winner=winner,
        raid_phase=RaidPhase.IDLE,
        selected_raider=None,
        clock=replace(clocks.clear_timeout_clock(state.clock), match_running=False, raid_running=False),
    )
    winner_id = next_state.team(winner).team_id if winner is not None else None
    events = [effects.save_state(next_state, winner_team_id=winner_id), effects.audio(AudioCue.BUZZER)]
    advance = effects.advance_winner(next_state)
    if advance is not None:
        events.append(advance)
    return Transition(next_state, events)


def start_second_half(state: MatchState) -> Transition:
    if state.phase is not MatchPhase.HALF_TIME_BREAK:
        raise MatchNotLive(f"match {state.match_id} is {state.phase.value}; the second half starts from half time")
    next_state = replace(
        state,
        phase=MatchPhase.LIVE_HALF_2,
        status=MatchStatus.LIVE,
        current_half=2,
        raiding_team=state.first_raiding_team.other,
        team_a=_reset_streak(state.team_a),
        team_b=_reset_streak(state.team_b),
        clock=ClockState(
            match_remaining=state.config.half_duration,
            match_running=True,
            ticks=state.clock.ticks,
        ),
    )
    return Transition(next_state, [effects.save_state(next_state), effects.audio(AudioCue.BUZZER)])


def _reset_streak(team: TeamState) -> TeamState:
    return replace(team, tally=replace(team.tally, empty_raid_streak=0))


def call_timeout(state: MatchState, side: TeamSide) -> Transition:
    _ensure_half_running(state)
    team = state.team(side)
    if team.timeouts_used >= state.config.max_timeouts:
        raise TimeoutLimitReached(
            f"team '{team.team_id}' has used {team.timeouts_used}/{state.config.max_timeouts} timeouts"
        )
    if state.clock.timeout_active:
        raise TimeoutActive(f"a timeout called by '{state.clock.timeout_owner}' is already running")
    if state.raid_phase is RaidPhase.RAIDING:
        raise RaidInFlight("team timeouts can only be called between raids")
    team = replace(team, timeouts_used=team.timeouts_used + 1)
    next_state = replace(
        state,
        team_a=team if side is TeamSide.A else state.team_a,
        team_b=team if side is TeamSide.B else state.team_b,
        clock=clocks.start_timeout_clock(state.clock, state.config, side.value),
    )
    events = [
        effects.save_state(next_state, timeouts_used={team.team_id: team.timeouts_used}),
        effects.audio(AudioCue.BUZZER),
    ]
    return Transition(next_state, events)


def call_official_timeout(state: MatchState) -> Transition:
    ensure_live(state)
    if state.clock.timeout_active:
        raise TimeoutActive(f"a timeout called by '{state.clock.timeout_owner}' is already running")
    next_state = replace(state, clock=clocks.start_timeout_clock(state.clock, state.config, OFFICIAL_TIMEOUT))
    return Transition(next_state, [effects.save_timer(next_state), effects.audio(AudioCue.BUZZER)])


def end_timeout(state: MatchState) -> Transition:
    if not state.clock.timeout_active:
        return Transition(state)
    next_state = replace(state, clock=clocks.clear_timeout_clock(state.clock))
    return Transition(next_state, [effects.save_timer(next_state), effects.audio(AudioCue.BUZZER)])


def end_match(state: MatchState, allow_draw: bool = False) -> Transition:
    if state.status not in (MatchStatus.LIVE, MatchStatus.HALF_TIME):
        raise MatchNotLive(f"match {state.match_id} is {state.status.value}")
    if state.phase is MatchPhase.TIE_BREAKER:
        raise MatchNotLive("the match is level; finish the tie-breaker to end it")
    if state.raid_phase is RaidPhase.RAIDING:
        raise RaidInFlight("stop or resolve the current raid before ending the match")
    return finish_regulation(state, allow_draw=allow_draw)


def lock_match(state: MatchState) -> Transition:
    if state.phase is not MatchPhase.MATCH_ENDED:
        raise MatchNotLive(f"match {state.match_id} can only be locked once it has ended")
    next_state = replace(state, status=MatchStatus.LOCKED)
    return Transition(next_state, [effects.save_state(next_state)])


def setup_tie_breaker(
    state: MatchState,
    raiders_a: Sequence[str],
    raiders_b: Sequence[str],
    first_raiding_team: TeamSide,
) -> Transition:
    if state.phase is not MatchPhase.TIE_BREAKER:
        raise MatchNotLive("a tie-breaker is only played when regulation ends level")
    if state.tie_breaker is not None:
        raise InvalidTieBreakerSetup("the tie-breaker has already been set up")
    shootout = tiebreaker.setup_shootout(
        raiders_a,
        raiders_b,
        TeamSide(first_raiding_team),
        {
            TeamSide.A: (state.team_a.team_id, state.team_a.roster),
            TeamSide.B: (state.team_b.team_id, state.team_b.roster),
        },
    )
    next_state = replace(state, tie_breaker=shootout)
    return Transition(next_state, [effects.save_state(next_state, tie_breaker=shootout_partial(shootout))])


def submit_shootout_raid(state: MatchState, action: RaidAction, random_source: RandomSource) -> Transition:
    if state.phase is not MatchPhase.TIE_BREAKER:
        raise MatchNotLive("no tie-breaker is in progress")
    if state.tie_breaker is None:
        raise InvalidTieBreakerSetup("nominate the shootout raiders before the first raid")
    shootout = tiebreaker.record_shootout_raid(state.tie_breaker, action)
    if tiebreaker.needs_golden_raid(shootout):
        shootout = tiebreaker.golden_raid(shootout, random_source)
    next_state = replace(state, tie_breaker=shootout)
    events = [effects.save_state(next_state, tie_breaker=shootout_partial(shootout))]
    if action.raid_points or action.raider_out:
        events.append(effects.audio(AudioCue.SUCCESS))
    transition = Transition(next_state, events)
    if shootout.winner is not None:
        return transition.then(_complete(next_state, shootout.winner))
    return transition


def shootout_partial(shootout: TieBreakerState) -> dict[str, Any]:
    return {
        "raid_index": shootout.raid_index,
        "score_a": shootout.score_a,
        "score_b": shootout.score_b,
        "first_raiding_team": shootout.first_raiding_team.value,
        "winner": shootout.winner.value if shootout.winner else None,
        "golden_raid_team": shootout.golden_raid_team.value if shootout.golden_raid_team else None,
        "outcomes": list(shootout.outcomes),
    }
