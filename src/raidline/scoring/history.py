from __future__ import annotations

from dataclasses import replace

from raidline.contracts import HistoryStack, MatchPhase, MatchSnapshot, MatchState, RaidPhase
from raidline.core import MatchNotLive, NothingToRedo, NothingToUndo, RaidInFlight
from raidline.scoring import effects
from raidline.scoring.models import RaidResolution, Transition
from raidline.scoring.resolver import RaidResolver

UNDOABLE_PHASES = frozenset({MatchPhase.LIVE_HALF_1, MatchPhase.LIVE_HALF_2})


def push(history: HistoryStack, snapshot: MatchSnapshot, *, from_redo: bool = False) -> HistoryStack:
    # a fresh forward raid discards whatever could have been redone
    redo = history.redo if from_redo else ()
    return HistoryStack(undo=history.undo + (snapshot,), redo=redo)


def record(resolution: RaidResolution, *, from_redo: bool = False) -> MatchState:
    state = resolution.state
    history = state.history
    if from_redo:
        history = replace(history, redo=history.redo[:-1])
    return replace(state, history=push(history, resolution.snapshot, from_redo=from_redo))


def can_undo(state: MatchState) -> bool:
    return _rewindable(state, state.history.undo)


def can_redo(state: MatchState) -> bool:
    return _rewindable(state, state.history.redo)


def _rewindable(state: MatchState, stack: tuple[MatchSnapshot, ...]) -> bool:
    return (
        state.phase in UNDOABLE_PHASES
        and state.raid_phase is RaidPhase.IDLE
        and bool(stack)
        and stack[-1].half == state.current_half
    )


def _ensure_can_rewind(state: MatchState, snapshot: MatchSnapshot | None) -> None:
    if state.phase not in UNDOABLE_PHASES:
        raise MatchNotLive(f"history is frozen while the match is {state.phase.value}")
    if state.raid_phase is RaidPhase.RAIDING:
        raise RaidInFlight("stop or resolve the current raid before changing history")
    if snapshot is not None and snapshot.half != state.current_half:
        raise MatchNotLive(f"raids from half {snapshot.half} cannot be changed during half {state.current_half}")


def _restore_out_queue(state: MatchState, snapshot: MatchSnapshot) -> tuple[str, ...]:
    """Map the pre-raid out queue onto whoever holds each slot now."""
    current: dict[str, str] = {}
    for before, team in zip(snapshot.slots_before, (state.team_a, state.team_b)):
        for index, player_id in enumerate(before):
            if index < len(team.roster.active):
                current[player_id] = team.roster.active[index]
    return tuple(current.get(p, p) for p in snapshot.out_before)


def undo(state: MatchState) -> Transition:
    _ensure_can_rewind(state, state.history.undo[-1] if state.history.undo else None)
    if not state.history.undo:
        raise NothingToUndo("no resolved raid to undo")

    snapshot = state.history.undo[-1]
    tally_a, tally_b = snapshot.tallies_before
    score_a, score_b = snapshot.score_before
    restored = replace(
        state,
        team_a=replace(state.team_a, tally=tally_a),
        team_b=replace(state.team_b, tally=tally_b),
        team_a_score=score_a,
        team_b_score=score_b,
        out_queue=_restore_out_queue(state, snapshot),
        raiding_team=snapshot.raiding_team,
        raid_number=max(state.raid_number - 1, 0),
        history=HistoryStack(undo=state.history.undo[:-1], redo=state.history.redo + (snapshot,)),
    )
    events = [effects.delete_raid(state.match_id, snapshot.event_id), effects.save_state(restored)]
    return Transition(restored, events)


def redo(state: MatchState, resolver: RaidResolver | None = None) -> Transition:
    """Re-apply the most recently undone raid as a fresh resolution.

    The stored action is run through the resolver against the current
    rosters, so super tackle, all-out and do-or-die are recomputed; a
    substitution made since the undo can legitimately change the outcome.
    """
    _ensure_can_rewind(state, state.history.redo[-1] if state.history.redo else None)
    if not state.history.redo:
        raise NothingToRedo("no undone raid to redo")

    snapshot = state.history.redo[-1]
    resolution = (resolver or RaidResolver()).resolve(state, snapshot.action)
    return Transition(record(resolution, from_redo=True), resolution.events, resolution.raid_event)
