from __future__ import annotations

import pytest

from raidline.contracts import EventType, MatchConfig, MatchPhase, TeamSide
from raidline.core import InvalidRaiderState, MatchNotLive, NothingToRedo, NothingToUndo, RaidInFlight
from raidline.scoring import (
    build_scoreboard,
    end_match,
    redo_raid,
    start_raid,
    start_second_half,
    submit_raid,
    substitute,
    tick,
    undo_raid,
)
from tests.helpers import live_match, of_type, raid, with_out


def test_undo_restores_the_pre_raid_state():
    before = with_out(live_match(), "A5", "B6")
    transition = submit_raid(before, raid("A1", touch_points=2, defenders_out=["B1", "B2"]))
    undone = undo_raid(transition.state)
    state = undone.state

    assert (state.team_a_score, state.team_b_score) == (0, 0)
    assert state.out_queue == ("A5", "B6")
    assert state.raiding_team is TeamSide.A
    assert state.team_a.tally == before.team_a.tally
    assert state.team_b.tally == before.team_b.tally
    assert len(state.history.redo) == 1
    deletes = of_type(undone.events, EventType.DELETE_RAID)
    assert deletes[0].payload["event_id"] == transition.raid_event.event_id


def test_undo_then_redo_round_trips_the_score():
    state = live_match()
    state = submit_raid(state, raid("A1", touch_points=1, defenders_out=["B1"])).state
    state = submit_raid(state, raid("B2", raider_out=True, tackler_id="A3")).state
    resolved = state

    state = undo_raid(undo_raid(state).state).state
    assert (state.team_a_score, state.team_b_score) == (0, 0)

    first = redo_raid(state)
    state = redo_raid(first.state).state
    assert (state.team_a_score, state.team_b_score) == (resolved.team_a_score, resolved.team_b_score)
    assert state.out_queue == resolved.out_queue
    assert state.raiding_team is resolved.raiding_team
    assert state.history.redo == ()
    assert len(state.history.undo) == 2
    # redo is a fresh resolution with its own persisted event
    assert of_type(first.events, EventType.PERSIST_RAID)


def test_new_raid_discards_the_redo_stack():
    state = submit_raid(live_match(), raid("A1", bonus_point=True)).state
    state = undo_raid(state).state
    assert state.history.redo

    state = submit_raid(state, raid("A2")).state
    assert state.history.redo == ()
    with pytest.raises(NothingToRedo):
        redo_raid(state)


def test_redo_resolves_against_the_current_rosters():
    state = submit_raid(live_match(), raid("A1", touch_points=1, defenders_out=["B1"])).state
    state = undo_raid(state).state
    state = substitute(state, TeamSide.A, "A1", "A8").state

    with pytest.raises(InvalidRaiderState):
        redo_raid(state)
    assert len(state.history.redo) == 1


def test_substitution_survives_an_undo():
    state = submit_raid(live_match(), raid("A1", bonus_point=True)).state
    state = substitute(state, TeamSide.B, "B7", "B8").state
    state = undo_raid(state).state
    assert "B8" in state.team_b.roster.active
    assert state.team_a_score == 0


def test_empty_stacks_raise():
    state = live_match()
    with pytest.raises(NothingToUndo):
        undo_raid(state)
    with pytest.raises(NothingToRedo):
        redo_raid(state)


def test_history_is_locked_while_a_raid_is_in_flight():
    state = submit_raid(live_match(), raid("A1", bonus_point=True)).state
    state = start_raid(state, "B1").state
    with pytest.raises(RaidInFlight):
        undo_raid(state)


def _at_half_time():
    state = live_match(config=MatchConfig(half_duration=2))
    state = submit_raid(state, raid("A1", touch_points=1, defenders_out=["B1"])).state
    state = tick(tick(state).state).state
    assert state.phase is MatchPhase.HALF_TIME_BREAK
    return state


def test_history_is_frozen_at_half_time():
    state = _at_half_time()
    with pytest.raises(MatchNotLive):
        undo_raid(state)
    assert not build_scoreboard(state)["can_undo"]


def test_second_half_raid_round_trips_through_undo_and_redo():
    state = start_second_half(_at_half_time()).state
    state = submit_raid(state, raid("B2", touch_points=1, defenders_out=["A1"])).state
    resolved = state

    state = undo_raid(state).state
    assert state.team_b_score == 0
    state = redo_raid(state).state
    assert (state.team_a_score, state.team_b_score) == (resolved.team_a_score, resolved.team_b_score)
    assert state.out_queue == resolved.out_queue
    assert state.raiding_team is resolved.raiding_team


def test_first_half_raids_cannot_be_undone_in_the_second_half():
    state = start_second_half(_at_half_time()).state
    assert build_scoreboard(state)["can_undo"] is False
    with pytest.raises(MatchNotLive):
        undo_raid(state)
    assert state.raiding_team is TeamSide.B
    assert state.team_a.tally.empty_raid_streak == 0
    assert state.team_a_score == 1


def test_undo_keeps_an_out_slot_out_after_a_substitution():
    state = submit_raid(live_match(), raid("A1", touch_points=1, defenders_out=["B1"])).state
    state = submit_raid(state, raid("B2", bonus_point=True)).state
    state = substitute(state, TeamSide.B, "B1", "B8").state
    assert state.out_queue == ("B8",)

    state = undo_raid(state).state
    assert state.out_queue == ("B8",)
    assert len(state.active_players(TeamSide.B)) == 6
    assert "B1" in state.team_b.roster.bench


def test_history_is_frozen_after_the_match():
    state = submit_raid(live_match(), raid("A1", bonus_point=True)).state
    state = end_match(state).state
    with pytest.raises(MatchNotLive):
        undo_raid(state)
