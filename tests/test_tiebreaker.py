from __future__ import annotations

from dataclasses import replace

import pytest

from raidline.contracts import EventType, MatchPhase, MatchStatus, TeamSide
from raidline.core import InvalidRaidAction, InvalidRaiderState, InvalidTieBreakerSetup, MatchNotLive, PlayerNotFound
from raidline.scoring import decide_first_raiding_team, end_match, scheduled_raider, setup_tie_breaker, submit_shootout_raid
from raidline.scoring.tiebreaker import golden_raid
from tests.helpers import FixedChoice, live_match, of_type, raid

RAIDERS_A = ["A1", "A2", "A3", "A4", "A5"]
RAIDERS_B = ["B1", "B2", "B3", "B4", "B5"]


def level_match(**kwargs):
    return end_match(live_match(**kwargs)).state


def shootout(first=TeamSide.A, **kwargs):
    return setup_tie_breaker(level_match(**kwargs), RAIDERS_A, RAIDERS_B, first).state


def play(state, points_a, points_b, rng=None):
    """Play the ten scheduled raids; each entry is raid points or "out"."""
    rng = rng or FixedChoice(0)
    events = []
    plan = {TeamSide.A: list(points_a), TeamSide.B: list(points_b)}
    while state.tie_breaker is not None and state.tie_breaker.winner is None:
        side = TeamSide.A if scheduled_raider(state.tie_breaker).startswith("A") else TeamSide.B
        outcome = plan[side].pop(0)
        action = raid(scheduled_raider(state.tie_breaker), raider_out=True) if outcome == "out" else raid(
            scheduled_raider(state.tie_breaker), touch_points=outcome
        )
        transition = submit_shootout_raid(state, action, rng)
        state = transition.state
        events.extend(transition.events)
    return state, events


def test_level_regulation_enters_tie_breaker():
    state = level_match()
    assert state.phase is MatchPhase.TIE_BREAKER
    assert state.status is MatchStatus.LIVE


def test_toss_decides_first_raiding_team():
    assert decide_first_raiding_team(TeamSide.B, "raid") is TeamSide.B
    assert decide_first_raiding_team(TeamSide.B, "defend") is TeamSide.A
    with pytest.raises(InvalidTieBreakerSetup):
        decide_first_raiding_team(TeamSide.A, "kick")


def test_raids_alternate_through_the_nominated_order():
    state = shootout(first=TeamSide.B)
    order = []
    for _ in range(4):
        raider = scheduled_raider(state.tie_breaker)
        order.append(raider)
        state = submit_shootout_raid(state, raid(raider), FixedChoice(0)).state
    assert order == ["B1", "A1", "B2", "A2"]


def test_ten_raids_decide_an_unequal_shootout():
    state, events = play(shootout(next_match_id="M5", is_team_a_winner_slot=True), [1, 1, 0, 2, 1], [1, 0, 0, 1, 1])
    tb = state.tie_breaker

    assert (tb.score_a, tb.score_b) == (5, 3)
    assert tb.raid_index == 10
    assert tb.golden_raid_team is None
    assert state.winner is TeamSide.A
    assert state.phase is MatchPhase.MATCH_ENDED
    assert of_type(events, EventType.ADVANCE_WINNER)[0].payload["winning_team_id"] == "TA"


def test_tackled_shootout_raider_scores_for_the_defence():
    state, _ = play(shootout(), ["out", 0, 0, 0, 0], [0, 0, 0, 0, 0])
    assert state.tie_breaker.score_b == 1
    assert state.tie_breaker.outcomes[0] == "W"
    assert state.winner is TeamSide.B


def test_level_shootout_goes_to_a_golden_raid():
    state, _ = play(shootout(), [1, 1, 1, 1, 1], [1, 1, 1, 1, 1], rng=FixedChoice(1))
    tb = state.tie_breaker

    assert tb.raid_index == 11
    assert tb.golden_raid_team is TeamSide.B
    assert (tb.score_a, tb.score_b) == (5, 6)
    assert tb.outcomes[-1] == "G"
    assert state.winner is TeamSide.B
    assert state.status is MatchStatus.COMPLETED


def test_shootout_raider_must_follow_the_order():
    state = shootout()
    with pytest.raises(InvalidRaiderState):
        submit_shootout_raid(state, raid("A2"), FixedChoice(0))


@pytest.mark.parametrize(
    ("raiders_a", "raiders_b", "error"),
    [
        (RAIDERS_A[:4], RAIDERS_B, InvalidTieBreakerSetup),
        (["A1", "A1", "A2", "A3", "A4"], RAIDERS_B, InvalidTieBreakerSetup),
        (RAIDERS_A, ["B1", "B2", "B3", "B4", "ZZ"], PlayerNotFound),
    ],
)
def test_invalid_nominations_are_rejected(raiders_a, raiders_b, error):
    with pytest.raises(error):
        setup_tie_breaker(level_match(), raiders_a, raiders_b, TeamSide.A)


def test_tie_breaker_needs_a_level_finish_and_a_single_setup():
    with pytest.raises(MatchNotLive):
        setup_tie_breaker(live_match(), RAIDERS_A, RAIDERS_B, TeamSide.A)

    state = shootout()
    with pytest.raises(InvalidTieBreakerSetup):
        setup_tie_breaker(state, RAIDERS_A, RAIDERS_B, TeamSide.A)


def test_golden_raid_only_after_a_level_ten():
    state = shootout()
    with pytest.raises(InvalidTieBreakerSetup):
        golden_raid(state.tie_breaker, FixedChoice(0))
    level = replace(state.tie_breaker, raid_index=10)
    assert golden_raid(level, FixedChoice(0)).winner is TeamSide.A


@pytest.mark.parametrize(
    "kwargs",
    [
        {"touch_points": -3},
        {"touch_points": 1, "defenders_out": ["B1", "B2"]},
        {"touch_points": 2, "defenders_out": ["B1", "B1"]},
        {"tackler_id": "B1"},
        {"raider_out": True, "defenders_out": ["B1"]},
    ],
)
def test_malformed_shootout_raids_are_rejected(kwargs):
    state = shootout()
    with pytest.raises(InvalidRaidAction):
        submit_shootout_raid(state, raid("A1", **kwargs), FixedChoice(0))
    assert state.tie_breaker.score_a == 0
