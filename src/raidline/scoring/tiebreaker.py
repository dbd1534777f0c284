"""Five-raider shootout used when regulation ends level.

Regulation rules do not apply here: there is no super tackle, no revival and
no do-or-die. Ten raids alternate between the teams; if the aggregate is
still level afterwards, a golden raid decides the match by an unweighted
coin flip between the two teams.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from raidline.contracts import RaidAction, RandomSource, Roster, TeamSide, TieBreakerState
from raidline.core import InvalidRaiderState, InvalidTieBreakerSetup, PlayerNotFound
from raidline.scoring.resolver import validate_action_shape

RAIDERS_PER_TEAM = 5
SHOOTOUT_RAIDS = 10
GOLDEN_RAID_CODE = "G"


def setup_shootout(
    raiders_a: Sequence[str],
    raiders_b: Sequence[str],
    first_raiding_team: TeamSide,
    rosters: dict[TeamSide, tuple[str, Roster]],
) -> TieBreakerState:
    for side, raiders in ((TeamSide.A, raiders_a), (TeamSide.B, raiders_b)):
        team_id, roster = rosters[side]
        if len(raiders) != RAIDERS_PER_TEAM:
            raise InvalidTieBreakerSetup(
                f"team '{team_id}' nominated {len(raiders)} raiders; exactly {RAIDERS_PER_TEAM} are required"
            )
        if len(set(raiders)) != len(raiders):
            raise InvalidTieBreakerSetup(f"team '{team_id}' nominated a raider twice")
        for raider_id in raiders:
            if raider_id not in roster:
                raise PlayerNotFound(raider_id, team_id)
    return TieBreakerState(
        raiders_a=tuple(raiders_a),
        raiders_b=tuple(raiders_b),
        first_raiding_team=TeamSide(first_raiding_team),
    )


def decide_first_raiding_team(toss_winner: TeamSide, choice: str) -> TeamSide:
    if choice == "raid":
        return toss_winner
    if choice == "defend":
        return toss_winner.other
    raise InvalidTieBreakerSetup(f"toss choice must be 'raid' or 'defend', got '{choice}'")


def raiding_side(shootout: TieBreakerState) -> TeamSide:
    first = shootout.first_raiding_team
    return first if shootout.raid_index % 2 == 0 else first.other


def scheduled_raider(shootout: TieBreakerState) -> str:
    if shootout.raid_index >= SHOOTOUT_RAIDS:
        raise InvalidTieBreakerSetup("all shootout raids have been played")
    raiders = shootout.raiders_a if raiding_side(shootout) is TeamSide.A else shootout.raiders_b
    return raiders[shootout.raid_index // 2]


def record_shootout_raid(shootout: TieBreakerState, action: RaidAction) -> TieBreakerState:
    if shootout.winner is not None:
        raise InvalidTieBreakerSetup("the shootout has already been decided")
    expected = scheduled_raider(shootout)
    if action.raider_id != expected:
        raise InvalidRaiderState(f"shootout raid {shootout.raid_index + 1} belongs to '{expected}'")
    validate_action_shape(action)

    side = raiding_side(shootout)
    if action.raider_out:
        scorer, points, code = side.other, 1, "W"
    else:
        scorer, points, code = side, action.raid_points, str(action.raid_points)
    updated = replace(
        shootout,
        raid_index=shootout.raid_index + 1,
        score_a=shootout.score_a + (points if scorer is TeamSide.A else 0),
        score_b=shootout.score_b + (points if scorer is TeamSide.B else 0),
        outcomes=shootout.outcomes + (code,),
    )
    if updated.raid_index == SHOOTOUT_RAIDS and updated.score_a != updated.score_b:
        updated = replace(updated, winner=TeamSide.A if updated.score_a > updated.score_b else TeamSide.B)
    return updated


def needs_golden_raid(shootout: TieBreakerState) -> bool:
    return shootout.winner is None and shootout.raid_index >= SHOOTOUT_RAIDS


def golden_raid(shootout: TieBreakerState, random_source: RandomSource) -> TieBreakerState:
    if not needs_golden_raid(shootout):
        raise InvalidTieBreakerSetup("a golden raid is only played after a level ten-raid shootout")
    side = random_source.choice([TeamSide.A, TeamSide.B])
    return replace(
        shootout,
        raid_index=shootout.raid_index + 1,
        score_a=shootout.score_a + (1 if side is TeamSide.A else 0),
        score_b=shootout.score_b + (1 if side is TeamSide.B else 0),
        golden_raid_team=side,
        winner=side,
        outcomes=shootout.outcomes + (GOLDEN_RAID_CODE,),
    )
