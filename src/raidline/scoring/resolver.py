from __future__ import annotations

from dataclasses import dataclass, replace

from raidline.contracts import (
    RECENT_OUTCOME_WINDOW,
    AudioCue,
    EngineEvent,
    MatchPhase,
    MatchSnapshot,
    MatchState,
    MatchStatus,
    RaidAction,
    RaidEvent,
    RaidOutcome,
    RaidPhase,
    Roster,
    TeamSide,
    TeamStats,
    TeamTally,
)
from raidline.core import (
    EngineIntegrityError,
    InvalidRaidAction,
    InvalidRaiderState,
    MatchNotLive,
    RaidInFlight,
    build_forensic_artifact,
    make_id,
)
from raidline.scoring import effects
from raidline.scoring.models import RaidResolution

LIVE_PHASES = frozenset({MatchPhase.LIVE_HALF_1, MatchPhase.LIVE_HALF_2, MatchPhase.COMPLETING_RAID})
SUPER_TACKLE_THRESHOLD = 3
ALL_OUT_BONUS = 2


@dataclass(slots=True)
class _Points:
    raid: int
    tackle: int
    all_out_raiding: int
    all_out_defending: int

    @property
    def raiding_total(self) -> int:
        return self.raid + self.all_out_raiding

    @property
    def defending_total(self) -> int:
        return self.tackle + self.all_out_defending


def ensure_live(state: MatchState) -> None:
    if state.status is not MatchStatus.LIVE or state.phase not in LIVE_PHASES:
        raise MatchNotLive(
            f"match {state.match_id} is {state.status.value}/{state.phase.value}; raids require a live half"
        )


def ensure_raider_eligible(state: MatchState, raider_id: str) -> None:
    raiding = state.team(state.raiding_team)
    if raider_id not in raiding.roster.active:
        raise InvalidRaiderState(
            f"raider '{raider_id}' is not on the active roster of raiding team '{raiding.team_id}'"
        )
    if raider_id in state.out_player_ids:
        raise InvalidRaiderState(f"raider '{raider_id}' is out and cannot raid")


class RaidResolver:
    """Resolves one regulation raid into the next match state.

    The resolver is pure: it never touches collaborators and only describes
    the persistence write and audio cue it wants as returned events. Every
    rejection is raised before any new state is built, so a failed call
    leaves the caller's state untouched.
    """

    def resolve(self, state: MatchState, action: RaidAction) -> RaidResolution:
        ensure_live(state)
        if state.raid_phase is RaidPhase.RAIDING and state.selected_raider != action.raider_id:
            raise RaidInFlight(f"raid by '{state.selected_raider}' is still in flight")
        ensure_raider_eligible(state, action.raider_id)
        self._validate_action(state, action)

        raiding_side = state.raiding_team
        defending_side = raiding_side.other
        raiding = state.team(raiding_side)
        defending = state.team(defending_side)

        do_or_die = state.is_do_or_die(raiding_side)
        effective = self._effective_action(action, do_or_die)
        active_defenders = len(state.active_players(defending_side))
        super_tackle = effective.raider_out and active_defenders <= SUPER_TACKLE_THRESHOLD

        out_queue = list(state.out_queue)
        if effective.raider_out:
            out_queue.append(effective.raider_id)
        out_queue.extend(effective.defenders_out)

        all_out_side: TeamSide | None = None
        if _is_all_out(defending.roster, out_queue):
            all_out_side = defending_side
        elif effective.raider_out and _is_all_out(raiding.roster, out_queue):
            all_out_side = raiding_side

        revived: tuple[str, ...] = ()
        if all_out_side is not None:
            cleared = state.team(all_out_side).roster
            out_queue = [p for p in out_queue if p not in cleared]
        elif effective.raider_out:
            out_queue, revived = _revive(out_queue, defending.roster, 1)
        elif effective.touch_points > 0:
            out_queue, revived = _revive(out_queue, raiding.roster, effective.touch_points)

        points = _Points(
            raid=effective.raid_points,
            tackle=(2 if super_tackle else 1) if effective.raider_out else 0,
            all_out_raiding=ALL_OUT_BONUS if all_out_side is defending_side else 0,
            all_out_defending=ALL_OUT_BONUS if all_out_side is raiding_side else 0,
        )
        outcome_code = "W" if effective.raider_out else str(points.raiding_total)

        new_raiding = replace(
            raiding,
            tally=self._raiding_tally(raiding.tally, effective, points, do_or_die, outcome_code),
        )
        new_defending = replace(defending, tally=self._defending_tally(defending.tally, points, super_tackle))
        team_a, team_b = (new_raiding, new_defending) if raiding_side is TeamSide.A else (new_defending, new_raiding)
        score_a = state.team_a_score + (points.raiding_total if raiding_side is TeamSide.A else points.defending_total)
        score_b = state.team_b_score + (points.raiding_total if raiding_side is TeamSide.B else points.defending_total)

        raid_time = 0
        if state.raid_phase is RaidPhase.RAIDING:
            raid_time = state.config.raid_duration - state.clock.raid_remaining

        next_state = replace(
            state,
            team_a=team_a,
            team_b=team_b,
            team_a_score=score_a,
            team_b_score=score_b,
            out_queue=tuple(out_queue),
            raiding_team=defending_side,
            raid_phase=RaidPhase.IDLE,
            selected_raider=None,
            clock=replace(state.clock, raid_remaining=0, raid_running=False),
            raid_number=state.raid_number + 1,
        )
        self._check_integrity(next_state, effective)

        raid_event = RaidEvent(
            event_id=make_id("raid", state.match_id),
            match_id=state.match_id,
            half=state.current_half,
            raid_number=next_state.raid_number,
            raiding_team_id=raiding.team_id,
            defending_team_id=defending.team_id,
            raider_id=effective.raider_id,
            event_type=_event_type(effective),
            raiding_points=points.raid,
            defending_points=points.tackle,
            all_out_points=points.all_out_raiding + points.all_out_defending,
            is_do_or_die=do_or_die,
            is_all_out=all_out_side is not None,
            is_super_tackle=super_tackle,
            raid_time=raid_time,
            defenders_out=effective.defenders_out,
            revived=revived,
            tackler_id=effective.tackler_id,
            outcome_code=outcome_code,
        )
        snapshot = MatchSnapshot(
            action=action,
            raiding_team=raiding_side,
            score_before=(state.team_a_score, state.team_b_score),
            out_before=state.out_queue,
            is_all_out=all_out_side is not None,
            event_id=raid_event.event_id,
            tallies_before=(state.team_a.tally, state.team_b.tally),
            half=state.current_half,
            slots_before=(state.team_a.roster.active, state.team_b.roster.active),
        )
        events = [effects.persist_raid(raid_event), effects.save_state(next_state)]
        events.extend(self._audio_cues(next_state, points))
        return RaidResolution(state=next_state, raid_event=raid_event, snapshot=snapshot, events=events)

    def _validate_action(self, state: MatchState, action: RaidAction) -> None:
        validate_action_shape(action)

        defending_side = state.raiding_team.other
        defending = state.team(defending_side)
        on_court = set(state.active_players(defending_side))
        for player_id in action.defenders_out:
            if player_id not in on_court:
                raise InvalidRaidAction(
                    f"defender '{player_id}' is not an on-court player of team '{defending.team_id}'"
                )
        if action.tackler_id is not None:
            if action.tackler_id not in on_court:
                raise InvalidRaidAction(
                    f"tackler '{action.tackler_id}' is not an on-court player of team '{defending.team_id}'"
                )

    def _effective_action(self, action: RaidAction, do_or_die: bool) -> RaidAction:
        if action.raider_out:
            return replace(action, outcome=RaidOutcome.FAIL)
        if action.raid_points > 0:
            return replace(action, outcome=RaidOutcome.SUCCESS)
        if do_or_die:
            return replace(action, outcome=RaidOutcome.FAIL, raider_out=True)
        return replace(action, outcome=RaidOutcome.EMPTY)

    def _raiding_tally(
        self,
        tally: TeamTally,
        action: RaidAction,
        points: _Points,
        do_or_die: bool,
        outcome_code: str,
    ) -> TeamTally:
        if action.raid_points > 0 or do_or_die:
            streak = 0
        else:
            streak = tally.empty_raid_streak + 1
        stats = tally.stats
        stats = replace(
            stats,
            raid_points=stats.raid_points + action.touch_points,
            bonus_points=stats.bonus_points + (1 if action.bonus_point else 0),
            all_out_points=stats.all_out_points + points.all_out_raiding,
            raids=stats.raids + 1,
            successful_raids=stats.successful_raids + (1 if action.raid_points > 0 else 0),
            empty_raids=stats.empty_raids + (1 if action.is_empty else 0),
            do_or_die_raids=stats.do_or_die_raids + (1 if do_or_die else 0),
        )
        recent = (tally.recent_outcomes + (outcome_code,))[-RECENT_OUTCOME_WINDOW:]
        return TeamTally(empty_raid_streak=streak, stats=stats, recent_outcomes=recent)

    def _defending_tally(self, tally: TeamTally, points: _Points, super_tackle: bool) -> TeamTally:
        stats: TeamStats = tally.stats
        stats = replace(
            stats,
            tackle_points=stats.tackle_points + points.tackle,
            all_out_points=stats.all_out_points + points.all_out_defending,
            super_tackles=stats.super_tackles + (1 if super_tackle else 0),
        )
        return replace(tally, stats=stats)

    def _audio_cues(self, state: MatchState, points: _Points) -> list[EngineEvent]:
        cues: list[EngineEvent] = []
        if points.raiding_total or points.defending_total:
            cues.append(effects.audio(AudioCue.SUCCESS))
        if state.is_do_or_die(state.raiding_team):
            cues.append(effects.audio(AudioCue.DOD_BUZZER))
        return cues

    def _check_integrity(self, state: MatchState, action: RaidAction) -> None:
        problems: list[str] = []
        if state.team_a_score < 0 or state.team_b_score < 0:
            problems.append("negative score")
        if len(set(state.out_queue)) != len(state.out_queue):
            problems.append("player listed out twice")
        known = set(state.team_a.roster.all_ids) | set(state.team_b.roster.all_ids)
        strays = sorted(p for p in state.out_queue if p not in known)
        if strays:
            problems.append(f"out players outside both rosters: {strays}")
        if not problems:
            return
        artifact = build_forensic_artifact(
            engine_scope="raid_resolver",
            error_code="POST_RAID_INVARIANT_BROKEN",
            message="; ".join(problems),
            state_snapshot=effects.match_state_partial(state),
            context={"action": action.to_payload()},
            identifiers={"match_id": state.match_id, "raider_id": action.raider_id},
            causal_fragment=["resolve_raid", "integrity_check"],
        )
        raise EngineIntegrityError(artifact)


def validate_action_shape(action: RaidAction) -> None:
    """Checks that need no match context; shared by regulation and shootout raids."""
    if isinstance(action.touch_points, bool) or not isinstance(action.touch_points, int) or action.touch_points < 0:
        raise InvalidRaidAction(f"touch points must be a non-negative integer, got {action.touch_points!r}")
    if action.raider_out and action.raid_points > 0:
        raise InvalidRaidAction("a raid cannot both score raid points and end with the raider out")
    if action.raider_out and action.defenders_out:
        raise InvalidRaidAction("defenders cannot be put out on a raid where the raider is tackled")
    if len(action.defenders_out) > action.touch_points:
        raise InvalidRaidAction(
            f"{len(action.defenders_out)} defenders out but only {action.touch_points} touch points"
        )
    if len(set(action.defenders_out)) != len(action.defenders_out):
        raise InvalidRaidAction("defenders_out lists a player more than once")
    if action.tackler_id is not None and not action.raider_out:
        raise InvalidRaidAction("a tackler can only be credited when the raider is out")


def _is_all_out(roster: Roster, out_queue: list[str]) -> bool:
    out = set(out_queue)
    return bool(roster.active) and all(p in out for p in roster.active)


def _revive(out_queue: list[str], roster: Roster, count: int) -> tuple[list[str], tuple[str, ...]]:
    revived: list[str] = []
    remaining: list[str] = []
    for player_id in out_queue:
        if len(revived) < count and player_id in roster:
            revived.append(player_id)
        else:
            remaining.append(player_id)
    return remaining, tuple(revived)


def _event_type(action: RaidAction) -> str:
    if action.raider_out:
        return "tackle"
    if action.touch_points > 0:
        return "raid"
    if action.bonus_point:
        return "bonus"
    return "empty"


def resolve_raid(state: MatchState, action: RaidAction) -> tuple[MatchState, list[EngineEvent]]:
    resolution = RaidResolver().resolve(state, action)
    return resolution.state, resolution.events
