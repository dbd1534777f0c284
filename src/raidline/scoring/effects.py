from __future__ import annotations

from dataclasses import asdict
from typing import Any

from raidline.contracts import AudioCue, EngineEvent, EventType, MatchState, RaidEvent


def audio(cue: AudioCue) -> EngineEvent:
    return EngineEvent(EventType.AUDIO_CUE, {"cue": cue})


def persist_raid(raid_event: RaidEvent) -> EngineEvent:
    return EngineEvent(EventType.PERSIST_RAID, {"raid_event": raid_event})


def delete_raid(match_id: str, event_id: str) -> EngineEvent:
    return EngineEvent(EventType.DELETE_RAID, {"match_id": match_id, "event_id": event_id})


def match_state_partial(state: MatchState) -> dict[str, Any]:
    return {
        "team_a_score": state.team_a_score,
        "team_b_score": state.team_b_score,
        "current_half": state.current_half,
        "active_team": state.raiding_team.value,
        "out_player_ids": sorted(state.out_player_ids),
        "status": state.status.value,
        "phase": state.phase.value,
        "current_timer": state.clock.match_remaining,
        "is_timer_running": state.clock.match_running and not state.clock.paused,
    }


def save_state(state: MatchState, **extra: Any) -> EngineEvent:
    partial = match_state_partial(state)
    partial.update(extra)
    return EngineEvent(EventType.SAVE_MATCH_STATE, {"match_id": state.match_id, "partial": partial})


def save_timer(state: MatchState) -> EngineEvent:
    return EngineEvent(
        EventType.SAVE_MATCH_STATE,
        {
            "match_id": state.match_id,
            "partial": {
                "current_timer": state.clock.match_remaining,
                "is_timer_running": state.clock.match_running and not state.clock.paused,
            },
        },
    )


def advance_winner(state: MatchState) -> EngineEvent | None:
    record = state.record
    if state.winner is None or record.next_match_id is None:
        return None
    slot = "team_a" if record.is_team_a_winner_slot else "team_b"
    return EngineEvent(
        EventType.ADVANCE_WINNER,
        {
            "next_match_id": record.next_match_id,
            "slot": slot,
            "winning_team_id": state.team(state.winner).team_id,
        },
    )


def raid_event_row(raid_event: RaidEvent) -> dict[str, Any]:
    row = asdict(raid_event)
    row["defenders_out"] = list(raid_event.defenders_out)
    row["revived"] = list(raid_event.revived)
    return row
