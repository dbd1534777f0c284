from __future__ import annotations

from pathlib import Path

from raidline.contracts import ActionType, AudioCue, EventType, MatchConfig
from raidline.core import EventBus
from raidline.scoring import effects
from tests.helpers import FixedChoice, make_runtime, request, with_out


def _start(runtime):
    result = runtime.handle_action(request(ActionType.START_MATCH))
    assert result.success
    return result


def test_live_raid_flow_persists_and_plays_cues():
    runtime, persistence, audio, _ = make_runtime()
    assert len(persistence.states) == 1
    _start(runtime)

    started = runtime.handle_action(request(ActionType.START_RAID, {"raider_id": "A1"}))
    assert started.success
    resolved = runtime.handle_action(
        request(ActionType.RESOLVE_RAID, {"raider_id": "A1", "touch_points": 1, "defenders_out": ["B1"]})
    )

    assert resolved.success
    assert resolved.data["raid_event"]["raiding_points"] == 1
    assert resolved.data["scoreboard"]["team_a"]["score"] == 1
    assert list(persistence.events) == [resolved.data["raid_event"]["event_id"]]
    assert persistence.last_state["team_a_score"] == 1
    assert audio.played == [AudioCue.BUZZER, AudioCue.RAID_START, AudioCue.SUCCESS]
    assert runtime.event_bus.emitted_count(EventType.PERSIST_RAID) == 1


def test_actions_can_be_named_by_string():
    runtime, _, _, _ = make_runtime()
    assert runtime.handle_action(request("start_match")).success
    assert runtime.state.status.value == "live"


def test_unknown_action_is_reported():
    runtime, _, _, _ = make_runtime()
    result = runtime.handle_action(request("fly_to_the_moon"))
    assert not result.success
    assert "Unsupported action" in result.message


def test_rejections_carry_the_error_name():
    runtime, _, _, _ = make_runtime()
    _start(runtime)
    result = runtime.handle_action(request(ActionType.START_RAID, {"raider_id": "A8"}))
    assert not result.success
    assert result.data["error"] == "InvalidRaiderState"
    assert not runtime.halted


def test_malformed_payload_is_rejected():
    runtime, _, _, _ = make_runtime()
    _start(runtime)
    result = runtime.handle_action(request(ActionType.RESOLVE_RAID, {"touch_points": 1}))
    assert not result.success
    assert result.data["error"] == "InvalidPayload"


def test_failed_writes_are_reported_and_queued_until_flushed():
    runtime, persistence, _, _ = make_runtime()
    _start(runtime)
    persistence.fail_writes = True

    result = runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1", "bonus_point": True}))
    assert result.success
    assert len(result.warnings) == 2
    assert runtime.state.team_a_score == 1
    assert runtime.scoreboard()["pending_writes"] == 2

    still_down = runtime.handle_action(request(ActionType.FLUSH_PENDING))
    assert still_down.data == {"flushed": 0, "pending": 2}

    persistence.fail_writes = False
    flushed = runtime.handle_action(request(ActionType.FLUSH_PENDING))
    assert flushed.data == {"flushed": 2, "pending": 0}
    assert len(persistence.events) == 1


def test_false_acknowledgement_is_treated_as_a_failed_write():
    runtime, persistence, _, _ = make_runtime()
    _start(runtime)
    persistence.reject_writes = True
    result = runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1"}))
    assert result.success
    assert len(runtime.pending) == 2


def test_undoing_an_unsaved_raid_drops_it_from_the_queue():
    runtime, persistence, _, _ = make_runtime()
    _start(runtime)
    persistence.fail_writes = True
    runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1", "bonus_point": True}))
    persistence.fail_writes = False

    undone = runtime.handle_action(request(ActionType.UNDO))
    assert undone.success
    assert persistence.deleted == []
    assert [e.event_type for e in runtime.pending] == [EventType.SAVE_MATCH_STATE]


def test_failed_deletion_on_undo_is_a_warning():
    runtime, persistence, _, _ = make_runtime()
    _start(runtime)
    runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1", "bonus_point": True}))
    persistence.fail_deletes = True

    undone = runtime.handle_action(request(ActionType.UNDO))
    assert undone.success
    assert runtime.state.team_a_score == 0
    assert any("could not be deleted" in w for w in undone.warnings)


def test_undo_and_redo_through_the_runtime():
    runtime, persistence, _, _ = make_runtime()
    _start(runtime)
    first = runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1", "bonus_point": True}))
    runtime.handle_action(request(ActionType.UNDO))
    assert persistence.deleted == [first.data["raid_event"]["event_id"]]

    redone = runtime.handle_action(request(ActionType.REDO))
    assert redone.success
    assert runtime.state.team_a_score == 1
    assert redone.data["raid_event"]["event_id"] != first.data["raid_event"]["event_id"]
    assert not runtime.handle_action(request(ActionType.REDO)).success


def test_muted_audio_is_not_played():
    runtime, _, audio, _ = make_runtime()
    muted = runtime.handle_action(request(ActionType.SET_MUTED, {"muted": True}))
    assert muted.success and audio.muted
    _start(runtime)
    runtime.handle_action(request(ActionType.START_RAID, {"raider_id": "A1"}))
    assert audio.played == []


def test_ticks_advance_the_clock():
    runtime, _, _, _ = make_runtime()
    _start(runtime)
    result = runtime.handle_action(request(ActionType.TICK, {"seconds": 5}))
    assert result.data["scoreboard"]["match_clock"] == "19:55"


def test_substitution_and_timeouts_accept_side_or_team_id():
    runtime, _, _, _ = make_runtime()
    _start(runtime)
    assert runtime.handle_action(request(ActionType.SUBSTITUTE, {"team": "TB", "player_out": "B1", "player_in": "B8"})).success
    assert "B8" in runtime.state.team_b.roster.active

    timeout = runtime.handle_action(request(ActionType.CALL_TIMEOUT, {"team": "A"}))
    assert timeout.success
    board = timeout.data["scoreboard"]
    assert board["team_a"]["timeouts_remaining"] == 1
    assert board["timeout"] == {"owner": "A", "remaining": 60}
    assert runtime.handle_action(request(ActionType.END_TIMEOUT)).success

    unknown = runtime.handle_action(request(ActionType.CALL_TIMEOUT, {"team": "TZ"}))
    assert not unknown.success


def test_winner_is_advanced_exactly_once():
    runtime, _, _, advancement = make_runtime(next_match_id="M7", is_team_a_winner_slot=True)
    _start(runtime)
    runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1", "bonus_point": True}))
    ended = runtime.handle_action(request(ActionType.END_MATCH))
    assert ended.success
    assert advancement.calls == [("M7", "team_a", "TA")]

    runtime._dispatch([effects.advance_winner(runtime.state)])
    assert len(advancement.calls) == 1

    assert runtime.handle_action(request(ActionType.LOCK_MATCH)).success
    assert runtime.state.status.value == "locked"
    assert not runtime.handle_action(request(ActionType.END_MATCH)).success


def test_tie_breaker_through_the_runtime():
    runtime, _, _, advancement = make_runtime(
        next_match_id="M7", is_team_a_winner_slot=False, random_source=FixedChoice(0)
    )
    _start(runtime)
    assert runtime.handle_action(request(ActionType.END_MATCH)).success
    setup = runtime.handle_action(
        request(
            ActionType.SETUP_TIE_BREAKER,
            {
                "raiders_a": ["A1", "A2", "A3", "A4", "A5"],
                "raiders_b": ["B1", "B2", "B3", "B4", "B5"],
                "toss_winner": "TB",
                "choice": "defend",
            },
        )
    )
    assert setup.success
    assert runtime.state.tie_breaker.first_raiding_team.value == "A"

    for i in range(5):
        for raider in (f"A{i + 1}", f"B{i + 1}"):
            result = runtime.handle_action(request(ActionType.SHOOTOUT_RAID, {"raider_id": raider}))
            assert result.success
    assert runtime.state.tie_breaker.golden_raid_team.value == "A"
    assert advancement.calls == [("M7", "team_b", "TA")]
    assert runtime.scoreboard()["tie_breaker"]["outcomes"][-1] == "G"


def test_integrity_failure_halts_the_runtime(tmp_path: Path):
    runtime, _, _, _ = make_runtime(root=tmp_path / "runtime")
    _start(runtime)
    runtime.state = with_out(runtime.state, "ZZ")

    result = runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1"}))
    assert not result.success
    assert runtime.halted
    assert Path(result.data["forensic_path"]).exists()

    refused = runtime.handle_action(request(ActionType.GET_SCOREBOARD))
    assert not refused.success
    assert "halted" in refused.message


def test_unexpected_collaborator_error_hard_stops(tmp_path: Path):
    runtime, _, audio, _ = make_runtime(root=tmp_path / "runtime")

    def broken(cue):
        raise RuntimeError("sound card gone")

    audio.play = broken
    result = runtime.handle_action(request(ActionType.START_MATCH))
    assert not result.success
    assert runtime.halted
    assert "sound card gone" in result.message


def test_scoreboard_action_reports_the_live_board():
    runtime, _, _, _ = make_runtime(config=MatchConfig(half_duration=600))
    _start(runtime)
    board = runtime.handle_action(request(ActionType.GET_SCOREBOARD)).data
    assert board["match_clock"] == "10:00"
    assert board["team_a"]["on_court"] == 7
    assert board["team_b"]["bench"] == ["B8", "B9"]
    assert board["halted"] is False


def test_event_bus_observers_see_engine_events_by_type():
    bus = EventBus()
    raids, everything = [], []
    bus.subscribe(raids.append, EventType.PERSIST_RAID, EventType.DELETE_RAID)
    bus.subscribe(everything.append)
    runtime, _, _, _ = make_runtime(event_bus=bus)
    _start(runtime)
    runtime.handle_action(request(ActionType.RESOLVE_RAID, {"raider_id": "A1", "bonus_point": True}))
    runtime.handle_action(request(ActionType.UNDO))

    assert [e.event_type for e in raids] == [EventType.PERSIST_RAID, EventType.DELETE_RAID]
    assert raids[0].payload["raid_event"].raider_id == "A1"
    assert len(everything) == bus.emitted_count()
    assert bus.emitted_count(EventType.AUDIO_CUE) == 2
    assert bus.summary()["delete_raid"] == 1
