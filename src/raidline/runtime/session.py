from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from raidline.contracts import (
    ActionRequest,
    ActionResult,
    ActionType,
    AudioNotifier,
    EngineEvent,
    EventType,
    ForensicArtifact,
    MatchConfig,
    MatchRecord,
    MatchState,
    PersistenceGateway,
    RaidAction,
    RandomSource,
    RosterProvider,
    TeamSide,
    WinnerAdvancement,
)
from raidline.core import (
    EngineIntegrityError,
    EventBus,
    PersistenceFailure,
    ScoringError,
    build_forensic_artifact,
    match_random,
    persist_forensic_artifact,
)
from raidline.scoring import (
    RaidResolver,
    Transition,
    build_scoreboard,
    call_official_timeout,
    call_timeout,
    create_match,
    decide_first_raiding_team,
    end_match,
    end_timeout,
    lock_match,
    pause_match,
    redo_raid,
    resume_match,
    setup_tie_breaker,
    start_match,
    start_raid,
    start_second_half,
    stop_raid,
    submit_raid,
    submit_shootout_raid,
    substitute,
    tick,
    undo_raid,
)
from raidline.scoring import effects

logger = logging.getLogger("raidline.runtime")

WRITE_EVENTS = frozenset({EventType.PERSIST_RAID, EventType.SAVE_MATCH_STATE})


class RuntimePaths:
    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def sqlite_path(self) -> Path:
        return self.root / "data" / "raidline.sqlite3"

    @property
    def duckdb_path(self) -> Path:
        return self.root / "data" / "analytics.duckdb"

    @property
    def export_dir(self) -> Path:
        return self.root / "exports"

    @property
    def forensic_dir(self) -> Path:
        return self.root / "forensics"


class LiveMatchRuntime:
    """Drives one match: dispatches actions, runs side effects, queues failed writes."""

    def __init__(
        self,
        state: MatchState,
        persistence: PersistenceGateway,
        audio: AudioNotifier | None = None,
        advancement: WinnerAdvancement | None = None,
        random_source: RandomSource | None = None,
        root: Path | None = None,
        event_bus: EventBus | None = None,
        resolver: RaidResolver | None = None,
    ) -> None:
        self.state = state
        self.persistence = persistence
        self.audio = audio
        self.advancement = advancement
        self.rand = random_source or match_random()
        self.paths = RuntimePaths(root) if root is not None else None
        self.event_bus = event_bus or EventBus()
        self.resolver = resolver or RaidResolver()

        self.pending: list[EngineEvent] = []
        self.halted = False
        self.last_forensic_path: str | None = None
        self._advanced = False

    @classmethod
    def create(
        cls,
        record: MatchRecord,
        roster_provider: RosterProvider,
        persistence: PersistenceGateway,
        config: MatchConfig | None = None,
        first_raiding_team: TeamSide = TeamSide.A,
        **kwargs: Any,
    ) -> LiveMatchRuntime:
        state = create_match(record, roster_provider, config, first_raiding_team)
        runtime = cls(state, persistence, **kwargs)
        runtime._dispatch([effects.save_state(state)])
        logger.info(f"match {record.match_id} created: {record.team_a_id} vs {record.team_b_id}")
        return runtime

    def handle_action(self, request: ActionRequest) -> ActionResult:
        if self.halted:
            return ActionResult(
                request.request_id,
                False,
                f"runtime halted after integrity failure; forensic={self.last_forensic_path}",
                {"forensic_path": self.last_forensic_path},
            )

        try:
            return self._handle_action_core(request)
        except ScoringError as exc:
            logger.info(f"{request.action_type} rejected: {exc}")
            return ActionResult(request.request_id, False, str(exc), {"error": type(exc).__name__})
        except (KeyError, TypeError, ValueError) as exc:
            return ActionResult(
                request.request_id,
                False,
                f"invalid payload for '{request.action_type}': {exc}",
                {"error": "InvalidPayload"},
            )
        except EngineIntegrityError as exc:
            self._halt(exc.artifact)
            return ActionResult(
                request.request_id,
                False,
                f"integrity failure: {exc.artifact.error_code}",
                {"forensic_path": self.last_forensic_path},
            )
        except Exception as exc:
            artifact = build_forensic_artifact(
                engine_scope="runtime",
                error_code="UNHANDLED_RUNTIME_EXCEPTION",
                message=str(exc),
                state_snapshot=effects.match_state_partial(self.state),
                context={"action_type": str(request.action_type), "payload": request.payload},
                identifiers={"request_id": request.request_id, "match_id": self.state.match_id},
                causal_fragment=["runtime_dispatch"],
            )
            self._halt(artifact)
            return ActionResult(
                request.request_id,
                False,
                f"runtime hard-stopped: {exc}",
                {"forensic_path": self.last_forensic_path},
            )

    def _handle_action_core(self, request: ActionRequest) -> ActionResult:
        try:
            action = self._normalize_action(request.action_type)
        except ValueError:
            return ActionResult(request.request_id, False, f"Unsupported action '{request.action_type}'")
        payload = request.payload

        if action == ActionType.GET_SCOREBOARD:
            return ActionResult(request.request_id, True, "scoreboard", data=self.scoreboard())

        if action == ActionType.SET_MUTED:
            muted = bool(payload.get("muted", True))
            if self.audio is not None:
                self.audio.muted = muted
            return ActionResult(request.request_id, True, "audio muted" if muted else "audio unmuted", {"muted": muted})

        if action == ActionType.FLUSH_PENDING:
            flushed = self.flush_pending()
            return ActionResult(
                request.request_id,
                True,
                f"flushed {flushed} pending writes",
                {"flushed": flushed, "pending": len(self.pending)},
            )

        if action == ActionType.TICK:
            seconds = int(payload.get("seconds", 1))
            transition = Transition(self.state)
            for _ in range(max(seconds, 0)):
                transition = transition.then(tick(transition.state))
            return self._apply(request, transition, f"clock advanced {seconds}s")

        reducers: dict[ActionType, Callable[[], Transition]] = {
            ActionType.START_MATCH: lambda: start_match(self.state),
            ActionType.PAUSE_MATCH: lambda: pause_match(self.state),
            ActionType.RESUME_MATCH: lambda: resume_match(self.state),
            ActionType.START_RAID: lambda: start_raid(self.state, str(payload["raider_id"])),
            ActionType.STOP_RAID: lambda: stop_raid(self.state),
            ActionType.RESOLVE_RAID: lambda: submit_raid(self.state, RaidAction.from_payload(payload), self.resolver),
            ActionType.UNDO: lambda: undo_raid(self.state),
            ActionType.REDO: lambda: redo_raid(self.state, self.resolver),
            ActionType.SUBSTITUTE: lambda: substitute(
                self.state,
                self._side(payload["team"]),
                str(payload["player_out"]),
                str(payload["player_in"]),
            ),
            ActionType.CALL_TIMEOUT: lambda: call_timeout(self.state, self._side(payload["team"])),
            ActionType.CALL_OFFICIAL_TIMEOUT: lambda: call_official_timeout(self.state),
            ActionType.END_TIMEOUT: lambda: end_timeout(self.state),
            ActionType.START_SECOND_HALF: lambda: start_second_half(self.state),
            ActionType.SETUP_TIE_BREAKER: lambda: setup_tie_breaker(
                self.state,
                list(payload["raiders_a"]),
                list(payload["raiders_b"]),
                self._shootout_opener(payload),
            ),
            ActionType.SHOOTOUT_RAID: lambda: submit_shootout_raid(
                self.state, RaidAction.from_payload(payload), self.rand
            ),
            ActionType.END_MATCH: lambda: end_match(self.state, allow_draw=bool(payload.get("allow_draw", False))),
            ActionType.LOCK_MATCH: lambda: lock_match(self.state),
        }
        return self._apply(request, reducers[action](), f"{action.value} applied")

    def _apply(self, request: ActionRequest, transition: Transition, message: str) -> ActionResult:
        previous_phase = self.state.phase
        self.state = transition.state
        warnings = self._dispatch(transition.events)
        if self.state.phase is not previous_phase:
            logger.info(f"match {self.state.match_id}: {previous_phase.value} -> {self.state.phase.value}")
        data: dict[str, Any] = {"scoreboard": self.scoreboard()}
        if transition.raid_event is not None:
            data["raid_event"] = effects.raid_event_row(transition.raid_event)
        return ActionResult(request.request_id, True, message, data, warnings)

    def _dispatch(self, events: list[EngineEvent]) -> list[str]:
        warnings: list[str] = []
        for event in events:
            self.event_bus.publish(event)
            warning = self._execute(event)
            if warning:
                warnings.append(warning)
        return warnings

    def _execute(self, event: EngineEvent) -> str | None:
        payload = event.payload
        if event.event_type == EventType.AUDIO_CUE:
            if self.audio is not None and not self.audio.muted:
                self.audio.play(payload["cue"])
            return None
        if event.event_type in WRITE_EVENTS:
            if self._write(event):
                return None
            self.pending.append(event)
            logger.warning(f"match {self.state.match_id}: {event.event_type.value} failed; queued for retry")
            return f"{event.event_type.value} failed and was queued for retry"
        if event.event_type == EventType.DELETE_RAID:
            return self._delete(payload["event_id"])
        if event.event_type == EventType.ADVANCE_WINNER:
            if self.advancement is not None and not self._advanced:
                self.advancement.advance(payload["next_match_id"], payload["slot"], payload["winning_team_id"])
                self._advanced = True
                logger.info(f"winner {payload['winning_team_id']} advanced to {payload['next_match_id']}")
            return None
        raise ValueError(f"unknown engine event '{event.event_type}'")

    def _write(self, event: EngineEvent) -> bool:
        payload = event.payload
        try:
            if event.event_type == EventType.PERSIST_RAID:
                return bool(self.persistence.save_event(payload["raid_event"]))
            return bool(self.persistence.save_match_state(payload["match_id"], payload["partial"]))
        except PersistenceFailure as exc:
            logger.warning(f"persistence failure: {exc}")
            return False

    def _delete(self, event_id: str) -> str | None:
        # a raid whose write never landed only has to leave the retry queue
        for queued in self.pending:
            if queued.event_type == EventType.PERSIST_RAID and queued.payload["raid_event"].event_id == event_id:
                self.pending.remove(queued)
                return None
        try:
            self.persistence.delete_event(event_id)
        except PersistenceFailure as exc:
            logger.warning(f"could not delete raid event {event_id}: {exc}")
            return f"undo applied but raid event {event_id} could not be deleted: {exc}"
        return None

    def flush_pending(self) -> int:
        queued, self.pending = self.pending, []
        flushed = 0
        for event in queued:
            if self._write(event):
                flushed += 1
            else:
                self.pending.append(event)
        if queued:
            logger.info(f"flushed {flushed}/{len(queued)} pending writes")
        return flushed

    def scoreboard(self) -> dict[str, Any]:
        board = build_scoreboard(self.state)
        board["pending_writes"] = len(self.pending)
        board["halted"] = self.halted
        return board

    def export(self) -> list[Path]:
        from raidline.export import ExportService
        from raidline.persistence import run_match_etl

        if self.paths is None:
            raise RuntimeError("runtime has no root directory to export into")
        run_match_etl(self.paths.sqlite_path, self.paths.duckdb_path, self.state.match_id)
        return ExportService(self.paths.duckdb_path).export_match_datasets(self.paths.export_dir, self.state.match_id)

    def _halt(self, artifact: ForensicArtifact) -> None:
        if self.paths is not None:
            self.last_forensic_path = str(persist_forensic_artifact(artifact, self.paths.forensic_dir))
        self.halted = True
        logger.error(f"match {self.state.match_id} halted: {artifact.error_code} {artifact.message}")

    def _side(self, team: str) -> TeamSide:
        if team in (TeamSide.A.value, TeamSide.B.value):
            return TeamSide(team)
        if team == self.state.team_a.team_id:
            return TeamSide.A
        if team == self.state.team_b.team_id:
            return TeamSide.B
        raise KeyError(f"unknown team '{team}'")

    def _shootout_opener(self, payload: dict[str, Any]) -> TeamSide:
        if "toss_winner" in payload:
            return decide_first_raiding_team(self._side(payload["toss_winner"]), str(payload.get("choice", "raid")))
        return self._side(payload.get("first_raiding_team", TeamSide.A.value))

    def _normalize_action(self, action: ActionType | str) -> ActionType:
        if isinstance(action, ActionType):
            return action
        return ActionType(action)
