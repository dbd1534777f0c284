from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from raidline.contracts import ForensicArtifact
from raidline.core.ids import make_id, utc_stamp


class ScoringError(Exception):
    """Base class for every rejection raised by the scoring engine."""


class StateViolation(ScoringError):
    pass


class MatchNotLive(StateViolation):
    pass


class RaidInFlight(StateViolation):
    pass


class InvalidRaiderState(StateViolation):
    pass


class InvalidRaidAction(StateViolation):
    pass


class TimeoutLimitReached(StateViolation):
    pass


class TimeoutActive(StateViolation):
    pass


class NothingToUndo(StateViolation):
    pass


class NothingToRedo(StateViolation):
    pass


class InvalidTieBreakerSetup(StateViolation):
    pass


class RosterError(ScoringError):
    pass


class PlayerNotFound(RosterError):
    def __init__(self, player_id: str, team_id: str) -> None:
        super().__init__(f"player '{player_id}' is not on the roster of team '{team_id}'")
        self.player_id = player_id
        self.team_id = team_id


class InsufficientRoster(RosterError):
    pass


class PersistenceFailure(ScoringError):
    pass


class ConfigurationError(ScoringError, ValueError):
    pass


class EngineIntegrityError(RuntimeError):
    def __init__(self, artifact: ForensicArtifact) -> None:
        super().__init__(artifact.message)
        self.artifact = artifact


def build_forensic_artifact(
    engine_scope: str,
    error_code: str,
    message: str,
    state_snapshot: dict[str, object],
    context: dict[str, object],
    identifiers: dict[str, str],
    causal_fragment: list[str],
) -> ForensicArtifact:
    return ForensicArtifact(
        artifact_id=make_id("forensic", engine_scope),
        timestamp=utc_stamp(),
        engine_scope=engine_scope,
        error_code=error_code,
        message=message,
        state_snapshot=state_snapshot,
        context=context,
        identifiers=identifiers,
        causal_fragment=causal_fragment,
    )


def persist_forensic_artifact(artifact: ForensicArtifact, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{artifact.artifact_id}.json"
    path.write_text(json.dumps(asdict(artifact), default=str, indent=2), encoding="utf-8")
    return path
