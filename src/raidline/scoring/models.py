from __future__ import annotations

from dataclasses import dataclass, field

from raidline.contracts import EngineEvent, MatchSnapshot, MatchState, RaidEvent


@dataclass(slots=True)
class RaidResolution:
    state: MatchState
    raid_event: RaidEvent
    snapshot: MatchSnapshot
    events: list[EngineEvent] = field(default_factory=list)

    @property
    def is_all_out(self) -> bool:
        return self.raid_event.is_all_out

    @property
    def outcome_code(self) -> str:
        return self.raid_event.outcome_code


@dataclass(slots=True)
class Transition:
    """A reducer result: the next state plus the side effects it requests."""

    state: MatchState
    events: list[EngineEvent] = field(default_factory=list)
    raid_event: RaidEvent | None = None

    def then(self, following: Transition) -> Transition:
        return Transition(following.state, self.events + following.events, following.raid_event or self.raid_event)
