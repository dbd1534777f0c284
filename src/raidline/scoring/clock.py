from __future__ import annotations

from dataclasses import dataclass, field, replace

from raidline.contracts import AudioCue, ClockState, EngineEvent, MatchConfig, MatchPhase
from raidline.scoring import effects

RAID_COUNTDOWN_CUES = 5
CLOCKED_PHASES = frozenset({MatchPhase.LIVE_HALF_1, MatchPhase.LIVE_HALF_2, MatchPhase.COMPLETING_RAID})


@dataclass(slots=True)
class ClockTick:
    clock: ClockState
    events: list[EngineEvent] = field(default_factory=list)
    match_expired: bool = False


def tick_clocks(clock: ClockState, phase: MatchPhase) -> ClockTick:
    """Advance every clock by one second.

    The timeout clock runs first because it owns the shared ``paused`` flag:
    a timeout expiring on this tick resumes the other clocks on the next one.
    """
    result = ClockTick(replace(clock, ticks=clock.ticks + 1))
    _tick_timeout(result)
    if phase is MatchPhase.HALF_TIME_BREAK:
        _tick_interval(result)
    elif phase in CLOCKED_PHASES and not clock.paused:
        _tick_match(result)
        _tick_raid(result)
    return result


def _tick_timeout(result: ClockTick) -> None:
    clock = result.clock
    if not clock.timeout_active:
        return
    remaining = clock.timeout_remaining - 1
    if remaining > 0:
        result.clock = replace(clock, timeout_remaining=remaining)
        return
    result.clock = replace(clock, timeout_remaining=0, timeout_owner=None, paused=False)
    result.events.append(effects.audio(AudioCue.BUZZER))


def _tick_match(result: ClockTick) -> None:
    clock = result.clock
    if not clock.match_running or clock.paused or clock.frozen:
        return
    remaining = max(clock.match_remaining - 1, 0)
    if remaining > 0:
        result.clock = replace(clock, match_remaining=remaining)
        return
    result.clock = replace(clock, match_remaining=0, match_running=False)
    result.match_expired = True
    result.events.append(effects.audio(AudioCue.BUZZER))


def _tick_raid(result: ClockTick) -> None:
    clock = result.clock
    if not clock.raid_running or clock.paused:
        return
    remaining = max(clock.raid_remaining - 1, 0)
    if remaining > 0:
        result.clock = replace(clock, raid_remaining=remaining)
        if remaining <= RAID_COUNTDOWN_CUES:
            result.events.append(effects.audio(AudioCue.TICK))
        return
    # raid stays in flight; only an explicit resolution or stop ends it
    result.clock = replace(clock, raid_remaining=0, raid_running=False)
    result.events.append(effects.audio(AudioCue.BUZZER))


def _tick_interval(result: ClockTick) -> None:
    clock = result.clock
    if clock.interval_remaining <= 0:
        return
    remaining = clock.interval_remaining - 1
    result.clock = replace(clock, interval_remaining=remaining)
    if remaining == 0:
        result.events.append(effects.audio(AudioCue.BUZZER))


def start_raid_clock(clock: ClockState, config: MatchConfig) -> ClockState:
    return replace(clock, raid_remaining=config.raid_duration, raid_running=True)


def reset_raid_clock(clock: ClockState) -> ClockState:
    return replace(clock, raid_remaining=0, raid_running=False)


def start_timeout_clock(clock: ClockState, config: MatchConfig, owner: str) -> ClockState:
    return replace(clock, timeout_remaining=config.timeout_duration, timeout_owner=owner, paused=True)


def clear_timeout_clock(clock: ClockState) -> ClockState:
    return replace(clock, timeout_remaining=0, timeout_owner=None, paused=False)


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{secs:02d}"
