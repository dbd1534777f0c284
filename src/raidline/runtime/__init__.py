from .audio import LoggingAudioNotifier
from .driver import ClockDriver
from .replay import MatchScript, ReplayAction, ReplayHarness
from .rosters import StaticRosterProvider
from .session import LiveMatchRuntime, RuntimePaths

__all__ = [
    "ClockDriver",
    "LiveMatchRuntime",
    "LoggingAudioNotifier",
    "MatchScript",
    "ReplayAction",
    "ReplayHarness",
    "RuntimePaths",
    "StaticRosterProvider",
]
