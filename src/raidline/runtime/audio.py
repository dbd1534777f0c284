from __future__ import annotations

import logging

from raidline.contracts import AudioCue

logger = logging.getLogger("raidline.audio")


class LoggingAudioNotifier:
    """Audio collaborator for headless runs: every cue becomes a log line."""

    def __init__(self, muted: bool = False) -> None:
        self.muted = muted
        self.played: list[AudioCue] = []

    def play(self, cue: AudioCue) -> None:
        self.played.append(cue)
        logger.info(f"[cue] {cue.value}")
