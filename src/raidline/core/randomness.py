from __future__ import annotations

import random
from typing import Any, Sequence


class PythonRandomSource:
    """Coin for the golden raid.

    Replays pass a seed so a level shootout is decided the same way twice.
    """

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def choice(self, items: Sequence[Any]) -> Any:
        if not items:
            raise ValueError("nothing to choose from")
        return self._rng.choice(list(items))


def match_random() -> PythonRandomSource:
    return PythonRandomSource()


def seeded_random(seed: int) -> PythonRandomSource:
    return PythonRandomSource(seed=seed)
