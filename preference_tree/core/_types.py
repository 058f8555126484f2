from __future__ import annotations
from typing import Literal, TypeAlias

import numpy as np

Side: TypeAlias = Literal["left", "right"]
RandomState: TypeAlias = int | np.random.Generator | None


def make_rng(random_state: RandomState = None) -> np.random.Generator:
    """Return a numpy generator for a seed, or pass an existing one through."""
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)
