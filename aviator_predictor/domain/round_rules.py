"""Round outcome rules that are independent from HTTP, timers and storage.

Rule of thumb:
- OK: probability thresholds, value ranges, formatting.
- Not OK: touching the scheduler, Redis, FastAPI, datetime.now(), etc.

Values are drawn at cent resolution so that the two-decimal display value
never leaves its half-open range (a float drawn just below 3.10 would
otherwise round up to "3.10x").
"""

import numpy as np

RARE_PROBABILITY = 2 / 25

# Half-open ranges, in cents.
COMMON_RANGE = (110, 220)
RARE_RANGE = (220, 310)
DECOY_RANGE = (100, 1000)

REVEAL_DURATION_SECONDS = 3.0
DECOY_INTERVAL_SECONDS = 0.05


def _draw_cents(rng: np.random.Generator, value_range: tuple[int, int]) -> float:
    low, high = value_range
    return int(rng.integers(low, high)) / 100


def draw_is_rare(rng: np.random.Generator) -> bool:
    """Return True with probability RARE_PROBABILITY."""
    return bool(rng.random() < RARE_PROBABILITY)


def draw_final_value(rng: np.random.Generator) -> float:
    """Draw the final multiplier of a round.

    A single uniform draw against RARE_PROBABILITY picks the sub-range, a second
    uniform draw picks the value inside it.

    Args:
        rng (np.random.Generator): Random source, seeded in tests

    Returns:
        float: Value in [1.10, 2.20) or, for rare outcomes, [2.20, 3.10)
    """
    if draw_is_rare(rng):
        return _draw_cents(rng, RARE_RANGE)
    return _draw_cents(rng, COMMON_RANGE)


def draw_decoy_value(rng: np.random.Generator) -> float:
    """Random value in [1.00, 10.00) shown while the round is spinning."""
    return _draw_cents(rng, DECOY_RANGE)


def is_rare_value(value: float) -> bool:
    return RARE_RANGE[0] / 100 <= value < RARE_RANGE[1] / 100


def format_multiplier(value: float) -> str:
    return f"{value:.2f}x"
