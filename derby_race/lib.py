# lib.py
# Shared randomness and scoring helpers for the race engine and roster.

from __future__ import annotations

from typing import List, Optional, Sequence, TypeVar

import numpy as np

from derby_race.config import (
    CONDITION_MAX,
    CONDITION_MIN,
    CONDITION_THRESHOLDS,
    FRAME_SPEED,
    MAX_RACE_DISTANCE,
    RANDOM_SEED,
    SPEED_FACTORS,
)

T = TypeVar("T")

_DEFAULT_RNG = np.random.default_rng(RANDOM_SEED)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else _DEFAULT_RNG


def random_int(low: int, high: int, rng: Optional[np.random.Generator] = None) -> int:
    """Uniform integer in the closed range [low, high]."""
    return int(_rng(rng).integers(low, high, endpoint=True))


def generate_condition(rng: Optional[np.random.Generator] = None) -> int:
    return random_int(CONDITION_MIN, CONDITION_MAX, rng=rng)


def shuffle(items: Sequence[T], rng: Optional[np.random.Generator] = None) -> List[T]:
    """Returns a shuffled copy; the input is left untouched."""
    order = _rng(rng).permutation(len(items))
    return [items[i] for i in order]


def select_random(items: Sequence[T], count: int, rng: Optional[np.random.Generator] = None) -> List[T]:
    """Samples `count` items uniformly without replacement."""
    if count < 0 or count > len(items):
        raise ValueError(f"Cannot select {count} items from a pool of {len(items)}")
    return shuffle(items, rng=rng)[:count]


def calculate_horse_speed(condition: float, distance: float, rng: Optional[np.random.Generator] = None) -> float:
    """
    Per-round base speed. Higher condition and longer distance both raise it;
    a random factor in [RANDOM_MIN, RANDOM_MIN + RANDOM_MAX) spreads the field.
    """
    base_speed = condition / CONDITION_MAX
    random_factor = SPEED_FACTORS["random_min"] + _rng(rng).random() * SPEED_FACTORS["random_max"]
    distance_factor = 1 + (distance / MAX_RACE_DISTANCE) * (condition / SPEED_FACTORS["distance_divisor"])
    return base_speed * random_factor * distance_factor


def frame_advance(speed: float, rng: Optional[np.random.Generator] = None) -> float:
    """Distance covered in one tick, with per-tick jitter on top of the round speed."""
    return speed * (FRAME_SPEED["base"] + _rng(rng).random() * FRAME_SPEED["random_range"])


def condition_grade(condition: float) -> str:
    if condition >= CONDITION_THRESHOLDS["excellent"]:
        return "excellent"
    if condition >= CONDITION_THRESHOLDS["good"]:
        return "good"
    if condition >= CONDITION_THRESHOLDS["fair"]:
        return "fair"
    return "poor"


def ordinal(value: int) -> str:
    if 10 <= value % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(value % 10, "th")
    return f"{value}{suffix}"


def format_round_label(round_number: int, distance: int) -> str:
    return f"{ordinal(round_number)} Lap - {distance}m"
