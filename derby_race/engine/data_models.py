from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from derby_race.config import COLOR_NAMES
from derby_race.lib import condition_grade, format_round_label


class RaceStatus(Enum):
    """Race lifecycle states derived from the run flags."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Horse:
    horse_id: int
    name: str
    color: str
    condition: int

    @property
    def color_name(self) -> str:
        return COLOR_NAMES.get(self.color, self.color)

    @property
    def condition_grade(self) -> str:
        return condition_grade(self.condition)


@dataclass(frozen=True)
class RaceRound:
    """One heat: a fixed distance and the horses drawn for it at schedule time."""

    round: int
    distance: int
    horses: Tuple[Horse, ...]

    @property
    def label(self) -> str:
        return format_round_label(self.round, self.distance)


@dataclass(frozen=True)
class HorseResult:
    position: int
    horse: Horse


@dataclass(frozen=True)
class RoundResults:
    round: int
    distance: int
    results: Tuple[HorseResult, ...]

    @property
    def winner(self) -> Optional[Horse]:
        return self.results[0].horse if self.results else None

    @property
    def finish_order(self) -> Tuple[int, ...]:
        return tuple(entry.horse.horse_id for entry in self.results)


@dataclass
class RaceRunState:
    """
    Mutable per-race state owned by the engine.

    `frame_handle` and `delay_handle` are only set while a host callback is
    outstanding; pause/reset cancel and clear them.
    """

    current_round: int = 0
    is_running: bool = False
    is_paused: bool = False
    positions: Dict[int, float] = field(default_factory=dict)
    speeds: Dict[int, float] = field(default_factory=dict)
    finish_times: Dict[int, float] = field(default_factory=dict)
    frame_handle: Optional[Any] = None
    delay_handle: Optional[Any] = None

    def clear_round(self) -> None:
        self.positions = {}
        self.speeds = {}
        self.finish_times = {}
