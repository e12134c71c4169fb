from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence


@dataclass
class TelemetryHorseFrame:
    horse_id: int
    name: str
    pos: float
    distance_delta: float
    is_finished: bool


@dataclass
class TelemetryFrame:
    tick: int
    time: float
    round: int
    distance: int
    horses: List[TelemetryHorseFrame] = field(default_factory=list)


class TelemetryCollector:
    def __init__(self) -> None:
        self.frames: List[TelemetryFrame] = []

    def record_frame(self, frame: TelemetryFrame) -> None:
        self.frames.append(frame)

    def export(self) -> Sequence[TelemetryFrame]:
        return tuple(self.frames)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [asdict(frame) for frame in self.frames]

    def clear(self) -> None:
        self.frames.clear()
