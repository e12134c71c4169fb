"""
Race engine package: roster, schedule, and the cooperative race loop.

Data models, host schedulers, and telemetry live in their own modules; the
application aggregate in `derby_race.app` composes them.
"""

from .data_models import (  # noqa: F401
    Horse,
    HorseResult,
    RaceRound,
    RaceRunState,
    RaceStatus,
    RoundResults,
)
from .host import AsyncioFrameHost, FrameHost, ManualFrameHost  # noqa: F401
from .roster import HorseRoster  # noqa: F401
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryHorseFrame  # noqa: F401
from .race_engine import RaceEngine  # noqa: F401

__all__ = [
    "Horse",
    "HorseResult",
    "RaceRound",
    "RaceRunState",
    "RaceStatus",
    "RoundResults",
    "AsyncioFrameHost",
    "FrameHost",
    "ManualFrameHost",
    "HorseRoster",
    "TelemetryCollector",
    "TelemetryFrame",
    "TelemetryHorseFrame",
    "RaceEngine",
]
