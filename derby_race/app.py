from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Tuple

import numpy as np

from derby_race.config import RANDOM_SEED
from derby_race.engine import (
    Horse,
    HorseRoster,
    ManualFrameHost,
    RaceEngine,
    RaceRound,
    RaceStatus,
    RoundResults,
    TelemetryCollector,
)
from derby_race.engine.host import FrameHost
from derby_race.lib import make_rng
from derby_race.notifications import NotificationChannel

logger = logging.getLogger(__name__)

PROGRAM_GENERATED_MESSAGE = "Race program generated successfully!"
PROGRAM_LOCKED_MESSAGE = "Cannot generate a new program while a race is running."
NOT_ENOUGH_HORSES_MESSAGE = "Not enough horses to generate a race schedule."


class DerbyApp:
    """
    Application state aggregate. Built once per process and handed to
    whatever drives it (CLI, UI glue, tests); owns the roster, the race
    engine, the notification channel, and the host scheduler they share.

    Without a `host` the app uses a `ManualFrameHost`: a virtual clock that
    only moves when the caller advances it. Pass an `AsyncioFrameHost` for a
    race that runs on its own in real time.
    """

    def __init__(
        self,
        host: Optional[FrameHost] = None,
        rng: Optional[np.random.Generator] = None,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        self.host = host if host is not None else ManualFrameHost()
        self.rng = rng if rng is not None else make_rng(RANDOM_SEED)
        self.roster = HorseRoster(rng=self.rng)
        self.race = RaceEngine(self.roster, self.host, rng=self.rng, telemetry=telemetry)
        self.notifications = NotificationChannel(self.host)

    # --- Roster commands ---

    def generate_roster(self) -> List[Horse]:
        return self.roster.generate()

    def reset_roster(self) -> None:
        self.roster.reset()

    def regenerate_conditions(self) -> None:
        self.roster.regenerate_conditions()

    # --- Race commands ---

    def generate_schedule(self) -> Optional[Tuple[RaceRound, ...]]:
        schedule = self.race.generate_schedule()
        if schedule is None:
            self.notifications.error(NOT_ENOUGH_HORSES_MESSAGE)
        return schedule

    def generate_program(self) -> Optional[Tuple[RaceRound, ...]]:
        """Fresh roster plus fresh schedule, refused while a race is in progress."""
        if self.race.is_running:
            logger.info("Program generation refused: round %d in progress", self.race.current_round_number)
            self.notifications.warning(PROGRAM_LOCKED_MESSAGE)
            return None

        self.race.reset()
        self.roster.generate()
        schedule = self.generate_schedule()
        if schedule is not None:
            self.notifications.success(PROGRAM_GENERATED_MESSAGE)
        return schedule

    def start(self) -> None:
        self.race.start()

    def pause(self) -> None:
        self.race.pause()

    def toggle(self) -> None:
        self.race.toggle()

    def reset(self) -> None:
        self.race.reset()

    # --- Queries ---

    def all_horses(self) -> List[Horse]:
        return self.roster.all_horses()

    def get_horse(self, horse_id: int) -> Optional[Horse]:
        return self.roster.get_horse(horse_id)

    @property
    def horse_count(self) -> int:
        return self.roster.count

    @property
    def schedule(self) -> Tuple[RaceRound, ...]:
        return self.race.schedule

    @property
    def current_round_number(self) -> int:
        return self.race.current_round_number

    @property
    def current_round_data(self) -> Optional[RaceRound]:
        return self.race.current_round_data

    @property
    def current_distance(self) -> int:
        return self.race.current_distance

    @property
    def status(self) -> RaceStatus:
        return self.race.status

    @property
    def is_running(self) -> bool:
        return self.race.is_running

    @property
    def is_paused(self) -> bool:
        return self.race.is_paused

    @property
    def is_complete(self) -> bool:
        return self.race.is_complete

    @property
    def positions(self) -> Mapping[int, float]:
        return self.race.positions

    @property
    def results(self) -> Tuple[RoundResults, ...]:
        return self.race.results

    def get_round_results(self, round_index: int) -> Optional[RoundResults]:
        return self.race.get_round_results(round_index)
