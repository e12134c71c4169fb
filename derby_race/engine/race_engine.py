from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from derby_race.config import (
    FALLBACK_HORSE_SPEED,
    FINISH_LINE_POSITION,
    HORSES_PER_RACE,
    ROUND_DELAY_MS,
    ROUND_DISTANCES,
    TOTAL_ROUNDS,
)
from derby_race.lib import calculate_horse_speed, frame_advance, select_random

from .data_models import HorseResult, RaceRound, RaceRunState, RaceStatus, RoundResults
from .host import FrameHost
from .roster import HorseRoster
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryHorseFrame

logger = logging.getLogger(__name__)


class RaceEngine:
    """
    Builds the round schedule and runs the frame-by-frame race loop.

    The loop is cooperative: every tick mutates state synchronously and then
    asks the host for the next frame. The only handles ever outstanding are
    the pending frame and the inter-round delay, both owned by `state`.
    """

    def __init__(
        self,
        roster: HorseRoster,
        host: FrameHost,
        rng: Optional[np.random.Generator] = None,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        self.roster = roster
        self.host = host
        self.rng = rng
        self.telemetry = telemetry
        self.tick_index = 0
        self.state = RaceRunState()
        self._schedule: Tuple[RaceRound, ...] = ()
        self._results: List[RoundResults] = []

    # --- Scheduling ---

    def generate_schedule(self) -> Optional[Tuple[RaceRound, ...]]:
        horses = self.roster.all_horses()
        if len(horses) < HORSES_PER_RACE:
            logger.warning(
                "Not enough horses to generate schedule: need %d, have %d",
                HORSES_PER_RACE,
                len(horses),
            )
            return None

        schedule = tuple(
            RaceRound(
                round=index + 1,
                distance=distance,
                horses=tuple(select_random(horses, HORSES_PER_RACE, rng=self.rng)),
            )
            for index, distance in enumerate(ROUND_DISTANCES)
        )

        # A new schedule stops any round in flight; the next start() initialises round 1.
        self._cancel_pending()
        self.state = RaceRunState()
        self.tick_index = 0
        self._results = []
        self._schedule = schedule
        logger.info("Generated schedule with %d rounds", len(schedule))
        return schedule

    # --- Lifecycle ---

    def start(self) -> None:
        if not self._schedule or self.state.current_round >= TOTAL_ROUNDS:
            logger.debug("Start ignored: no schedule or race already complete")
            return

        if self.state.is_paused:
            self.state.is_paused = False
            logger.debug("Resuming round %d", self.current_round_number)
            self._run_round()
            return

        if not self.state.is_running:
            self.state.is_running = True
            logger.debug("Starting round %d", self.current_round_number)
            self._run_round()

    def pause(self) -> None:
        if not self.state.is_running or self.state.is_paused:
            return
        self.state.is_paused = True
        self._cancel_pending()
        logger.debug("Paused round %d", self.current_round_number)

    def toggle(self) -> None:
        if self.state.is_running and not self.state.is_paused:
            self.pause()
        else:
            self.start()

    def reset(self) -> None:
        self._cancel_pending()
        self.state = RaceRunState()
        self.tick_index = 0

    def _cancel_pending(self) -> None:
        if self.state.frame_handle is not None:
            self.host.cancel(self.state.frame_handle)
            self.state.frame_handle = None
        if self.state.delay_handle is not None:
            self.host.cancel(self.state.delay_handle)
            self.state.delay_handle = None

    # --- Race loop ---

    def _init_round(self, race_round: RaceRound) -> None:
        self.state.positions = {horse.horse_id: 0.0 for horse in race_round.horses}
        self.state.finish_times = {}
        self.state.speeds = {
            horse.horse_id: calculate_horse_speed(horse.condition, race_round.distance, rng=self.rng)
            for horse in race_round.horses
        }

    def _run_round(self) -> None:
        race_round = self.current_round_data
        if race_round is None:
            return
        if not self.state.positions:
            self._init_round(race_round)
        if self.state.frame_handle is not None:
            self.host.cancel(self.state.frame_handle)
            self.state.frame_handle = None
        self._tick()

    def _tick(self) -> None:
        self.state.frame_handle = None
        if self.state.is_paused or not self.state.is_running:
            return
        race_round = self.current_round_data
        if race_round is None:
            return

        positions = self.state.positions
        deltas = {}
        for horse in race_round.horses:
            current_pos = positions.get(horse.horse_id, 0.0)
            if current_pos >= FINISH_LINE_POSITION:
                continue

            speed = self.state.speeds.get(horse.horse_id, FALLBACK_HORSE_SPEED)
            new_pos = min(current_pos + frame_advance(speed, rng=self.rng), FINISH_LINE_POSITION)
            positions[horse.horse_id] = new_pos
            deltas[horse.horse_id] = new_pos - current_pos

            if new_pos >= FINISH_LINE_POSITION and horse.horse_id not in self.state.finish_times:
                self.state.finish_times[horse.horse_id] = self.host.now()

        self._record_telemetry(race_round, deltas)
        self.tick_index += 1

        if all(positions.get(horse.horse_id, 0.0) >= FINISH_LINE_POSITION for horse in race_round.horses):
            self._finish_round()
        else:
            self.state.frame_handle = self.host.request_frame(self._tick)

    def _finish_round(self) -> None:
        race_round = self.current_round_data
        if race_round is None:
            return

        finish_times = self.state.finish_times
        missing = [horse.horse_id for horse in race_round.horses if horse.horse_id not in finish_times]
        if missing:
            logger.warning("Round %d: no finish time for horses %s, ranking them last", race_round.round, missing)

        # sorted() is stable, so equal timestamps keep the round's draw order
        ordered = sorted(race_round.horses, key=lambda horse: finish_times.get(horse.horse_id, math.inf))
        round_results = RoundResults(
            round=race_round.round,
            distance=race_round.distance,
            results=tuple(HorseResult(position=rank, horse=horse) for rank, horse in enumerate(ordered, start=1)),
        )
        self._results.append(round_results)

        self.state.current_round += 1
        self.state.clear_round()
        logger.info(
            "Round %d (%dm) finished, winner: %s",
            round_results.round,
            round_results.distance,
            round_results.winner.name if round_results.winner else "-",
        )

        if self.state.current_round >= TOTAL_ROUNDS:
            self.state.is_running = False
            logger.info("Race complete after %d rounds", self.state.current_round)
        else:
            self.state.delay_handle = self.host.call_later(ROUND_DELAY_MS, self._start_next_round)

    def _start_next_round(self) -> None:
        self.state.delay_handle = None
        # Pause/reset during the delay window must suppress the next round.
        if self.state.is_running and not self.state.is_paused:
            self._run_round()

    def _record_telemetry(self, race_round: RaceRound, deltas: Mapping[int, float]) -> None:
        if self.telemetry is None:
            return
        frame = TelemetryFrame(
            tick=self.tick_index,
            time=self.host.now(),
            round=race_round.round,
            distance=race_round.distance,
            horses=[
                TelemetryHorseFrame(
                    horse_id=horse.horse_id,
                    name=horse.name,
                    pos=self.state.positions.get(horse.horse_id, 0.0),
                    distance_delta=deltas.get(horse.horse_id, 0.0),
                    is_finished=horse.horse_id in self.state.finish_times,
                )
                for horse in race_round.horses
            ],
        )
        self.telemetry.record_frame(frame)

    # --- Queries ---

    @property
    def schedule(self) -> Tuple[RaceRound, ...]:
        return self._schedule

    @property
    def has_schedule(self) -> bool:
        return len(self._schedule) > 0

    @property
    def round_distances(self) -> Sequence[int]:
        return ROUND_DISTANCES

    @property
    def current_round(self) -> int:
        return self.state.current_round

    @property
    def current_round_number(self) -> int:
        return self.state.current_round + 1

    @property
    def current_round_data(self) -> Optional[RaceRound]:
        index = self.state.current_round
        if 0 <= index < len(self._schedule):
            return self._schedule[index]
        return None

    @property
    def current_distance(self) -> int:
        if self.state.current_round < TOTAL_ROUNDS:
            return ROUND_DISTANCES[self.state.current_round]
        return 0

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    @property
    def is_paused(self) -> bool:
        return self.state.is_paused

    @property
    def is_complete(self) -> bool:
        return self.state.current_round >= TOTAL_ROUNDS and not self.state.is_running

    @property
    def status(self) -> RaceStatus:
        if self.state.is_running:
            return RaceStatus.PAUSED if self.state.is_paused else RaceStatus.RUNNING
        if self.is_complete:
            return RaceStatus.COMPLETE
        return RaceStatus.IDLE

    @property
    def positions(self) -> Mapping[int, float]:
        return MappingProxyType(self.state.positions)

    @property
    def results(self) -> Tuple[RoundResults, ...]:
        return tuple(self._results)

    def get_round_results(self, round_index: int) -> Optional[RoundResults]:
        if 0 <= round_index < len(self._results):
            return self._results[round_index]
        return None
