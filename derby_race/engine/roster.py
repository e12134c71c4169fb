from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

import numpy as np

from derby_race.config import HORSE_COLORS, HORSE_NAMES, TOTAL_HORSES
from derby_race.lib import generate_condition

from .data_models import Horse

logger = logging.getLogger(__name__)


class HorseRoster:
    """Holds the pool of horses; identity is fixed, condition can be redrawn."""

    def __init__(self, rng: Optional[np.random.Generator] = None) -> None:
        if len(HORSE_NAMES) < TOTAL_HORSES or len(HORSE_COLORS) < TOTAL_HORSES:
            raise ValueError("Name and colour tables must cover every horse in the roster.")
        self.rng = rng
        self._horses: List[Horse] = []
        self._is_generated = False

    def generate(self) -> List[Horse]:
        horses = [
            Horse(
                horse_id=index + 1,
                name=HORSE_NAMES[index],
                color=HORSE_COLORS[index],
                condition=generate_condition(rng=self.rng),
            )
            for index in range(TOTAL_HORSES)
        ]
        self._horses = horses
        self._is_generated = True
        logger.info("Generated roster of %d horses", len(horses))
        return list(horses)

    def reset(self) -> None:
        self._horses = []
        self._is_generated = False

    def regenerate_conditions(self) -> None:
        # Horses are frozen snapshots; swap each slot so scheduled rounds keep their copies.
        for index, horse in enumerate(self._horses):
            self._horses[index] = replace(horse, condition=generate_condition(rng=self.rng))
        if self._horses:
            logger.debug("Redrew conditions for %d horses", len(self._horses))

    def all_horses(self) -> List[Horse]:
        return list(self._horses)

    def get_horse(self, horse_id: int) -> Optional[Horse]:
        return next((horse for horse in self._horses if horse.horse_id == horse_id), None)

    @property
    def count(self) -> int:
        return len(self._horses)

    @property
    def is_generated(self) -> bool:
        return self._is_generated

    def __len__(self) -> int:
        return len(self._horses)
