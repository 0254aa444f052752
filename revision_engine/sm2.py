import math
from datetime import datetime
from typing import Tuple

from revision_engine.enums import Difficulty
from revision_engine.timeutils import add_days, utcnow

MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 3.0
INITIAL_EASE_FACTOR = 2.5
MIN_INTERVAL_DAYS = 1

# Effectiveness thresholds for the recall bands
EXCELLENT_RECALL = 0.9
GOOD_RECALL = 0.7
POOR_RECALL = 0.5

class SM2Algorithm:
    """
    Simplified SM-2 spaced repetition algorithm for the adaptive review track.

    Recall quality is an effectiveness score in [0, 1] plus whether the item
    was remembered at all, instead of SuperMemo's 0-5 grade.
    """

    @staticmethod
    def calculate_next_review(
        ease_factor: float,
        current_interval: float,
        base_interval: float,
        effectiveness: float,
        remembered: bool = True,
        reference_date: datetime = None  # Optional: use custom time instead of now
    ) -> Tuple[float, float, datetime]:
        """
        Calculate next adaptive review and update SM-2 parameters.

        The first matching band wins:
            1. effectiveness >= 0.9 and remembered: EF * 1.3, interval grows by EF
            2. 0.7 <= effectiveness < 0.9 and remembered: EF * 1.1, interval grows by EF
            3. 0.5 <= effectiveness < 0.7, or not remembered: EF * 0.8, interval halves
            4. effectiveness < 0.5 but remembered: reset to base interval and EF 2.5

        Args:
            ease_factor: Current EF, 1.3-3.0
            current_interval: Current interval in days
            base_interval: Interval the schedule started with (difficulty-scaled)
            effectiveness: Quality of the attempt (0-1)
            remembered: Whether the solution was recalled
            reference_date: Optional reference time (defaults to now)

        Returns:
            (new_ef, new_interval, next_review_due)
        """
        if remembered and effectiveness >= EXCELLENT_RECALL:
            new_ef = SM2Algorithm.clamp_ease_factor(ease_factor * 1.3)
            new_interval = math.ceil(current_interval * new_ef)
        elif remembered and effectiveness >= GOOD_RECALL:
            new_ef = SM2Algorithm.clamp_ease_factor(ease_factor * 1.1)
            new_interval = math.ceil(current_interval * new_ef)
        elif effectiveness >= POOR_RECALL or not remembered:
            new_ef = SM2Algorithm.clamp_ease_factor(ease_factor * 0.8)
            new_interval = math.floor(current_interval * 0.5)
        else:
            # Remembered, but barely: start the track over
            new_ef = INITIAL_EASE_FACTOR
            new_interval = base_interval

        # Sub-day base intervals (medium/hard items) still wait a full day
        new_interval = max(MIN_INTERVAL_DAYS, new_interval)

        base_date = reference_date if reference_date else utcnow()
        next_review_due = add_days(base_date, new_interval)

        return new_ef, new_interval, next_review_due

    @staticmethod
    def initialize_item(difficulty: Difficulty, reference_date: datetime = None) -> Tuple[float, float, float, datetime]:
        """
        Initialize SM-2 parameters for a newly solved item.

        The adaptive track is due immediately; harder items get a shorter
        base interval.

        Returns:
            (initial_ef, base_interval, interval_modifier, next_review_due)
        """
        multiplier = difficulty.multiplier
        base_interval = 1 * multiplier
        base_date = reference_date if reference_date else utcnow()

        return INITIAL_EASE_FACTOR, base_interval, multiplier, base_date

    @staticmethod
    def clamp_ease_factor(ease_factor: float) -> float:
        return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, ease_factor))
