"""
Reward Service

Converts completed trip distance into carbon savings, ride credits and
loyalty points.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from ecoride.models.user import level_for_points
from ecoride.repositories.base import UserRepository

logger = logging.getLogger(__name__)


CARBON_EMISSION_PER_KM_GAS_CAR = 120  # grams per passenger-km, solo baseline
POOL_EFFICIENCY_FACTOR = 0.6  # Shared ride emits 60% of the baseline
CREDITS_PER_KG_CO2 = 10
POINTS_PER_KM = 5


def round_half_up(value: float) -> int:
    """Round .5 upwards for non-negative values (round() rounds half to even)."""
    return math.floor(value + 0.5)


@dataclass
class RewardDeltas:
    """Increments computed from a distance."""
    carbon_saved: float  # grams, unrounded
    credits_earned: int
    points_earned: int


@dataclass
class RewardResult:
    """Outcome reported back to the caller for notification text."""
    carbon_saved: int
    credits_earned: int
    points_earned: int = 0
    level: Optional[str] = None
    applied: bool = True


def compute_reward_deltas(distance_meters: float, is_driver: bool = False) -> RewardDeltas:
    """
    Pure reward formula.

    `is_driver` is accepted for symmetry of the call sites; drivers and
    passengers share the same constants.
    """
    distance_km = distance_meters / 1000

    benchmark_carbon = distance_km * CARBON_EMISSION_PER_KM_GAS_CAR
    actual_carbon = benchmark_carbon * POOL_EFFICIENCY_FACTOR
    carbon_saved = max(0, benchmark_carbon - actual_carbon)

    return RewardDeltas(
        carbon_saved=carbon_saved,
        credits_earned=round_half_up((carbon_saved / 1000) * CREDITS_PER_KG_CO2),
        points_earned=round_half_up(distance_km * POINTS_PER_KM),
    )


class RewardService:
    """
    Reward accounting for trip participants.

    Best effort: any failure (unknown user, store error) is logged and
    reported as a zero-effect result with applied=False instead of raising.
    """

    def __init__(self, users: Optional[UserRepository] = None):
        if users is None:
            from ecoride.repositories.mongo import MongoUserRepository
            users = MongoUserRepository()
        self.users = users

    async def process_carbon_conversion(
        self,
        user_id: str,
        distance_meters: float,
        is_driver: bool = False
    ) -> RewardResult:
        """Apply reward deltas for one participant and re-derive their level."""
        try:
            deltas = compute_reward_deltas(max(0, distance_meters or 0), is_driver)

            user = await self.users.increment_rewards(
                user_id,
                carbon_saved=deltas.carbon_saved,
                ride_credits=deltas.credits_earned,
                loyalty_points=deltas.points_earned,
            )
            if user is None:
                logger.warning(f"Reward skipped: user {user_id} not found")
                return RewardResult(carbon_saved=0, credits_earned=0, applied=False)

            level = level_for_points(user.loyalty_points, user.level)
            if level != user.level:
                await self.users.set_level(user_id, level)

            return RewardResult(
                carbon_saved=round_half_up(deltas.carbon_saved),
                credits_earned=deltas.credits_earned,
                points_earned=deltas.points_earned,
                level=level,
            )
        except Exception as e:
            logger.error(f"Carbon conversion error for {user_id}: {e}", exc_info=True)
            return RewardResult(carbon_saved=0, credits_earned=0, applied=False)
