import logging
import math
import sys
from collections import Counter
from typing import Dict, Optional

from rarity_roll.config import Settings, get_settings
from rarity_roll.drop_engine import build_pool, compute_attempts, roll_attempts, select_best
from rarity_roll.errors import EmptyPool, NoAttempts
from rarity_roll.models.roll_models import (
    LuckDetails,
    PlayerId,
    RarityPool,
    RollOptions,
    RollResult,
    RollSummary,
)
from rarity_roll.multiplier_store import MultiplierStore, ResolvedMultipliers
from rarity_roll.rng import EntropySeeder, get_rng

logger = logging.getLogger(__name__)


class RollService:
    """
    One execution lane: a multiplier store, the seeder holding the lane's
    roll counter, and settings. Lanes share nothing with each other.
    """

    def __init__(self, store: Optional[MultiplierStore] = None,
                 seeder: Optional[EntropySeeder] = None,
                 settings: Optional[Settings] = None):
        self.store = store or MultiplierStore()
        self.seeder = seeder or EntropySeeder()
        self.settings = settings or get_settings()

    # ============================================================
    # SETTERS
    # ============================================================

    def set_base_luck(self, value: float) -> None:
        self.store.set_base_luck(value)

    def set_event_multiplier(self, event: str, multiplier: float, duration: Optional[float] = None) -> None:
        self.store.set_event_multiplier(event, multiplier, duration)

    def set_player_luck(self, user_id: PlayerId, multiplier: float, duration: Optional[float] = None) -> None:
        self.store.set_player_luck(user_id, multiplier, duration)

    def set_player_weight_boost(self, user_id: PlayerId, rarity_name: str, multiplier: float,
                                duration: Optional[float] = None) -> None:
        self.store.set_player_weight_boost(user_id, rarity_name, multiplier, duration)

    # ============================================================
    # LUCK
    # ============================================================

    def _luck_details(self, options: RollOptions, resolved: ResolvedMultipliers, attempts: int = 0) -> LuckDetails:
        base_luck = options.base_luck if options.base_luck is not None else resolved.base_luck
        luck_cap = options.luck_cap if options.luck_cap is not None else self.settings.default_luck_cap
        luck_cap = min(luck_cap, self.settings.max_luck_cap)
        effective_luck = base_luck * options.luck_multiplier * resolved.event_multiplier * resolved.player_multiplier
        if math.isinf(effective_luck):
            # finite factors can still overflow; saturate so the value stays JSON-safe
            effective_luck = math.copysign(sys.float_info.max, effective_luck)
        return LuckDetails(
            base_luck=base_luck,
            luck_multiplier=options.luck_multiplier,
            event_multiplier=resolved.event_multiplier,
            player_multiplier=resolved.player_multiplier,
            effective_luck=effective_luck,
            luck_booster=options.luck_booster,
            luck_cap=luck_cap,
            attempts=attempts,
            attempt_policy=self.settings.attempt_policy,
        )

    def luck_details(self, options: Optional[RollOptions] = None) -> LuckDetails:
        """Resolved luck inputs and the whole attempts they guarantee."""
        options = options or RollOptions()
        resolved = self.store.resolve(options.event_name, options.player_user_id)
        details = self._luck_details(options, resolved)
        attempts = compute_attempts(details.effective_luck, details.luck_cap)
        return details.model_copy(update={"attempts": attempts})

    def get_effective_luck(self, options: Optional[RollOptions] = None) -> float:
        return self.luck_details(options).effective_luck

    # ============================================================
    # ROLLS
    # ============================================================

    def _execute(self, pool: RarityPool, options: RollOptions, seed: Optional[int]) -> RollSummary:
        resolved = self.store.resolve(options.event_name, options.player_user_id)
        slots = build_pool(pool, options, dict(resolved.weight_boosts))

        details = self._luck_details(options, resolved)
        policy = self.settings.attempt_policy
        if policy == "floor":
            attempts = compute_attempts(details.effective_luck, details.luck_cap)
            if attempts == 0:
                raise NoAttempts(f"Effective luck {details.effective_luck:g} gives no attempts")
            rng = get_rng(seed, self.seeder, options.player_user_id)
        else:
            if details.effective_luck <= 0 or details.luck_cap < 1:
                raise NoAttempts(f"Effective luck {details.effective_luck:g} gives no attempts")
            rng = get_rng(seed, self.seeder, options.player_user_id)
            attempts = compute_attempts(details.effective_luck, details.luck_cap, policy, rng)
            if attempts == 0:
                raise NoAttempts(f"Fractional luck {details.effective_luck:g} rolled no attempts")

        outcomes = roll_attempts(slots, attempts, rng, options.luck_booster)
        index, best = select_best(outcomes)
        logger.debug("Rolled %d attempts, best '%s' at attempt %d", attempts, best.name, index)

        return RollSummary(
            rolls_made=attempts,
            all_rolls=outcomes,
            best_roll=best,
            luck_details=details.model_copy(update={"attempts": attempts}),
            event_name=options.event_name,
        )

    def roll(self, pool: RarityPool, options: Optional[RollOptions] = None, seed: Optional[int] = None) -> RollResult:
        """Best rarity across this call's attempts."""
        return self._execute(pool, options or RollOptions(), seed).best_roll

    def roll_or_none(self, pool: RarityPool, options: Optional[RollOptions] = None,
                     seed: Optional[int] = None) -> Optional[RollResult]:
        """Like roll(), but None when there is nothing to roll."""
        try:
            return self.roll(pool, options, seed)
        except (NoAttempts, EmptyPool) as e:
            logger.debug("No roll result: %s", e)
            return None

    def roll_summary(self, pool: RarityPool, options: Optional[RollOptions] = None,
                     seed: Optional[int] = None) -> RollSummary:
        return self._execute(pool, options or RollOptions(), seed)

    # ============================================================
    # SIMULATION
    # ============================================================

    def simulate(self, pool: RarityPool, options: Optional[RollOptions] = None,
                 simulations: int = 1000, seed: Optional[int] = None) -> Dict:
        """Run independent rolls and report how often each rarity won."""
        options = options or RollOptions()
        seeds = get_rng(seed) if seed is not None else None
        counts = Counter()
        no_result = 0

        for _ in range(simulations):
            roll_seed = seeds.getrandbits(64) if seeds is not None else None
            try:
                counts[self.roll(pool, options, roll_seed).name] += 1
            except NoAttempts:
                no_result += 1

        distribution = {
            entry.name: round((counts.get(entry.name, 0) / simulations) * 100, 2)
            for entry in pool.entries
            if entry.name in counts
        }
        return {
            "simulations": simulations,
            "rarity_distribution": distribution,
            "counts": dict(counts),
            "no_result": no_result,
        }


# ============================================================
# DEFAULT LANE
# ============================================================

_default_service: Optional[RollService] = None


def get_roll_service() -> RollService:
    global _default_service
    if _default_service is None:
        _default_service = RollService()
    return _default_service


def set_base_luck(value: float) -> None:
    get_roll_service().set_base_luck(value)


def set_event_multiplier(event: str, multiplier: float, duration: Optional[float] = None) -> None:
    get_roll_service().set_event_multiplier(event, multiplier, duration)


def set_player_luck(user_id: PlayerId, multiplier: float, duration: Optional[float] = None) -> None:
    get_roll_service().set_player_luck(user_id, multiplier, duration)


def set_player_weight_boost(user_id: PlayerId, rarity_name: str, multiplier: float,
                            duration: Optional[float] = None) -> None:
    get_roll_service().set_player_weight_boost(user_id, rarity_name, multiplier, duration)


def get_effective_luck(options: Optional[RollOptions] = None) -> float:
    return get_roll_service().get_effective_luck(options)


def roll(pool: RarityPool, options: Optional[RollOptions] = None, seed: Optional[int] = None) -> RollResult:
    return get_roll_service().roll(pool, options, seed)


def roll_summary(pool: RarityPool, options: Optional[RollOptions] = None, seed: Optional[int] = None) -> RollSummary:
    return get_roll_service().roll_summary(pool, options, seed)
