import logging
import math
from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from rarity_roll.errors import EmptyPool, InvalidArgument, InvalidBoost
from rarity_roll.models.roll_models import RarityEntry, RarityPool, RollOptions, RollResult

logger = logging.getLogger(__name__)

# scale factors this close to zero are rounding noise, not a rejected boost
_SCALE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class PoolSlot:
    entry: RarityEntry
    weight: float


def pool_total(slots: Iterable[PoolSlot]) -> float:
    return math.fsum(s.weight for s in slots)


def filter_entries(pool: RarityPool, event_name: Optional[str]) -> List[RarityEntry]:
    """Event-only rarities are eligible only while their event is requested."""
    return [
        entry for entry in pool.entries
        if entry.event_only is None or (event_name is not None and entry.event_only == event_name)
    ]


def apply_boosts(slots: List[PoolSlot], boosts: Mapping[str, float]) -> List[PoolSlot]:
    """
    Add extra chance points to named rarities and rescale every other slot
    so the pool keeps its total weight.
    """
    names = {s.entry.name for s in slots}
    for name in boosts:
        if name not in names:
            logger.debug("Ignoring boost for ineligible rarity '%s'", name)

    boosted = [s for s in slots if s.entry.name in boosts]
    if not boosted:
        return slots

    total = pool_total(slots)
    original = math.fsum(s.weight for s in boosted)
    new_weights = {s.entry.name: s.weight + boosts[s.entry.name] for s in boosted}

    for name, weight in new_weights.items():
        if weight < 0:
            raise InvalidBoost(f"Boost drives '{name}' to a negative weight ({weight:g})")

    boosted_total = math.fsum(new_weights.values())
    remainder = total - original

    if len(boosted) == len(slots) or remainder <= 0:
        # nothing left to absorb the boost; shrink the boosted slots back to the total
        extra = boosted_total - original
        if extra > total:
            raise InvalidBoost(
                f"Boosts total {extra:g} extra points, more than the pool's {total:g} total weight"
            )
        if boosted_total <= 0:
            raise EmptyPool("Boosts leave the pool with zero total weight")
        scale = total / boosted_total
        return [
            replace(s, weight=new_weights[s.entry.name] * scale) if s.entry.name in new_weights
            else replace(s, weight=0.0)
            for s in slots
        ]

    scale = (total - boosted_total) / remainder
    if scale < 0:
        if scale < -_SCALE_TOLERANCE:
            raise InvalidBoost(
                f"Boosts total {boosted_total - original:g} extra points, "
                f"more than the pool's {remainder:g} unboosted weight"
            )
        scale = 0.0

    return [
        replace(s, weight=new_weights[s.entry.name]) if s.entry.name in new_weights
        else replace(s, weight=s.weight * scale)
        for s in slots
    ]


def weight_boost_points(slots: Sequence[PoolSlot], multipliers: Mapping[str, float]) -> dict:
    """Turn per-rarity weight multipliers into extra chance points."""
    return {
        s.entry.name: s.weight * (multipliers[s.entry.name] - 1.0)
        for s in slots
        if s.entry.name in multipliers
    }


def build_pool(pool: RarityPool, options: RollOptions,
               weight_boosts: Optional[Mapping[str, float]] = None) -> List[PoolSlot]:
    """
    Build this call's weighted list: filter by event, apply the caller's
    rarity booster, then the player's live weight boosts. Slots come back
    rarest first so the rarest rarities own the low end of the range.
    The source pool is never modified.
    """
    entries = filter_entries(pool, options.event_name)
    slots = [PoolSlot(entry, entry.chance) for entry in entries]
    if not slots or pool_total(slots) <= 0:
        raise EmptyPool("No eligible rarities for this roll")

    if options.rarity_booster:
        slots = apply_boosts(slots, options.rarity_booster)

    if weight_boosts:
        slots = apply_boosts(slots, weight_boost_points(slots, weight_boosts))

    if pool_total(slots) <= 0:
        raise EmptyPool("Pool has zero total weight after boosting")

    return sorted(slots, key=lambda s: s.entry.rarity_score, reverse=True)


def compute_attempts(effective_luck: float, luck_cap: float, policy: str = "floor", rng=None) -> int:
    """
    Whole-number attempts from luck, clamped to [0, luck_cap].

    The "fractional" policy adds one more attempt with probability equal to
    the fractional part of the luck; it needs the roll's generator.
    """
    if effective_luck <= 0 or luck_cap <= 0:
        return 0
    if not math.isfinite(luck_cap):
        raise InvalidArgument("luck cap must be finite")
    cap = math.floor(luck_cap)
    # clamp before flooring; luck itself may overflow to inf
    if effective_luck >= cap:
        return cap
    attempts = math.floor(effective_luck)
    if policy == "fractional":
        if rng is None:
            raise ValueError("fractional attempt policy requires a generator")
        if rng.random() < effective_luck - attempts:
            attempts += 1
    return min(attempts, cap)


def draw_slot(slots: Sequence[PoolSlot], total: float, rng, luck_booster: float = 1.0) -> PoolSlot:
    """One weighted draw. luck_booster > 1 pulls the value toward the rare end."""
    value = rng.random() * total / luck_booster
    value = min(max(value, 0.0), math.nextafter(total, 0.0))

    cumulative = 0.0
    for slot in slots:
        cumulative += slot.weight
        if value < cumulative:
            return slot
    # float rounding at the top of the range
    return next(s for s in reversed(slots) if s.weight > 0)


def roll_attempts(slots: Sequence[PoolSlot], attempts: int, rng, luck_booster: float = 1.0) -> List[RollResult]:
    """Run every attempt on the same generator, advancing between draws."""
    total = pool_total(slots)
    return [
        RollResult.from_entry(draw_slot(slots, total, rng, luck_booster).entry)
        for _ in range(attempts)
    ]


def select_best(outcomes: Sequence[RollResult]) -> Tuple[int, RollResult]:
    """Highest rarity score wins; the first attempt wins a tie."""
    if not outcomes:
        raise ValueError("No outcomes to select from")
    best_index = 0
    for i, outcome in enumerate(outcomes):
        if outcome.rarity_score > outcomes[best_index].rarity_score:
            best_index = i
    return best_index, outcomes[best_index]
