import math
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

PlayerId = Union[int, str]


class RarityEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique rarity name within a pool")
    chance: float = Field(..., gt=0, description="Relative weight (not normalized)")
    visual_tier: Optional[int] = Field(None, description="Ordered rank, higher = rarer")
    event_only: Optional[str] = Field(None, description="Event that unlocks this rarity")

    @field_validator("chance")
    @classmethod
    def finite_chance(cls, v):
        if not math.isfinite(v):
            raise ValueError("chance must be finite")
        return v

    @property
    def rarity_score(self) -> float:
        """Tier when present, otherwise inverse chance (rarer scores higher)."""
        if self.visual_tier is not None:
            return float(self.visual_tier)
        return 1.0 / self.chance


class RarityPool(BaseModel):
    entries: List[RarityEntry] = Field(..., description="Rarity definitions, names unique")

    @field_validator("entries")
    @classmethod
    def unique_names(cls, v):
        seen = set()
        for entry in v:
            if entry.name in seen:
                raise ValueError(f"duplicate rarity name '{entry.name}'")
            seen.add(entry.name)
        return v

    @classmethod
    def from_mapping(cls, table: Dict[str, dict]) -> "RarityPool":
        """Build a pool from a {name: {chance, visual_tier, event_only}} table."""
        return cls(entries=[RarityEntry(name=name, **cfg) for name, cfg in table.items()])


class RollOptions(BaseModel):
    """Per-call roll inputs. Unset base_luck / luck_cap resolve from the lane."""

    model_config = ConfigDict(frozen=True)

    base_luck: Optional[float] = Field(None, gt=0)
    luck_multiplier: float = 1.0
    luck_booster: float = Field(1.0, gt=0)
    rarity_booster: Dict[str, float] = Field(default_factory=dict)
    luck_cap: Optional[float] = Field(None, ge=0)
    player_user_id: Optional[PlayerId] = None
    event_name: Optional[str] = None

    @field_validator("base_luck", "luck_multiplier", "luck_booster", "luck_cap")
    @classmethod
    def finite(cls, v):
        if v is not None and not math.isfinite(v):
            raise ValueError("value must be finite")
        return v

    @field_validator("rarity_booster")
    @classmethod
    def finite_boosts(cls, v):
        for name, amount in v.items():
            if not math.isfinite(amount):
                raise ValueError(f"boost for '{name}' must be finite")
        return v


class RollResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    chance: float
    visual_tier: Optional[int] = None
    event_only: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: RarityEntry) -> "RollResult":
        return cls(
            name=entry.name,
            chance=entry.chance,
            visual_tier=entry.visual_tier,
            event_only=entry.event_only,
        )

    @property
    def rarity_score(self) -> float:
        if self.visual_tier is not None:
            return float(self.visual_tier)
        return 1.0 / self.chance


class LuckDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_luck: float
    luck_multiplier: float
    event_multiplier: float = 1.0
    player_multiplier: float = 1.0
    effective_luck: float
    luck_booster: float
    luck_cap: float
    attempts: int
    attempt_policy: str = "floor"


class RollSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    rolls_made: int
    all_rolls: List[RollResult]
    best_roll: RollResult
    luck_details: LuckDetails
    event_name: Optional[str] = None

    def render(self) -> str:
        """Multi-line, human-readable rendering of the summary."""
        d = self.luck_details
        lines = [
            f"Rolls made: {self.rolls_made}",
            f"Best roll: {self.best_roll.name}"
            + (f" (tier {self.best_roll.visual_tier})" if self.best_roll.visual_tier is not None else ""),
            f"Luck: base {d.base_luck:g} x multiplier {d.luck_multiplier:g}"
            f" x event {d.event_multiplier:g} x player {d.player_multiplier:g}"
            f" = {d.effective_luck:g} (cap {d.luck_cap:g}, booster {d.luck_booster:g})",
        ]
        if self.event_name:
            lines.append(f"Event: {self.event_name}")
        lines.append("All rolls: " + ", ".join(r.name for r in self.all_rolls))
        return "\n".join(lines)
