from typing import Optional

from pydantic import BaseModel, Field

from rarity_roll.models.roll_models import RarityPool, RollOptions

# -----------------------------
# ROLL REQUESTS
# -----------------------------

class RollRequest(BaseModel):
    pool: RarityPool = Field(
        description="Rarity pool definition to roll against."
    )
    options: RollOptions = Field(
        default_factory=RollOptions,
        description="Per-call luck inputs. Omitted fields use lane defaults."
    )
    seed: Optional[int] = Field(
        default=None,
        description="Optional RNG seed for reproducible results. "
                    "Same seed and store state always produce the same rolls."
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "pool": {
                    "entries": [
                        {"name": "Common", "chance": 60, "visual_tier": 1},
                        {"name": "Rare", "chance": 30, "visual_tier": 2},
                        {"name": "Legendary", "chance": 9, "visual_tier": 3},
                        {"name": "Mythic", "chance": 1, "visual_tier": 4, "event_only": "Halloween"},
                    ]
                },
                "options": {"luck_multiplier": 3, "event_name": "Halloween"},
            }
        }
    }


class LuckRequest(BaseModel):
    options: RollOptions = Field(default_factory=RollOptions)


# -----------------------------
# SIMULATION REQUEST
# -----------------------------

class SimulationRequest(RollRequest):
    simulations: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Number of simulated rolls. Max: 100,000"
    )


# -----------------------------
# MULTIPLIER SETTERS
# -----------------------------

class BaseLuckRequest(BaseModel):
    value: float = Field(description="New global base luck. Must be > 0.")


class MultiplierRequest(BaseModel):
    multiplier: float = Field(description="Replaces any existing multiplier for this key.")
    duration_seconds: Optional[float] = Field(
        default=None,
        description="Remove automatically after this many seconds. Omit to keep until cleared."
    )
