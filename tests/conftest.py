import pytest

from rarity_roll.config import Settings
from rarity_roll.models.roll_models import RarityPool
from rarity_roll.multiplier_store import MultiplierStore
from rarity_roll.rng import EntropySeeder
from rarity_roll.services.roll_service import RollService


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MultiplierStore(clock=clock)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def service(store, settings):
    return RollService(store=store, seeder=EntropySeeder(), settings=settings)


@pytest.fixture
def pool():
    return RarityPool.from_mapping({
        "Common": {"chance": 60, "visual_tier": 1},
        "Uncommon": {"chance": 25, "visual_tier": 2},
        "Rare": {"chance": 10, "visual_tier": 3},
        "Legendary": {"chance": 5, "visual_tier": 4},
        "Spooky": {"chance": 2, "visual_tier": 5, "event_only": "Halloween"},
    })


@pytest.fixture
def untiered_pool():
    return RarityPool.from_mapping({
        "A": {"chance": 50},
        "B": {"chance": 30},
        "C": {"chance": 20},
    })
