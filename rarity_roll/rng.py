"""Per-roll random generators and the entropy seeder that keys them.

Every roll builds its own ``random.Random``; the module-level ``random``
functions (the shared default generator) are never used by the engine.
"""

import hashlib
import itertools
import logging
import random
import threading
import time
import uuid
from typing import Optional

from rarity_roll.models.roll_models import PlayerId

logger = logging.getLogger(__name__)


class EntropySeeder:
    """Produces a fresh seed per roll.

    Blends a UUID4's integer value, the high-resolution clock, a per-lane
    monotonically increasing counter and the requesting player's id through
    BLAKE2b. The digest is order-sensitive and one-way, so the selected rarity
    says nothing useful about the inputs.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._issued = 0

    @property
    def rolls_seeded(self) -> int:
        return self._issued

    def _next_count(self) -> int:
        with self._lock:
            self._issued = next(self._counter)
            return self._issued

    def next_seed(self, player_user_id: Optional[PlayerId] = None) -> int:
        digest = hashlib.blake2b(digest_size=16, person=b"rarity-roll")
        digest.update(uuid.uuid4().int.to_bytes(16, "big"))
        digest.update(b"|")
        digest.update(time.time_ns().to_bytes(8, "big"))
        digest.update(time.perf_counter_ns().to_bytes(8, "big"))
        digest.update(b"|")
        digest.update(self._next_count().to_bytes(8, "big"))
        digest.update(b"|")
        if player_user_id is not None:
            digest.update(f"{type(player_user_id).__name__}:{player_user_id}".encode())
        return int.from_bytes(digest.digest(), "big")


def get_rng(seed: Optional[int] = None, seeder: Optional[EntropySeeder] = None,
            player_user_id: Optional[PlayerId] = None) -> random.Random:
    """Return a new generator owned by the caller.

    An explicit ``seed`` gives a reproducible sequence; otherwise the seed is
    drawn from ``seeder`` (or a throwaway one).
    """
    if seed is None:
        seeder = seeder or EntropySeeder()
        seed = seeder.next_seed(player_user_id)
    else:
        logger.debug("Using caller-injected seed")
    return random.Random(seed)
