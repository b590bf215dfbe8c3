"""Process-lifetime luck configuration for one execution lane.

All mutation and every read happen under one lock, so a reader sees each key
either fully old or fully new. Entries set with a duration are removed by the
store itself: lazily before any read and proactively by an optional
background sweeper thread.
"""

import heapq
import itertools
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from rarity_roll.errors import InvalidArgument
from rarity_roll.models.roll_models import PlayerId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    value: float
    expires_at: Optional[float]
    token: int


@dataclass(frozen=True)
class ResolvedMultipliers:
    """Consistent view of the store taken for a single roll."""

    base_luck: float
    event_multiplier: float = 1.0
    player_multiplier: float = 1.0
    weight_boosts: Tuple[Tuple[str, float], ...] = ()


def _check_number(label: str, value, minimum: float = 0.0, inclusive: bool = True) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgument(f"{label} must be a number")
    if not math.isfinite(value):
        raise InvalidArgument(f"{label} must be finite")
    if value < minimum or (not inclusive and value == minimum):
        op = ">=" if inclusive else ">"
        raise InvalidArgument(f"{label} must be {op} {minimum:g}, got {value:g}")
    return float(value)


def _player_key(user_id: PlayerId) -> str:
    if user_id is None or user_id == "":
        raise InvalidArgument("user id is required")
    return str(user_id)


def _check_duration(duration: Optional[float]) -> Optional[float]:
    if duration is None:
        return None
    return _check_number("duration", duration)


class MultiplierStore:
    def __init__(self, base_luck: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self._base_luck = _check_number("base luck", base_luck, inclusive=False)
        self._clock = clock
        self._lock = threading.RLock()
        self._tokens = itertools.count(1)
        self._expiries: List[Tuple[float, int, Hashable]] = []

        self._events: Dict[str, _Entry] = {}
        self._players: Dict[str, _Entry] = {}
        self._boosts: Dict[str, Dict[str, _Entry]] = {}

        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    # ------------------------------------------------------------
    # Expiry bookkeeping (lock held by caller)
    # ------------------------------------------------------------

    def _new_entry(self, key: Hashable, value: float, duration: Optional[float]) -> _Entry:
        token = next(self._tokens)
        expires_at = None
        if duration is not None:
            expires_at = self._clock() + duration
            heapq.heappush(self._expiries, (expires_at, token, key))
        return _Entry(value, expires_at, token)

    def _lookup(self, key: Hashable) -> Optional[_Entry]:
        kind = key[0]
        if kind == "event":
            return self._events.get(key[1])
        if kind == "player":
            return self._players.get(key[1])
        return self._boosts.get(key[1], {}).get(key[2])

    def _discard(self, key: Hashable) -> None:
        kind = key[0]
        if kind == "event":
            self._events.pop(key[1], None)
        elif kind == "player":
            self._players.pop(key[1], None)
        else:
            boosts = self._boosts.get(key[1])
            if boosts is not None:
                boosts.pop(key[2], None)
                if not boosts:
                    del self._boosts[key[1]]

    def _purge_expired(self) -> int:
        now = self._clock()
        removed = 0
        while self._expiries and self._expiries[0][0] <= now:
            _, token, key = heapq.heappop(self._expiries)
            entry = self._lookup(key)
            # a replaced entry carries a new token; its old heap item is stale
            if entry is not None and entry.token == token:
                self._discard(key)
                removed += 1
                logger.debug("Expired multiplier %s", key)
        return removed

    def sweep(self) -> int:
        """Remove every entry whose expiry has passed. Returns the count removed."""
        with self._lock:
            return self._purge_expired()

    # ------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------

    def set_base_luck(self, value: float) -> None:
        value = _check_number("base luck", value, inclusive=False)
        with self._lock:
            self._base_luck = value
        logger.info("Base luck set to %g", value)

    def set_event_multiplier(self, event: str, multiplier: float, duration: Optional[float] = None) -> None:
        if not event:
            raise InvalidArgument("event name is required")
        multiplier = _check_number("event multiplier", multiplier)
        duration = _check_duration(duration)
        with self._lock:
            self._purge_expired()
            self._events[event] = self._new_entry(("event", event), multiplier, duration)
        logger.info("Event multiplier %s = %g (duration=%s)", event, multiplier, duration)

    def set_player_luck(self, user_id: PlayerId, multiplier: float, duration: Optional[float] = None) -> None:
        key = _player_key(user_id)
        multiplier = _check_number("player luck", multiplier)
        duration = _check_duration(duration)
        with self._lock:
            self._purge_expired()
            self._players[key] = self._new_entry(("player", key), multiplier, duration)
        logger.info("Player %s luck = %g (duration=%s)", key, multiplier, duration)

    def set_player_weight_boost(self, user_id: PlayerId, rarity_name: str, multiplier: float,
                                duration: Optional[float] = None) -> None:
        key = _player_key(user_id)
        if not rarity_name:
            raise InvalidArgument("rarity name is required")
        multiplier = _check_number("weight boost", multiplier, inclusive=False)
        duration = _check_duration(duration)
        with self._lock:
            self._purge_expired()
            entry = self._new_entry(("boost", key, rarity_name), multiplier, duration)
            self._boosts.setdefault(key, {})[rarity_name] = entry
        logger.info("Player %s weight boost %s = %g (duration=%s)", key, rarity_name, multiplier, duration)

    # ------------------------------------------------------------
    # Explicit clears
    # ------------------------------------------------------------

    def clear_event_multiplier(self, event: str) -> bool:
        with self._lock:
            return self._events.pop(event, None) is not None

    def clear_player_luck(self, user_id: PlayerId) -> bool:
        key = _player_key(user_id)
        with self._lock:
            return self._players.pop(key, None) is not None

    def clear_player_weight_boost(self, user_id: PlayerId, rarity_name: Optional[str] = None) -> bool:
        key = _player_key(user_id)
        with self._lock:
            if rarity_name is None:
                return self._boosts.pop(key, None) is not None
            if rarity_name not in self._boosts.get(key, {}):
                return False
            self._discard(("boost", key, rarity_name))
            return True

    def clear(self) -> None:
        """Drop every multiplier and boost. Base luck is kept."""
        with self._lock:
            self._events.clear()
            self._players.clear()
            self._boosts.clear()
            self._expiries.clear()

    # ------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------

    @property
    def base_luck(self) -> float:
        with self._lock:
            return self._base_luck

    def get_event_multiplier(self, event: Optional[str]) -> float:
        with self._lock:
            self._purge_expired()
            entry = self._events.get(event) if event else None
            return entry.value if entry else 1.0

    def get_player_luck(self, user_id: Optional[PlayerId]) -> float:
        with self._lock:
            self._purge_expired()
            entry = self._players.get(str(user_id)) if user_id is not None else None
            return entry.value if entry else 1.0

    def get_player_weight_boosts(self, user_id: Optional[PlayerId]) -> Dict[str, float]:
        with self._lock:
            self._purge_expired()
            boosts = self._boosts.get(str(user_id), {}) if user_id is not None else {}
            return {name: entry.value for name, entry in boosts.items()}

    def resolve(self, event: Optional[str] = None, user_id: Optional[PlayerId] = None) -> ResolvedMultipliers:
        """Read everything a roll needs under a single lock acquisition."""
        key = str(user_id) if user_id is not None else None
        with self._lock:
            self._purge_expired()
            event_entry = self._events.get(event) if event else None
            player_entry = self._players.get(key) if key is not None else None
            boosts = self._boosts.get(key, {}) if key is not None else {}
            return ResolvedMultipliers(
                base_luck=self._base_luck,
                event_multiplier=event_entry.value if event_entry else 1.0,
                player_multiplier=player_entry.value if player_entry else 1.0,
                weight_boosts=tuple((name, e.value) for name, e in boosts.items()),
            )

    # ------------------------------------------------------------
    # Lane propagation
    # ------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Live state with the remaining seconds of each timed entry."""
        with self._lock:
            self._purge_expired()
            now = self._clock()

            def describe(entry: _Entry) -> Dict[str, Any]:
                remaining = None
                if entry.expires_at is not None:
                    remaining = max(0.0, entry.expires_at - now)
                return {"multiplier": entry.value, "remaining_seconds": remaining}

            return {
                "base_luck": self._base_luck,
                "events": {k: describe(e) for k, e in self._events.items()},
                "players": {k: describe(e) for k, e in self._players.items()},
                "weight_boosts": {
                    uid: {name: describe(e) for name, e in boosts.items()}
                    for uid, boosts in self._boosts.items()
                },
            }

    def load_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Replace this store's state with one taken from another lane."""
        base_luck = _check_number("base luck", snapshot["base_luck"], inclusive=False)
        with self._lock:
            self.clear()
            self._base_luck = base_luck
            for event, item in snapshot.get("events", {}).items():
                self._events[event] = self._new_entry(
                    ("event", event), item["multiplier"], item["remaining_seconds"])
            for uid, item in snapshot.get("players", {}).items():
                self._players[uid] = self._new_entry(
                    ("player", uid), item["multiplier"], item["remaining_seconds"])
            for uid, boosts in snapshot.get("weight_boosts", {}).items():
                for name, item in boosts.items():
                    self._boosts.setdefault(uid, {})[name] = self._new_entry(
                        ("boost", uid, name), item["multiplier"], item["remaining_seconds"])

    # ------------------------------------------------------------
    # Background sweeper
    # ------------------------------------------------------------

    def start_sweeper(self, interval: float = 1.0) -> None:
        if interval <= 0 or (self._sweeper is not None and self._sweeper.is_alive()):
            return
        self._stop.clear()

        def run():
            while not self._stop.wait(interval):
                removed = self.sweep()
                if removed:
                    logger.debug("Sweeper removed %d expired entries", removed)

        self._sweeper = threading.Thread(target=run, name="multiplier-sweeper", daemon=True)
        self._sweeper.start()
        logger.info("Multiplier sweeper started (interval=%gs)", interval)

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._stop.set()
        self._sweeper.join()
        self._sweeper = None
        logger.info("Multiplier sweeper stopped")
