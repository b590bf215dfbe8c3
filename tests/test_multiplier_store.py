import threading
import time

import pytest

from rarity_roll.errors import InvalidArgument
from rarity_roll.multiplier_store import MultiplierStore


class TestBaseLuck:
    @pytest.mark.parametrize("bad", [0, -5, float("nan"), float("inf"), "3", True])
    def test_rejects_invalid_and_keeps_value(self, store, bad):
        store.set_base_luck(4)
        with pytest.raises(InvalidArgument):
            store.set_base_luck(bad)
        assert store.base_luck == 4

    def test_replaces_value(self, store):
        store.set_base_luck(2.5)
        assert store.base_luck == 2.5

    def test_invalid_argument_is_value_error(self, store):
        with pytest.raises(ValueError):
            store.set_base_luck(0)

    def test_constructor_validates(self):
        with pytest.raises(InvalidArgument):
            MultiplierStore(base_luck=0)


class TestEventMultipliers:
    def test_defaults_to_one(self, store):
        assert store.get_event_multiplier("Halloween") == 1.0
        assert store.get_event_multiplier(None) == 1.0

    def test_replaces_not_accumulates(self, store):
        store.set_event_multiplier("Halloween", 2)
        store.set_event_multiplier("Halloween", 3)
        assert store.get_event_multiplier("Halloween") == 3

    def test_expires_after_duration(self, store, clock):
        store.set_event_multiplier("Halloween", 2, duration=1)
        assert store.get_event_multiplier("Halloween") == 2
        clock.advance(0.5)
        assert store.get_event_multiplier("Halloween") == 2
        clock.advance(0.5)
        assert store.get_event_multiplier("Halloween") == 1.0
        assert "Halloween" not in store.snapshot()["events"]

    def test_overwrite_without_duration_cancels_expiry(self, store, clock):
        store.set_event_multiplier("Halloween", 2, duration=1)
        store.set_event_multiplier("Halloween", 5)
        clock.advance(10)
        assert store.get_event_multiplier("Halloween") == 5

    def test_overwrite_resets_expiry(self, store, clock):
        store.set_event_multiplier("Halloween", 2, duration=1)
        store.set_event_multiplier("Halloween", 4, duration=5)
        clock.advance(2)
        assert store.get_event_multiplier("Halloween") == 4
        clock.advance(3)
        assert store.get_event_multiplier("Halloween") == 1.0

    def test_invalid_input_leaves_state(self, store):
        store.set_event_multiplier("Halloween", 2)
        with pytest.raises(InvalidArgument):
            store.set_event_multiplier("Halloween", -1)
        with pytest.raises(InvalidArgument):
            store.set_event_multiplier("Halloween", 3, duration=-2)
        with pytest.raises(InvalidArgument):
            store.set_event_multiplier("", 3)
        assert store.get_event_multiplier("Halloween") == 2

    def test_clear(self, store):
        store.set_event_multiplier("Halloween", 2, duration=1)
        assert store.clear_event_multiplier("Halloween") is True
        assert store.clear_event_multiplier("Halloween") is False
        assert store.get_event_multiplier("Halloween") == 1.0


class TestPlayerEntries:
    def test_player_luck_expiry(self, store, clock):
        store.set_player_luck(42, 3, duration=10)
        assert store.get_player_luck(42) == 3
        clock.advance(10)
        assert store.get_player_luck(42) == 1.0

    def test_int_and_str_ids_are_the_same_player(self, store):
        store.set_player_luck(42, 3)
        assert store.get_player_luck("42") == 3
        assert store.clear_player_luck("42") is True

    def test_player_id_required(self, store):
        with pytest.raises(InvalidArgument):
            store.set_player_luck(None, 2)

    def test_concurrent_rarity_boosts(self, store, clock):
        store.set_player_weight_boost(7, "Rare", 2)
        store.set_player_weight_boost(7, "Legendary", 3, duration=5)
        assert store.get_player_weight_boosts(7) == {"Rare": 2, "Legendary": 3}
        clock.advance(5)
        assert store.get_player_weight_boosts(7) == {"Rare": 2}

    def test_weight_boost_must_be_positive(self, store):
        with pytest.raises(InvalidArgument):
            store.set_player_weight_boost(7, "Rare", 0)
        assert store.get_player_weight_boosts(7) == {}

    def test_clear_single_and_all_boosts(self, store):
        store.set_player_weight_boost(7, "Rare", 2)
        store.set_player_weight_boost(7, "Epic", 2)
        assert store.clear_player_weight_boost(7, "Rare") is True
        assert store.clear_player_weight_boost(7, "Rare") is False
        assert store.clear_player_weight_boost(7) is True
        assert store.get_player_weight_boosts(7) == {}

    def test_resolve_reads_everything_at_once(self, store):
        store.set_base_luck(2)
        store.set_event_multiplier("Halloween", 3)
        store.set_player_luck(1, 4)
        store.set_player_weight_boost(1, "Rare", 5)
        resolved = store.resolve("Halloween", 1)
        assert resolved.base_luck == 2
        assert resolved.event_multiplier == 3
        assert resolved.player_multiplier == 4
        assert dict(resolved.weight_boosts) == {"Rare": 5}

    def test_resolve_defaults(self, store):
        resolved = store.resolve()
        assert (resolved.event_multiplier, resolved.player_multiplier, resolved.weight_boosts) == (1.0, 1.0, ())


class TestSweep:
    def test_sweep_removes_without_reads(self, store, clock):
        store.set_event_multiplier("A", 2, duration=1)
        store.set_player_luck(1, 2, duration=3)
        clock.advance(2)
        assert store.sweep() == 1
        clock.advance(2)
        assert store.sweep() == 1
        assert store.sweep() == 0

    def test_stale_heap_items_do_not_remove_replacement(self, store, clock):
        store.set_player_weight_boost(1, "Rare", 2, duration=1)
        store.set_player_weight_boost(1, "Rare", 3, duration=10)
        clock.advance(1)
        assert store.sweep() == 0
        assert store.get_player_weight_boosts(1) == {"Rare": 3}

    def test_background_sweeper_removes_expired_entries(self):
        store = MultiplierStore()
        store.set_event_multiplier("Flash", 2, duration=0.05)
        store.start_sweeper(interval=0.01)
        try:
            deadline = time.monotonic() + 2
            while "Flash" in store._events and time.monotonic() < deadline:
                time.sleep(0.01)
            assert "Flash" not in store._events
        finally:
            store.stop_sweeper()

    def test_disabled_sweeper_is_noop(self, store):
        store.start_sweeper(interval=0)
        store.stop_sweeper()


class TestSnapshots:
    def test_snapshot_reports_remaining_time(self, store, clock):
        store.set_event_multiplier("Halloween", 2, duration=10)
        store.set_player_weight_boost(5, "Rare", 1.5)
        clock.advance(4)
        snap = store.snapshot()
        assert snap["events"]["Halloween"] == {"multiplier": 2, "remaining_seconds": 6}
        assert snap["weight_boosts"]["5"]["Rare"]["remaining_seconds"] is None

    def test_lanes_are_isolated_until_propagated(self, store, clock):
        other = MultiplierStore(clock=clock)
        store.set_base_luck(3)
        store.set_event_multiplier("Halloween", 2, duration=10)
        assert other.get_event_multiplier("Halloween") == 1.0
        assert other.base_luck == 1.0

        other.load_snapshot(store.snapshot())
        assert other.base_luck == 3
        assert other.get_event_multiplier("Halloween") == 2
        clock.advance(10)
        assert other.get_event_multiplier("Halloween") == 1.0

    def test_clear_keeps_base_luck(self, store):
        store.set_base_luck(2)
        store.set_event_multiplier("A", 2)
        store.clear()
        assert store.base_luck == 2
        assert store.snapshot()["events"] == {}


def test_concurrent_writes_never_tear(store):
    allowed = {1.0, 2.0, 3.0}
    seen = set()
    stop = threading.Event()

    def writer(value):
        while not stop.is_set():
            store.set_player_luck(9, value)

    threads = [threading.Thread(target=writer, args=(v,)) for v in (2.0, 3.0)]
    for t in threads:
        t.start()
    try:
        for _ in range(2000):
            seen.add(store.resolve(user_id=9).player_multiplier)
    finally:
        stop.set()
        for t in threads:
            t.join()
    assert seen <= allowed
