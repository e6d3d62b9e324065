import threading
import time

import pytest

from captcha_memstore import AnswerStore, ExpiredError, NotFoundError, StoreConfig, TTLStore


@pytest.fixture
def store():
    s = TTLStore()
    yield s
    s.close()


@pytest.fixture
def short_store():
    # Sweep interval long enough that it never fires during a test.
    s = TTLStore(StoreConfig(expiration_seconds=0.001, sweep_interval_seconds=60))
    yield s
    s.close()


def test_ttl_store_is_an_answer_store(store):
    assert isinstance(store, AnswerStore)


def test_set_then_get_returns_value(store):
    store.set("abc", "1234")
    assert store.get("abc", consume=False) == "1234"


@pytest.mark.parametrize("consume", [False, True])
def test_unknown_id_is_not_found(store, consume):
    with pytest.raises(NotFoundError) as excinfo:
        store.get("missing", consume=consume)
    assert excinfo.value.id == "missing"
    assert "missing" in str(excinfo.value)


def test_expired_entry_reported_and_left_in_place(short_store):
    short_store.set("abc", "1234")
    time.sleep(0.005)
    with pytest.raises(ExpiredError):
        short_store.get("abc", consume=False)
    assert "abc" in short_store._entries


def test_consuming_get_on_expired_entry_leaves_it_for_sweep(short_store):
    short_store.set("abc", "1234")
    time.sleep(0.005)
    with pytest.raises(ExpiredError):
        short_store.get("abc", consume=True)
    assert "abc" in short_store._entries


def test_consume_once(store):
    store.set("abc", "1234")
    assert store.get("abc", consume=True) == "1234"
    with pytest.raises(NotFoundError):
        store.get("abc", consume=False)
    with pytest.raises(NotFoundError):
        store.get("abc", consume=True)


def test_non_consuming_get_is_idempotent(store):
    store.set("abc", "1234")
    before = dict(store._entries)
    assert store.get("abc") == "1234"
    assert store.get("abc") == "1234"
    assert store._entries == before


def test_overwrite_replaces_value(store):
    store.set("abc", "a")
    store.set("abc", "b")
    assert store.get("abc") == "b"
    assert len(store._entries) == 1


def test_overwrite_refreshes_expiration(store):
    store.set("abc", "a")
    first = store._entries["abc"].expires_at
    time.sleep(0.002)
    store.set("abc", "b")
    assert store._entries["abc"].expires_at > first


def test_default_config():
    with TTLStore() as s:
        assert s.config.expiration_seconds == 600
        assert s.config.sweep_interval_seconds == 60


def test_delete_expired_only_removes_stale_entries():
    with TTLStore(StoreConfig(expiration_seconds=60, sweep_interval_seconds=60)) as s:
        s.set("fresh", "1")
        s.set("stale", "2")
        s._entries["stale"].expires_at -= 120 * 1_000_000_000
        assert s._delete_expired() == 1
        assert list(s._entries) == ["fresh"]


def test_sweep_evicts_unread_entries():
    with TTLStore(StoreConfig(expiration_seconds=0.001, sweep_interval_seconds=0.005)) as s:
        s.set("abc", "1234")
        deadline = time.monotonic() + 2
        while "abc" in s._entries and time.monotonic() < deadline:
            time.sleep(0.005)
        assert "abc" not in s._entries
        with pytest.raises(NotFoundError):
            s.get("abc")


def test_close_stops_sweep_thread():
    s = TTLStore(StoreConfig(sweep_interval_seconds=0.005))
    assert s._sweeper.is_alive()
    assert not s.closed
    s.close()
    assert s.closed
    assert not s._sweeper.is_alive()
    s.close()


def test_context_manager_closes_store():
    with TTLStore(StoreConfig(sweep_interval_seconds=0.005)) as s:
        s.set("abc", "1")
    assert s.closed
    assert not s._sweeper.is_alive()


def test_no_sweep_after_close():
    s = TTLStore(StoreConfig(expiration_seconds=0.001, sweep_interval_seconds=0.005))
    s.close()
    s.set("abc", "1234")
    time.sleep(0.05)
    assert "abc" in s._entries
    with pytest.raises(ExpiredError):
        s.get("abc")


def test_concurrent_disjoint_ids_lose_no_updates(store):
    errors = []

    def worker(n):
        for i in range(200):
            id = f"{n}-{i}"
            store.set(id, id)
            if store.get(id) != id:
                errors.append(id)
            if store.get(id, consume=True) != id:
                errors.append(id)
            store.set(id, f"{id}-again")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(store._entries) == 8 * 200
    assert store.get("3-7") == "3-7-again"


def test_concurrent_consume_hands_answer_to_exactly_one_caller(store):
    store.set("abc", "1234")
    winners = []
    misses = []
    barrier = threading.Barrier(10)

    def worker():
        barrier.wait()
        try:
            winners.append(store.get("abc", consume=True))
        except NotFoundError:
            misses.append(1)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert winners == ["1234"]
    assert len(misses) == 9
