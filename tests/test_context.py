from __future__ import annotations

import threading

import pytest

from jsonserv.context import DEBUG_FLAG, MAX_BODY_SIZE, START_TIME, ContextKey, ContextStore


def test_absent_key_returns_none_or_fallback() -> None:
    store = ContextStore()
    assert store.get("foo") is None
    assert store.get_or_default("foo", "bar") == "bar"
    assert store.get_or_default(DEBUG_FLAG, False) is False
    assert len(store) == 0
    assert "foo" not in store


def test_set_then_get_with_string_and_typed_keys() -> None:
    store = ContextStore()
    store.set("foo", "bar")
    store.set(MAX_BODY_SIZE, 5000)

    assert store.get("foo") == "bar"
    assert store.get(MAX_BODY_SIZE) == 5000
    assert store.get("max_body_size") == 5000
    assert MAX_BODY_SIZE in store
    assert len(store) == 2


def test_last_write_wins() -> None:
    store = ContextStore()
    store.set(DEBUG_FLAG, False)
    store.set(DEBUG_FLAG, True)
    assert store.get_or_default(DEBUG_FLAG, False) is True


def test_typed_key_rejects_wrong_type() -> None:
    store = ContextStore()
    with pytest.raises(TypeError):
        store.set(MAX_BODY_SIZE, "5000")
    with pytest.raises(TypeError):
        store.set(MAX_BODY_SIZE, True)
    with pytest.raises(TypeError):
        store.set(START_TIME, "yesterday")
    assert MAX_BODY_SIZE not in store


def test_untyped_key_accepts_anything() -> None:
    key: ContextKey[object] = ContextKey("anything")
    store = ContextStore()
    store.set(key, object)
    assert store.get(key) is object


def test_stores_are_isolated_between_threads() -> None:
    stores = [ContextStore() for _ in range(8)]
    seen: dict[int, object] = {}

    def work(idx: int) -> None:
        stores[idx].set("request", idx)
        seen[idx] = stores[idx].get("request")

    threads = [threading.Thread(target=work, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert seen == {i: i for i in range(8)}


def test_plain_string_matching_well_known_key_is_type_checked() -> None:
    store = ContextStore()
    with pytest.raises(TypeError):
        store.set("debug", "false")
    with pytest.raises(TypeError):
        store.set("max_body_size", "10")
    store.set("debug", True)
    assert store.get(DEBUG_FLAG) is True
