"""Per-key locks."""

import threading

import pytest
from storefront.locks import KeyedLock


def _try_hold(locks, key, acquired):
    def run():
        with locks.hold(key):
            acquired.set()

    thread = threading.Thread(target=run)
    thread.start()
    return thread


class TestKeyedLock:
    def test_same_key_waits_for_the_holder(self):
        locks, acquired = KeyedLock(), threading.Event()

        with locks.hold("order-1"):
            thread = _try_hold(locks, "order-1", acquired)
            assert not acquired.wait(timeout=0.2)

        thread.join(timeout=5)
        assert acquired.is_set()

    def test_other_keys_do_not_wait(self):
        locks, acquired = KeyedLock(), threading.Event()

        with locks.hold("order-1"):
            thread = _try_hold(locks, "order-2", acquired)
            assert acquired.wait(timeout=5)

        thread.join(timeout=5)

    def test_holder_can_reenter(self):
        locks = KeyedLock()
        with locks.hold("cart-1"):
            with locks.hold("cart-1"):
                assert len(locks) == 1

    def test_keys_are_forgotten_once_released(self):
        locks = KeyedLock()
        for index in range(100):
            with locks.hold(f"order-{index}"):
                pass
        assert len(locks) == 0

    def test_key_is_kept_while_someone_waits(self):
        locks, acquired = KeyedLock(), threading.Event()

        with locks.hold("order-1"):
            thread = _try_hold(locks, "order-1", acquired)
            acquired.wait(timeout=0.2)
            assert len(locks) == 1

        thread.join(timeout=5)
        assert len(locks) == 0

    def test_release_happens_when_the_body_raises(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold("order-1"):
                raise RuntimeError("boom")
        assert len(locks) == 0
