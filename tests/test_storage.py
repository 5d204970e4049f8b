from __future__ import annotations

import threading

import pytest

from bookstore.models import Address
from bookstore.storage import EmptyCartError, MemoryStorage


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


class TestSessionLocks:
    def test_locks_are_dropped_after_use(self, storage: MemoryStorage) -> None:
        for n in range(50):
            storage.add_to_cart(f"session-{n}", "1", 1, 16.99)
            storage.clear_cart(f"session-{n}")
        assert storage._session_locks == {}

    def test_lock_is_kept_while_held(self, storage: MemoryStorage) -> None:
        with storage.session_lock("abc"):
            assert "abc" in storage._session_locks
        assert "abc" not in storage._session_locks

    def test_concurrent_adds_merge_into_one_line(self, storage: MemoryStorage) -> None:
        threads = [
            threading.Thread(target=storage.add_to_cart, args=("abc", "2", 1, 21.99))
            for _ in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        items = storage.get_cart_items("abc")
        assert len(items) == 1
        assert items[0].quantity == 20
        assert storage._session_locks == {}


class TestCheckout:
    def test_empty_cart_creates_nothing(self, storage: MemoryStorage, address: dict) -> None:
        with pytest.raises(EmptyCartError):
            storage.checkout("abc", Address.model_validate(address), None, "card")
        assert storage.orders == {}

    def test_order_is_scoped_to_its_session(self, storage: MemoryStorage, address: dict) -> None:
        storage.add_to_cart("abc", "2", 2, 21.99)
        order = storage.checkout("abc", Address.model_validate(address), None, "card")
        assert order.total == round(21.99 * 2, 2)
        assert storage.get_cart_items("abc") == []
        assert storage.get_order("abc", order.id) == order
        assert storage.get_order("xyz", order.id) is None
