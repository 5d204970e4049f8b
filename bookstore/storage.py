# bookstore/storage.py
"""
In-memory cart and order storage.

All records live in plain dicts keyed by auto-incremented ids. Every
cart read-modify-write happens under a per-session lock, so concurrent
requests from the same session cannot split one book into two cart lines
or check out a cart twice. A store-level lock protects the maps and id
counters themselves.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from .models import Address, CartItem, Order, OrderItem


class EmptyCartError(ValueError):
    """Checkout was attempted with no items in the cart."""


class _SessionLock:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class MemoryStorage:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._session_locks: Dict[str, _SessionLock] = {}
        self.cart_items: Dict[int, CartItem] = {}
        self.orders: Dict[int, Order] = {}
        self.order_items: Dict[int, OrderItem] = {}
        self._next_cart_item_id = 1
        self._next_order_id = 1
        self._next_order_item_id = 1

    @contextmanager
    def session_lock(self, session_id: str) -> Iterator[None]:
        with self._lock:
            entry = self._session_locks.get(session_id)
            if entry is None:
                entry = self._session_locks[session_id] = _SessionLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            # Dropped once no request holds or waits on it.
            with self._lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._session_locks[session_id]

    # Cart ---------------------------------------------------------------

    def get_cart_items(self, session_id: str) -> List[CartItem]:
        with self._lock:
            return [item for item in self.cart_items.values() if item.session_id == session_id]

    def get_cart_item(self, session_id: str, book_id: str) -> Optional[CartItem]:
        return next((i for i in self.get_cart_items(session_id) if i.book_id == book_id), None)

    def _create_cart_item(self, session_id: str, book_id: str, quantity: int, price: float) -> CartItem:
        with self._lock:
            item = CartItem(
                id=self._next_cart_item_id,
                session_id=session_id,
                book_id=book_id,
                quantity=quantity,
                price=price,
            )
            self.cart_items[item.id] = item
            self._next_cart_item_id += 1
            return item

    def _set_quantity(self, item: CartItem, quantity: int) -> CartItem:
        with self._lock:
            updated = item.model_copy(update={"quantity": quantity})
            self.cart_items[item.id] = updated
            return updated

    def add_to_cart(self, session_id: str, book_id: str, quantity: int, price: float) -> Tuple[CartItem, bool]:
        """Add ``quantity`` of a book, merging with an existing line.

        Returns the stored item and whether a new line was created.
        """
        with self.session_lock(session_id):
            existing = self.get_cart_item(session_id, book_id)
            if existing is not None:
                return self._set_quantity(existing, existing.quantity + quantity), False
            return self._create_cart_item(session_id, book_id, quantity, price), True

    def update_cart_item(self, session_id: str, item_id: int, quantity: int) -> Optional[CartItem]:
        with self.session_lock(session_id):
            item = self.cart_items.get(item_id)
            if item is None or item.session_id != session_id:
                return None
            return self._set_quantity(item, quantity)

    def delete_cart_item(self, session_id: str, item_id: int) -> bool:
        with self.session_lock(session_id), self._lock:
            item = self.cart_items.get(item_id)
            if item is None or item.session_id != session_id:
                return False
            del self.cart_items[item_id]
            return True

    def _clear(self, session_id: str) -> None:
        with self._lock:
            for item_id in [i.id for i in self.cart_items.values() if i.session_id == session_id]:
                del self.cart_items[item_id]

    def clear_cart(self, session_id: str) -> None:
        with self.session_lock(session_id):
            self._clear(session_id)

    # Orders -------------------------------------------------------------

    def checkout(
        self,
        session_id: str,
        shipping_address: Address,
        billing_address: Optional[Address],
        payment_method: str,
    ) -> Order:
        """Turn the session's cart into a pending order and empty the cart.

        Raises ``EmptyCartError`` before creating anything if the cart has
        no items.
        """
        with self.session_lock(session_id):
            items = self.get_cart_items(session_id)
            if not items:
                raise EmptyCartError("Cart is empty")
            total = round(sum(i.price * i.quantity for i in items), 2)
            with self._lock:
                order = Order(
                    id=self._next_order_id,
                    session_id=session_id,
                    total=total,
                    shipping_address=shipping_address,
                    billing_address=billing_address or shipping_address,
                    payment_method=payment_method,
                )
                self.orders[order.id] = order
                self._next_order_id += 1
                for item in items:
                    order_item = OrderItem(
                        id=self._next_order_item_id,
                        order_id=order.id,
                        book_id=item.book_id,
                        quantity=item.quantity,
                        price=item.price,
                    )
                    self.order_items[order_item.id] = order_item
                    self._next_order_item_id += 1
                self._clear(session_id)
            return order

    def get_order(self, session_id: str, order_id: int) -> Optional[Order]:
        order = self.orders.get(order_id)
        if order is None or order.session_id != session_id:
            return None
        return order

    def get_order_items(self, order_id: int) -> List[OrderItem]:
        with self._lock:
            return [i for i in self.order_items.values() if i.order_id == order_id]

