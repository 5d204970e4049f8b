# bookstore/models.py
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field

from .catalog.schemas import CamelModel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AddToCartRequest(CamelModel):
    book_id: str = Field(strict=True, min_length=1)
    quantity: int = Field(strict=True, gt=0)


class UpdateCartRequest(CamelModel):
    quantity: int = Field(strict=True, gt=0)


class Address(CamelModel):
    first_name: str
    last_name: str
    address: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: str


class CheckoutRequest(CamelModel):
    shipping_address: Address
    billing_address: Optional[Address] = None
    # Opaque to this service; no payment gateway is involved.
    payment_method: str


class CartItem(CamelModel):
    id: int
    session_id: str
    book_id: str
    quantity: int
    price: float
    created_at: datetime = Field(default_factory=_now)


class Order(CamelModel):
    id: int
    session_id: str
    status: str = "pending"
    total: float
    shipping_address: Address
    billing_address: Address
    payment_method: str
    created_at: datetime = Field(default_factory=_now)


class OrderItem(CamelModel):
    id: int
    order_id: int
    book_id: str
    quantity: int
    price: float


class CartItemRef(CamelModel):
    id: int
    book_id: str
    quantity: int


class CartLine(CamelModel):
    id: int
    book_id: str
    title: str
    author: str
    price: float
    image_url: str = ""
    quantity: int


class CartResponse(CamelModel):
    items: List[CartLine]
    total: float


class CartMutationResponse(CamelModel):
    message: str
    item: CartItemRef


class MessageResponse(CamelModel):
    message: str


class CheckoutResponse(CamelModel):
    message: str
    order_id: int


class OrderResponse(CamelModel):
    order: Order
    items: List[OrderItem]
