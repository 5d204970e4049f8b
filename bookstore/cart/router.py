"""
Route definitions for the session cart and checkout.

Endpoints under /api:
- GET    /api/cart            : cart lines with current book details and total
- POST   /api/cart            : add a book (merges with an existing line)
- PATCH  /api/cart/{item_id}  : set the quantity of a line
- DELETE /api/cart/{item_id}  : remove a line
- DELETE /api/cart            : empty the cart
- POST   /api/checkout        : place an order from the cart
- GET    /api/orders/{order_id} : order placed by this session

Every endpoint is scoped to the anonymous session id; another session's
cart items and orders are reported as not found.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ..catalog.store import CatalogStore
from ..deps import get_catalog, get_session_id, get_storage
from ..models import (
    AddToCartRequest,
    CartItem,
    CartItemRef,
    CartLine,
    CartMutationResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    MessageResponse,
    OrderResponse,
    UpdateCartRequest,
)
from ..storage import EmptyCartError, MemoryStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["cart"])


def _ref(item: CartItem) -> CartItemRef:
    return CartItemRef(id=item.id, book_id=item.book_id, quantity=item.quantity)


@router.get("/cart", response_model=CartResponse)
def get_cart(
    session_id: str = Depends(get_session_id),
    storage: MemoryStorage = Depends(get_storage),
    catalog: CatalogStore = Depends(get_catalog),
) -> CartResponse:
    lines = []
    total = 0.0
    for item in storage.get_cart_items(session_id):
        book = catalog.get_book(item.book_id)
        if book is None:
            logger.warning("Cart item %s refers to unknown book %s", item.id, item.book_id)
            continue
        total += book.price.amount * item.quantity
        lines.append(
            CartLine(
                id=item.id,
                book_id=item.book_id,
                title=book.title,
                author=book.author,
                price=book.price.amount,
                image_url=book.image_url,
                quantity=item.quantity,
            )
        )
    return CartResponse(items=lines, total=round(total, 2))


@router.post("/cart", response_model=CartMutationResponse, status_code=201)
def add_to_cart(
    req: AddToCartRequest,
    response: Response,
    session_id: str = Depends(get_session_id),
    storage: MemoryStorage = Depends(get_storage),
    catalog: CatalogStore = Depends(get_catalog),
) -> CartMutationResponse:
    book = catalog.get_book(req.book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")

    item, created = storage.add_to_cart(session_id, req.book_id, req.quantity, book.price.amount)
    if created:
        return CartMutationResponse(message="Item added to cart", item=_ref(item))
    response.status_code = 200
    return CartMutationResponse(message="Cart updated successfully", item=_ref(item))


@router.patch("/cart/{item_id}", response_model=CartMutationResponse)
def update_cart_item(
    item_id: int,
    req: UpdateCartRequest,
    session_id: str = Depends(get_session_id),
    storage: MemoryStorage = Depends(get_storage),
) -> CartMutationResponse:
    item = storage.update_cart_item(session_id, item_id, req.quantity)
    if item is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return CartMutationResponse(message="Cart updated successfully", item=_ref(item))


@router.delete("/cart/{item_id}", response_model=MessageResponse)
def delete_cart_item(
    item_id: int,
    session_id: str = Depends(get_session_id),
    storage: MemoryStorage = Depends(get_storage),
) -> MessageResponse:
    if not storage.delete_cart_item(session_id, item_id):
        raise HTTPException(status_code=404, detail="Cart item not found")
    return MessageResponse(message="Item removed from cart")


@router.delete("/cart", response_model=MessageResponse)
def clear_cart(
    session_id: str = Depends(get_session_id),
    storage: MemoryStorage = Depends(get_storage),
) -> MessageResponse:
    storage.clear_cart(session_id)
    return MessageResponse(message="Cart cleared successfully")


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
def checkout(
    req: CheckoutRequest,
    session_id: str = Depends(get_session_id),
    storage: MemoryStorage = Depends(get_storage),
) -> CheckoutResponse:
    """Place an order for everything in the cart.

    The payment method is recorded as given; no payment is taken.
    """
    try:
        order = storage.checkout(
            session_id,
            shipping_address=req.shipping_address,
            billing_address=req.billing_address,
            payment_method=req.payment_method,
        )
    except EmptyCartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Order %s placed for session %s (total %.2f)", order.id, session_id, order.total)
    return CheckoutResponse(message="Order placed successfully", order_id=order.id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    session_id: str = Depends(get_session_id),
    storage: MemoryStorage = Depends(get_storage),
) -> OrderResponse:
    order = storage.get_order(session_id, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderResponse(order=order, items=storage.get_order_items(order.id))
