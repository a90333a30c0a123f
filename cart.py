"""
Cart Manager

Per-user line items stored under "cart:<user_id>". Every mutation is a plain
read-modify-write of that one key; two devices editing the same cart at the
same time can overwrite each other (last write wins).
"""

import logging
from typing import Any, Dict

from errors import InvalidState, NotFound
from repositories import CartRepository, ProductRepository
from schemas import Cart, CartItem

logger = logging.getLogger(__name__)


class CartManager:
    def __init__(self, store):
        self.carts = CartRepository(store)
        self.products = ProductRepository(store)

    def get(self, user_id: str) -> Cart:
        return self.carts.get(user_id)

    def add_item(self, user_id: str, product_id: str, quantity: int = 1) -> Cart:
        if quantity < 1:
            raise InvalidState("Quantity must be at least 1")
        if not self.products.get(product_id):
            raise NotFound("Product not found")

        cart = self.carts.get(user_id)
        item = cart.find(product_id)
        if item:
            # not capped by stock; stock is only checked when the cart is shown
            item.quantity += quantity
        else:
            cart.items.append(CartItem(product_id=product_id, quantity=quantity))
        logger.debug("Cart line added", extra={"user_id": user_id, "product_id": product_id})
        return self.carts.put(cart)

    def update_quantity(self, user_id: str, product_id: str, quantity: int) -> Cart:
        cart = self.carts.get(user_id)
        item = cart.find(product_id)
        if not item:
            return cart
        if quantity <= 0:
            cart.items.remove(item)
        else:
            item.quantity = quantity
        return self.carts.put(cart)

    def remove_item(self, user_id: str, product_id: str) -> Cart:
        cart = self.carts.get(user_id)
        if not cart.find(product_id):
            return cart
        cart.items = [i for i in cart.items if i.product_id != product_id]
        return self.carts.put(cart)

    def view(self, user_id: str) -> Dict[str, Any]:
        """Cart lines joined with live product data.

        Lines whose product no longer exists are left out of the view but stay
        in storage.
        """
        cart = self.carts.get(user_id)
        items = []
        total = 0.0
        for item in cart.items:
            product = self.products.get(item.product_id)
            if not product:
                continue
            subtotal = round(product.price * item.quantity, 2)
            total += subtotal
            items.append({
                **item.model_dump(mode="json"),
                "product": product.model_dump(mode="json"),
                "subtotal": subtotal,
                "in_stock": product.stock >= item.quantity,
            })
        return {"items": items, "total": round(total, 2)}
