"""
Typed repositories over the key-value store.

Each repository owns one key-prefix convention. Writes are single-key;
nothing here spans keys atomically.
"""

import os
import time
from typing import List, Optional

from schemas import Cart, Category, Order, Payment, Product, UserProfile


def new_id(prefix: str = "") -> str:
    """Time-based prefix plus random suffix; unique in practice, not guaranteed."""
    return f"{prefix}{int(time.time() * 1000)}-{os.urandom(5).hex()}"


def dump(model) -> dict:
    return model.model_dump(mode="json")


class ProductRepository:
    prefix = "product:"

    def __init__(self, store):
        self.store = store

    def key(self, product_id: str) -> str:
        return self.prefix + product_id

    def get(self, product_id: str) -> Optional[Product]:
        raw = self.store.get(self.key(product_id))
        return Product.model_validate(raw) if raw else None

    def put(self, product: Product) -> Product:
        self.store.set(self.key(product.id), dump(product))
        return product

    def delete(self, product_id: str) -> None:
        self.store.delete(self.key(product_id))

    def list(self) -> List[Product]:
        return [Product.model_validate(raw) for raw in self.store.get_by_prefix(self.prefix)]


class CategoryRepository:
    prefix = "category:"

    def __init__(self, store):
        self.store = store

    def get(self, category_id: str) -> Optional[Category]:
        raw = self.store.get(self.prefix + category_id)
        return Category.model_validate(raw) if raw else None

    def put(self, category: Category) -> Category:
        self.store.set(self.prefix + category.id, dump(category))
        return category

    def list(self) -> List[Category]:
        return [Category.model_validate(raw) for raw in self.store.get_by_prefix(self.prefix)]


class CartRepository:
    prefix = "cart:"

    def __init__(self, store):
        self.store = store

    def get(self, user_id: str) -> Cart:
        """Missing carts come back empty; nothing is written until a mutation."""
        raw = self.store.get(self.prefix + user_id)
        if not raw:
            return Cart(user_id=user_id)
        return Cart.model_validate(raw)

    def put(self, cart: Cart) -> Cart:
        self.store.set(self.prefix + cart.user_id, dump(cart))
        return cart


class OrderRepository:
    prefix = "order:"
    owner_prefix = "order-user:"

    def __init__(self, store):
        self.store = store

    def owner_key(self, user_id: str, order_id: str) -> str:
        return f"{self.owner_prefix}{user_id}:{order_id}"

    def get(self, order_id: str) -> Optional[Order]:
        raw = self.store.get(self.prefix + order_id)
        return Order.model_validate(raw) if raw else None

    def put(self, order: Order) -> Order:
        self.store.set(self.prefix + order.id, dump(order))
        return order

    def index_owner(self, order: Order) -> None:
        # keyed by order id, so repeating it is harmless
        self.store.set(self.owner_key(order.user_id, order.id), order.id)

    def list(self) -> List[Order]:
        return [Order.model_validate(raw) for raw in self.store.get_by_prefix(self.prefix)]

    def list_for_user(self, user_id: str) -> List[Order]:
        orders = []
        for order_id in self.store.get_by_prefix(f"{self.owner_prefix}{user_id}:"):
            order = self.get(order_id)
            if order:
                orders.append(order)
        return orders


class PaymentRepository:
    prefix = "payment:"
    order_prefix = "payment-order:"

    def __init__(self, store):
        self.store = store

    def get(self, payment_id: str) -> Optional[Payment]:
        raw = self.store.get(self.prefix + payment_id)
        return Payment.model_validate(raw) if raw else None

    def get_for_order(self, order_id: str) -> Optional[Payment]:
        payment_id = self.store.get(self.order_prefix + order_id)
        return self.get(payment_id) if payment_id else None

    def put(self, payment: Payment) -> Payment:
        self.store.set(self.prefix + payment.id, dump(payment))
        self.store.set(self.order_prefix + payment.order_id, payment.id)
        return payment


class UserRepository:
    prefix = "user:"

    def __init__(self, store):
        self.store = store

    def get(self, user_id: str) -> Optional[UserProfile]:
        raw = self.store.get(self.prefix + user_id)
        return UserProfile.model_validate(raw) if raw else None

    def put(self, profile: UserProfile) -> UserProfile:
        self.store.set(self.prefix + profile.id, dump(profile))
        return profile

    def count(self) -> int:
        return len(self.store.get_by_prefix(self.prefix))
