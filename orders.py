"""
Order Engine

Turns a cart into an order snapshot, moves orders through their status
lifecycle and records payments.

    pending -> processing -> shipped -> delivered
    pending | processing | shipped -> cancelled

delivered and cancelled are terminal. Only admins move an order forward;
the owner may only cancel.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from errors import EmptyCart, Forbidden, Internal, InvalidState, NotFound
from repositories import CartRepository, OrderRepository, PaymentRepository, ProductRepository, new_id
from schemas import (
    Actor,
    Cart,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    ShippingAddress,
    utcnow,
)

logger = logging.getLogger(__name__)

TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


class TransitionError(str, Enum):
    FORBIDDEN = "forbidden"
    INVALID_STATE = "invalid_state"


@dataclass(frozen=True)
class TransitionResult:
    ok: bool
    error: Optional[TransitionError] = None
    message: str = ""

    def to_exception(self) -> Exception:
        if self.error == TransitionError.FORBIDDEN:
            return Forbidden(self.message)
        return InvalidState(self.message)


def validate_transition(current: OrderStatus, target: OrderStatus, privileged: bool) -> TransitionResult:
    """Check one status change against the lifecycle table.

    privileged is True for admins and for internal system steps such as a
    completed payment; everyone else may only cancel.
    """
    current = OrderStatus(current)
    target = OrderStatus(target)
    if not privileged and target != OrderStatus.CANCELLED:
        return TransitionResult(False, TransitionError.FORBIDDEN, "Users can only cancel orders")
    if current in TERMINAL_STATUSES:
        return TransitionResult(False, TransitionError.INVALID_STATE, f"Order is already {current.value}")
    if target not in TRANSITIONS[current]:
        return TransitionResult(
            False,
            TransitionError.INVALID_STATE,
            f"Cannot move order from {current.value} to {target.value}",
        )
    return TransitionResult(True)


# ---------- Payment detail masking ----------

CARD_KEYS = {
    "cardnumber", "card", "number", "pan", "accountnumber",
    "ccnumber", "ccnum", "cc", "cardno", "cardnum", "creditcard", "creditcardnumber",
}
SECRET_KEYS = {"cvv", "cvc", "cvv2", "securitycode", "pin", "password"}
# 13+ digits, optionally split by spaces, dashes or dots
CARD_RUN = re.compile(r"(?<!\d)\d(?:[ .-]?\d){12,}(?!\d)")


def _normalize_key(key: str) -> str:
    return re.sub(r"[\s_.-]", "", str(key)).lower()


def mask_card_number(value: Any) -> str:
    digits = re.sub(r"\D", "", str(value))
    return "**** " + digits[-4:] if digits else "****"


def mask_card_runs(text: str) -> str:
    """Replace every card-like digit run inside text with its masked form."""
    return CARD_RUN.sub(lambda m: mask_card_number(m.group(0)), text)


def sanitize_payment_details(details: Any) -> Any:
    """Copy of details safe to persist: card numbers cut to the last 4 digits, secrets dropped."""
    if isinstance(details, dict):
        clean = {}
        for key, value in details.items():
            norm = _normalize_key(key)
            if norm in SECRET_KEYS:
                continue
            if norm in CARD_KEYS and isinstance(value, (str, int)) and not isinstance(value, bool):
                clean[key] = mask_card_number(value)
            else:
                clean[key] = sanitize_payment_details(value)
        return clean
    if isinstance(details, list):
        return [sanitize_payment_details(v) for v in details]
    if isinstance(details, bool):
        return details
    if isinstance(details, int):
        masked = mask_card_runs(str(details))
        return details if masked == str(details) else masked
    if isinstance(details, str):
        return mask_card_runs(details)
    return details


def _same_lines(a: List[OrderItem], b: List[OrderItem]) -> bool:
    return [(i.product_id, i.quantity) for i in a] == [(i.product_id, i.quantity) for i in b]


class OrderEngine:
    def __init__(self, store):
        self.carts = CartRepository(store)
        self.products = ProductRepository(store)
        self.orders = OrderRepository(store)
        self.payments = PaymentRepository(store)

    # ---------- Reads ----------

    def _load(self, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    def get_order(self, order_id: str, actor: Actor) -> Order:
        order = self._load(order_id)
        if order.user_id != actor.id and not actor.is_admin:
            raise Forbidden("Not allowed to view this order")
        return order

    def list_orders(self, actor: Actor) -> List[Order]:
        if actor.is_admin:
            orders = self.orders.list()
        else:
            orders = self.orders.list_for_user(actor.id)
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def get_payment(self, payment_id: str, actor: Actor) -> Payment:
        payment = self.payments.get(payment_id)
        if not payment:
            raise NotFound("Payment not found")
        if payment.user_id != actor.id:
            raise Forbidden("Not allowed to view this payment")
        return payment

    # ---------- Checkout ----------

    def _snapshot(self, cart: Cart) -> Tuple[List[OrderItem], float]:
        items = []
        total = 0.0
        for line in cart.items:
            product = self.products.get(line.product_id)
            if not product:
                continue
            subtotal = round(product.price * line.quantity, 2)
            total += subtotal
            items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                unit_price=product.price,
                quantity=line.quantity,
                line_subtotal=subtotal,
            ))
        return items, round(total, 2)

    def _finish_checkout(self, cart: Cart, order: Order) -> Order:
        self.orders.index_owner(order)
        cart.items = []
        cart.pending_order_id = None
        self.carts.put(cart)
        return order

    def create_order(self, user_id: str, shipping_address: ShippingAddress, payment_method: str) -> Order:
        """Snapshot the user's cart into a new pending order and empty the cart.

        The writes happen in a fixed order: cart marked with the order id,
        order record, owner index, cleared cart. Nothing is rolled back if one
        fails; calling again with the same cart resumes the marked order
        instead of creating a second one. If the cart changed since, the
        marked order is indexed as it stands and a fresh order is taken.
        """
        cart = self.carts.get(user_id)
        if not cart.items:
            raise EmptyCart()

        try:
            items, total = self._snapshot(cart)
            if cart.pending_order_id:
                existing = self.orders.get(cart.pending_order_id)
                if existing and _same_lines(existing.items, items):
                    logger.warning(
                        "Resuming interrupted checkout",
                        extra={"user_id": user_id, "order_id": existing.id},
                    )
                    return self._finish_checkout(cart, existing)
                if existing:
                    logger.warning(
                        "Cart changed after interrupted checkout, starting a new order",
                        extra={"user_id": user_id, "order_id": existing.id},
                    )
                    self.orders.index_owner(existing)
                    cart.pending_order_id = None

            if not items:
                raise EmptyCart("Cart has no available products")

            order = Order(
                id=cart.pending_order_id or new_id(),
                user_id=user_id,
                items=items,
                total=total,
                shipping_address=shipping_address,
                payment_method=payment_method,
            )
            cart.pending_order_id = order.id
            self.carts.put(cart)
            self.orders.put(order)
            self._finish_checkout(cart, order)
        except EmptyCart:
            raise
        except Exception as e:
            logger.exception("Order creation failed part way", extra={"user_id": user_id})
            raise Internal("Failed to create order") from e

        logger.info("Order created", extra={"order_id": order.id, "user_id": user_id, "total": order.total})
        return order

    # ---------- Lifecycle ----------

    def set_status(self, order_id: str, actor: Actor, target: OrderStatus) -> Order:
        order = self._load(order_id)
        if order.user_id != actor.id and not actor.is_admin:
            raise Forbidden("Not allowed to update this order")

        result = validate_transition(order.status, target, privileged=actor.is_admin)
        if not result.ok:
            logger.info(
                "Order status change rejected",
                extra={"order_id": order_id, "from": order.status.value, "to": OrderStatus(target).value},
            )
            raise result.to_exception()

        previous = order.status
        order.status = OrderStatus(target)
        order.updated_at = utcnow()
        self.orders.put(order)
        logger.info(
            "Order status changed",
            extra={"order_id": order_id, "from": previous.value, "to": order.status.value, "actor": actor.id},
        )
        return order

    # ---------- Payments ----------

    def _charge(self, order: Order, details: Dict[str, Any]) -> Dict[str, Any]:
        """Simulated gateway: always approves."""
        return {"approved": True, "reference": new_id("txn-")}

    def process_payment(self, order_id: str, actor: Actor, payment_details: Dict[str, Any]) -> Tuple[Payment, Order]:
        """Record a payment for the caller's order.

        At most one payment per order: a repeated call returns the recorded
        payment and only completes the order update if that was missed.
        """
        order = self._load(order_id)
        if order.user_id != actor.id:
            raise Forbidden("Not allowed to pay for this order")

        payment = self.payments.get_for_order(order.id)
        if payment and order.payment_status == PaymentStatus.COMPLETED:
            return payment, order
        if order.status == OrderStatus.CANCELLED:
            raise InvalidState("Order is cancelled")

        try:
            if not payment:
                outcome = self._charge(order, payment_details)
                if not outcome["approved"]:
                    raise InvalidState("Payment declined")
                details = sanitize_payment_details(payment_details)
                payment = Payment(
                    id=new_id("pay-"),
                    order_id=order.id,
                    user_id=actor.id,
                    amount=order.total,
                    status=PaymentStatus.COMPLETED,
                    reference=outcome["reference"],
                    payment_details=details,
                )
                self.payments.put(payment)

            order.payment_status = PaymentStatus.COMPLETED
            if validate_transition(order.status, OrderStatus.PROCESSING, privileged=True).ok:
                order.status = OrderStatus.PROCESSING
            order.updated_at = utcnow()
            self.orders.put(order)
        except Internal:
            logger.exception("Payment recording failed", extra={"order_id": order_id})
            raise

        logger.info("Payment completed", extra={"order_id": order.id, "payment_id": payment.id, "amount": payment.amount})
        return payment, order
