"""
Record Schemas for the Storefront

Each Pydantic record model corresponds to one key prefix in the key-value
store (see repositories.py for the prefixes):

- Product -> "product:<id>"
- Category -> "category:<id>"
- Cart -> "cart:<user_id>"
- Order -> "order:<id>" (+ owner index "order-user:<user_id>:<id>")
- Payment -> "payment:<id>" (+ "payment-order:<order_id>")
- UserProfile -> "user:<id>"

Request bodies accept both snake_case and the camelCase names the web client
sends (productId, shippingAddress, ...).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# camelCase accepted on input, snake_case on output
CAMEL_INPUT = ConfigDict(alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


# ---------- Records ----------

class Product(BaseModel):
    """Products, mutable by admins; stock is the inventory count"""
    id: str
    name: str = Field(..., description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: float = Field(..., ge=0, description="Unit price")
    stock: int = Field(0, ge=0, description="Units in stock")
    category: Optional[str] = Field(None, description="Category id")
    rating: float = Field(0, ge=0, le=5, description="Average rating 0-5")
    image_url: Optional[str] = Field(None, description="Primary image URL")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Category(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class CartItem(BaseModel):
    product_id: str = Field(..., description="ID of the product")
    quantity: int = Field(1, ge=1, description="Quantity of the product")
    added_at: datetime = Field(default_factory=utcnow)


class Cart(BaseModel):
    """One cart per user; at most one line per product"""
    user_id: str = Field(..., description="Owner user id")
    items: List[CartItem] = Field(default_factory=list, description="List of cart items")
    pending_order_id: Optional[str] = Field(None, description="Order being created from this cart")

    def find(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None


class OrderItem(BaseModel):
    product_id: str
    product_name: str = Field(..., description="Snapshot of product name at order time")
    unit_price: float = Field(..., ge=0, description="Unit price at order time")
    quantity: int = Field(..., ge=1)
    line_subtotal: float = Field(..., ge=0)


class ShippingAddress(BaseModel):
    model_config = CAMEL_INPUT

    full_name: Optional[str] = None
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None


class Order(BaseModel):
    """Orders; items and total are frozen at creation"""
    id: str
    user_id: str
    items: List[OrderItem]
    total: float = Field(..., ge=0)
    shipping_address: ShippingAddress
    payment_method: str
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Payment(BaseModel):
    id: str
    order_id: str
    user_id: str
    amount: float
    status: PaymentStatus
    reference: Optional[str] = Field(None, description="Gateway reference")
    payment_details: Dict[str, Any] = Field(default_factory=dict, description="Masked payment details")
    created_at: datetime = Field(default_factory=utcnow)


class UserProfile(BaseModel):
    id: str
    email: Optional[str] = None
    name: str = ""
    phone: str = ""
    role: Role = Role.USER
    address: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Actor(BaseModel):
    """The authenticated caller of a request"""
    id: str
    email: Optional[str] = None
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# ---------- Request bodies ----------

class RequestBody(BaseModel):
    model_config = CAMEL_INPUT


class ProductIn(RequestBody):
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    category: Optional[str] = None
    rating: float = Field(0, ge=0, le=5)
    image_url: Optional[str] = None


class ProductUpdate(RequestBody):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    image_url: Optional[str] = None


class CategoryIn(RequestBody):
    name: str
    description: Optional[str] = None


class AddToCartRequest(RequestBody):
    product_id: str
    quantity: int = Field(1, ge=1)


class UpdateCartRequest(RequestBody):
    quantity: int


class CreateOrderRequest(RequestBody):
    shipping_address: ShippingAddress
    payment_method: str = "credit_card"


class UpdateOrderRequest(RequestBody):
    status: OrderStatus


class PaymentRequest(RequestBody):
    order_id: str
    payment_details: Dict[str, Any] = Field(default_factory=dict)


class VerifyPaymentRequest(RequestBody):
    payment_id: str


class ProfileUpdate(RequestBody):
    """Role and id are not accepted here"""
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
