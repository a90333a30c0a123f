import logging
import os

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth import verify_token
from cart import CartManager
from catalog import Catalog
from database import DATABASE_URL, get_store
from errors import Forbidden, StoreError, Unauthorized
from logging_config import configure_logging
from orders import OrderEngine
from profiles import Profiles
from reporting import compute_stats
from schemas import (
    Actor,
    AddToCartRequest,
    CategoryIn,
    CreateOrderRequest,
    PaymentRequest,
    ProductIn,
    ProductUpdate,
    ProfileUpdate,
    UpdateCartRequest,
    UpdateOrderRequest,
    VerifyPaymentRequest,
)

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

bearer_scheme = HTTPBearer(auto_error=False)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error("Request failed", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    store=Depends(get_store),
) -> Actor:
    if credentials is None:
        raise Unauthorized("Missing credentials")
    identity = verify_token(credentials.credentials)
    profile = Profiles(store).get_or_create(identity)
    return Actor(id=profile.id, email=profile.email, role=profile.role)


def get_current_admin(current: Actor = Depends(get_current_user)) -> Actor:
    if not current.is_admin:
        raise Forbidden("Admin access required")
    return current


@app.get("/")
def root():
    return {"status": "ok", "service": "storefront-api"}


@app.get("/test")
def test_database(store=Depends(get_store)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if DATABASE_URL else "❌ Not Set",
        "database_name": getattr(store, "name", None),
        "keys": [],
    }
    try:
        response["keys"] = store.keys()[:10]
        response["database"] = "✅ Connected & Working"
    except StoreError as e:
        response["database"] = f"⚠️  Connected but Error: {e.message[:80]}"
    return response


# ---------- Products ----------
@app.get("/products")
def list_products(store=Depends(get_store)):
    return {"products": Catalog(store).list_products()}


@app.get("/products/{product_id}")
def get_product(product_id: str, store=Depends(get_store)):
    return {"product": Catalog(store).get_product(product_id)}


@app.post("/products")
def create_product(product: ProductIn, _: Actor = Depends(get_current_admin), store=Depends(get_store)):
    return {"success": True, "product": Catalog(store).create_product(product)}


@app.put("/products/{product_id}")
def update_product(product_id: str, updates: ProductUpdate, _: Actor = Depends(get_current_admin), store=Depends(get_store)):
    return {"success": True, "product": Catalog(store).update_product(product_id, updates)}


@app.delete("/products/{product_id}")
def delete_product(product_id: str, _: Actor = Depends(get_current_admin), store=Depends(get_store)):
    Catalog(store).delete_product(product_id)
    return {"success": True}


# ---------- Categories ----------
@app.get("/categories")
def list_categories(store=Depends(get_store)):
    return {"categories": Catalog(store).list_categories()}


@app.post("/categories")
def create_category(category: CategoryIn, _: Actor = Depends(get_current_admin), store=Depends(get_store)):
    return {"success": True, "category": Catalog(store).create_category(category)}


# ---------- Cart ----------
@app.get("/cart")
def get_cart(current: Actor = Depends(get_current_user), store=Depends(get_store)):
    return {"cart": CartManager(store).view(current.id)}


@app.post("/cart")
def add_to_cart(payload: AddToCartRequest, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    cart = CartManager(store).add_item(current.id, payload.product_id, payload.quantity)
    return {"success": True, "cart": cart}


@app.put("/cart/{product_id}")
def update_cart_item(product_id: str, payload: UpdateCartRequest, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    cart = CartManager(store).update_quantity(current.id, product_id, payload.quantity)
    return {"success": True, "cart": cart}


@app.delete("/cart/{product_id}")
def remove_from_cart(product_id: str, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    cart = CartManager(store).remove_item(current.id, product_id)
    return {"success": True, "cart": cart}


# ---------- Orders ----------
@app.get("/orders")
def list_orders(current: Actor = Depends(get_current_user), store=Depends(get_store)):
    return {"orders": OrderEngine(store).list_orders(current)}


@app.get("/orders/{order_id}")
def get_order(order_id: str, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    return {"order": OrderEngine(store).get_order(order_id, current)}


@app.post("/orders")
def create_order(payload: CreateOrderRequest, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    order = OrderEngine(store).create_order(current.id, payload.shipping_address, payload.payment_method)
    return {"success": True, "order": order}


@app.put("/orders/{order_id}")
def update_order(order_id: str, payload: UpdateOrderRequest, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    order = OrderEngine(store).set_status(order_id, current, payload.status)
    return {"success": True, "order": order}


# ---------- Payments ----------
@app.post("/payments")
def process_payment(payload: PaymentRequest, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    payment, order = OrderEngine(store).process_payment(payload.order_id, current, payload.payment_details)
    return {"success": True, "payment": payment, "order": order}


@app.post("/payments/verify")
def verify_payment(payload: VerifyPaymentRequest, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    return {"payment": OrderEngine(store).get_payment(payload.payment_id, current)}


# ---------- Profile ----------
@app.get("/profile")
def get_profile(current: Actor = Depends(get_current_user), store=Depends(get_store)):
    return {"profile": Profiles(store).users.get(current.id)}


@app.put("/profile")
def update_profile(updates: ProfileUpdate, current: Actor = Depends(get_current_user), store=Depends(get_store)):
    return {"success": True, "profile": Profiles(store).update(current.id, updates)}


# ---------- Admin ----------
@app.get("/admin/stats")
def admin_stats(_: Actor = Depends(get_current_admin), store=Depends(get_store)):
    return {"stats": compute_stats(store)}


@app.post("/seed")
def seed_catalog(_: Actor = Depends(get_current_admin), store=Depends(get_store)):
    if not Catalog(store).seed():
        return {"message": "Database already seeded"}
    return {"success": True, "message": "Database seeded successfully"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
