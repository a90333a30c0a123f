"""Admin rollups. Full prefix scans; fine for a reporting path only."""

from typing import Dict

from repositories import OrderRepository, ProductRepository, UserRepository
from schemas import PaymentStatus


def compute_stats(store) -> Dict[str, float]:
    orders = OrderRepository(store).list()
    revenue = sum(o.total for o in orders if o.payment_status == PaymentStatus.COMPLETED)
    return {
        "total_users": UserRepository(store).count(),
        "total_orders": len(orders),
        "total_products": len(ProductRepository(store).list()),
        "total_revenue": round(revenue, 2),
    }
