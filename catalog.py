"""Product and category management."""

import logging
from typing import List

from errors import NotFound
from repositories import CategoryRepository, ProductRepository, new_id
from schemas import Category, CategoryIn, Product, ProductIn, ProductUpdate, utcnow

logger = logging.getLogger(__name__)

DEMO_CATEGORIES = [
    {"name": "Electronics", "description": "Electronic devices and accessories"},
    {"name": "Clothing", "description": "Fashion and apparel"},
    {"name": "Home & Garden", "description": "Home improvement and gardening"},
    {"name": "Sports", "description": "Sports equipment and accessories"},
]

# (name, description, price, category index, rating, stock)
DEMO_PRODUCTS = [
    ("Wireless Headphones", "Premium noise-canceling headphones", 299.99, 0, 4.5, 50),
    ("Smartphone", "Latest model smartphone", 899.99, 0, 4.8, 30),
    ("Laptop", "High-performance laptop", 1299.99, 0, 4.7, 20),
    ("T-Shirt", "Cotton casual t-shirt", 29.99, 1, 4.2, 100),
    ("Jeans", "Classic blue jeans", 79.99, 1, 4.4, 75),
    ("Running Shoes", "Comfortable running shoes", 129.99, 3, 4.6, 60),
    ("Yoga Mat", "Non-slip yoga mat", 39.99, 3, 4.3, 80),
    ("Garden Tools Set", "Complete gardening toolkit", 89.99, 2, 4.5, 40),
]


class Catalog:
    def __init__(self, store):
        self.products = ProductRepository(store)
        self.categories = CategoryRepository(store)

    def list_products(self) -> List[Product]:
        return self.products.list()

    def get_product(self, product_id: str) -> Product:
        product = self.products.get(product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    def create_product(self, data: ProductIn) -> Product:
        product = Product(id=new_id(), **data.model_dump())
        self.products.put(product)
        logger.info("Product created", extra={"product_id": product.id})
        return product

    def update_product(self, product_id: str, updates: ProductUpdate) -> Product:
        existing = self.get_product(product_id)
        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        product = existing.model_copy(update={**changes, "updated_at": utcnow()})
        return self.products.put(product)

    def delete_product(self, product_id: str) -> None:
        self.products.delete(product_id)
        logger.info("Product deleted", extra={"product_id": product_id})

    def list_categories(self) -> List[Category]:
        return self.categories.list()

    def create_category(self, data: CategoryIn) -> Category:
        category = Category(id=new_id(), **data.model_dump())
        return self.categories.put(category)

    def seed(self) -> bool:
        """Create the demo catalog once. Returns False if products already exist."""
        if self.products.list():
            return False
        category_ids = []
        for cat in DEMO_CATEGORIES:
            category = self.categories.put(Category(id=new_id(), **cat))
            category_ids.append(category.id)
        for name, description, price, cat_index, rating, stock in DEMO_PRODUCTS:
            self.products.put(Product(
                id=new_id(),
                name=name,
                description=description,
                price=price,
                category=category_ids[cat_index],
                rating=rating,
                stock=stock,
                image_url="",
            ))
        logger.info("Catalog seeded", extra={"products": len(DEMO_PRODUCTS)})
        return True
