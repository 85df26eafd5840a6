from inventory.models.product import Product

__all__ = [
    "Product",
]
