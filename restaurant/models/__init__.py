# Import all models here so SQLAlchemy registers them with Base.metadata
from restaurant.models.menu import MenuCategory, MenuItem
from restaurant.models.order import Order, OrderItem, OrderStatus
from restaurant.models.user import Role, UserProfile

__all__ = [
    "MenuCategory",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Role",
    "UserProfile",
]
