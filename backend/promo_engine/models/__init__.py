from .tenancy import Venue
from .auth import User
from .customers import CustomerGroup, Customer
from .catalog import Category, Product, ModifierGroup, Modifier
from .orders import Order, OrderItem, OrderItemModifier
from .discounts import Discount, CustomerDiscount, OrderDiscount

__all__ = [
    'Venue',
    'User',
    'CustomerGroup', 'Customer',
    'Category', 'Product', 'ModifierGroup', 'Modifier',
    'Order', 'OrderItem', 'OrderItemModifier',
    'Discount', 'CustomerDiscount', 'OrderDiscount',
]
