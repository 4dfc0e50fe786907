from .orders import Order, OrderItem, ORDER_STATUSES
from .catalog import Product, ProductVariant
from .finance import ProfitEntry, Expense, Purchase, EXPENSE_TYPES
from .settings import Setting

__all__ = [
    'Order', 'OrderItem', 'ORDER_STATUSES',
    'Product', 'ProductVariant',
    'ProfitEntry', 'Expense', 'Purchase', 'EXPENSE_TYPES',
    'Setting',
]
