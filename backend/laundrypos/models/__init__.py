from .tenancy import Shop
from .customers import Customer
from .orders import Order, OrderItem, Payment
from .audit import AuditEvent

__all__ = [
    'Shop',
    'Customer',
    'Order', 'OrderItem', 'Payment',
    'AuditEvent',
]
