from .catalog import Brand, Product
from .customers import Customer
from .orders import OrderLine

__all__ = [
    'Brand', 'Product',
    'Customer',
    'OrderLine',
]
