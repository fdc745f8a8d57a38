"""
Models live in separate modules; this keeps
    from apps.orders.models import Order
working.
"""

from .order import *          # Order
from .checkout import *       # CheckoutAttempt
