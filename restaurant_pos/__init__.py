"""
                Restaurant POS Engine

Point-of-sale backend for a single restaurant tenant: tables, in-flight
orders, ingredient inventory and daily sales totals, shared by the
waiter, kitchen, cashier and manager front-ends.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
