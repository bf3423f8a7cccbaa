"""
                Restaurant Order Management

Backend for a restaurant: a menu catalog whose photographs live in an
external asset store, and customer orders with a status workflow.

License: MIT
"""

__version__ = "1.0.0"
