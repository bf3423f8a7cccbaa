"""
                        Services Module

Business logic for the restaurant backend.

Services:
    - record_store: Document-style access to the database tables
    - assets: Menu item photograph storage (Mock / Cloudinary)
    - catalog: Menu item and category writes kept consistent with the asset store
    - orders: Order submission and status workflow
"""

from app.services.catalog import CatalogManager
from app.services.orders import OrderLifecycleManager

__all__ = ["CatalogManager", "OrderLifecycleManager"]
