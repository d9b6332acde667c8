"""
Kernel Data Models

Core SQLAlchemy models: credentials, the revocation list, products and the
read-only lookup tables.
"""

from agritrack.kernel.models.base import Base, TimestampMixin, generate_uuid
from agritrack.kernel.models.user import User, RevokedToken
from agritrack.kernel.models.product import Product, ProductCategory
from agritrack.kernel.models.commodity import Commodity

__all__ = [
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "User",
    "RevokedToken",
    "Product",
    "ProductCategory",
    "Commodity",
]
