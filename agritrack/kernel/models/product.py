"""
Product catalogue models.

A product row references its image by public URL. The URL is written only
after the object store confirmed the upload, so ``image_url`` is either a
locator for stored bytes or an empty string.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from agritrack.kernel.models.base import Base, TimestampMixin


class Product(Base, TimestampMixin):
    """Product record owned by the user that created it."""

    __tablename__ = "products"

    product_id: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
    )
    product_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    product_origin: Mapped[str] = mapped_column(
        String(255),
        default="",
        nullable=False,
    )
    product_category: Mapped[str] = mapped_column(
        String(100),
        default="",
        nullable=False,
    )
    product_composition: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    nutrition_facts: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    owner_email: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
    )
    image_url: Mapped[str] = mapped_column(
        String(1024),
        default="",
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Product {self.product_id}>"


class ProductCategory(Base):
    """Read-only lookup of product categories."""

    __tablename__ = "product_categories"

    category_name: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
    )
