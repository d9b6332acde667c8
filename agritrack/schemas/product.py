"""
Product schemas.

Field aliases follow the camelCase names clients send; both spellings are
accepted on input.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PRODUCT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:-]*$")


class _ProductFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    product_origin: Optional[str] = Field(None, alias="productOrigin", max_length=255)
    product_category: Optional[str] = Field(None, alias="productCategory", max_length=100)
    product_composition: Optional[str] = Field(None, alias="productComposition")
    nutrition_facts: Optional[str] = Field(None, alias="nutritionFacts")


class ProductCreate(_ProductFields):
    """Product creation request (form fields or JSON)."""

    product_id: str = Field(..., alias="productId", min_length=1, max_length=100)
    product_name: str = Field(..., alias="productName", min_length=1, max_length=255)

    @field_validator("product_id")
    @classmethod
    def validate_product_id(cls, v: str) -> str:
        if not PRODUCT_ID_PATTERN.match(v):
            raise ValueError(
                "productId may contain only letters, digits and '_', '.', ':', '-'"
            )
        return v


class ProductUpdate(_ProductFields):
    """Partial product update. Owner and image cannot be changed here."""

    product_name: Optional[str] = Field(None, alias="productName", min_length=1, max_length=255)


class ProductCreatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    product_id: str = Field(..., serialization_alias="productId")
    image_url: str = Field(..., serialization_alias="imageUrl")


class ProductResponse(BaseModel):
    """Product row as returned by the read endpoints."""

    model_config = ConfigDict(from_attributes=True)

    product_id: str
    product_name: str
    product_origin: str
    product_category: str
    product_composition: str
    nutrition_facts: str
    owner_email: str
    image_url: str
    created_at: datetime
    updated_at: datetime


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category_name: str
