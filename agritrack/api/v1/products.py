"""
Product endpoints.

Creation accepts either a multipart form (fields plus an optional ``image``
file part) or a JSON body without an image.
"""

from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from agritrack.api.deps import Artifacts, CurrentIdentity, DbSession
from agritrack.engines.ingestion.product_service import ArtifactUpload, ProductService
from agritrack.errors import ValidationFailed
from agritrack.logging_config import get_logger
from agritrack.schemas.common import ErrorResponse, MessageResponse
from agritrack.schemas.product import (
    CategoryResponse,
    ProductCreate,
    ProductCreatedResponse,
    ProductResponse,
    ProductUpdate,
)

router = APIRouter()
logger = get_logger(__name__)

IMAGE_FIELD = "image"


def _validation_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


async def _read_create_payload(request: Request) -> Tuple[Dict[str, Any], Optional[ArtifactUpload]]:
    """Split a creation request into plain fields and the optional image."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationFailed("Request body is not valid JSON.")
        if not isinstance(body, dict):
            raise ValidationFailed("Request body must be a JSON object.")
        return body, None

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        fields: Dict[str, Any] = {}
        artifact: Optional[ArtifactUpload] = None
        # Leaving the block closes the spooled upload files
        async with request.form() as form:
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    if key != IMAGE_FIELD:
                        raise ValidationFailed(f"Unexpected file field '{key}'.")
                    data = await value.read()
                    if data:
                        artifact = ArtifactUpload(
                            data=data,
                            content_type=value.content_type,
                            filename=value.filename,
                        )
                else:
                    fields[key] = value
        return fields, artifact

    raise ValidationFailed("Expected a multipart form or a JSON body.")


@router.get("", response_model=List[ProductResponse])
async def list_products(db: DbSession):
    """List all products."""
    products = await ProductService(db).list_products()
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/product/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, db: DbSession):
    """Get a single product."""
    product = await ProductService(db).get_product(product_id)
    return ProductResponse.model_validate(product)


@router.get("/get-products-categories", response_model=List[CategoryResponse])
async def list_categories(db: DbSession):
    """List product categories."""
    names = await ProductService(db).list_categories()
    return [CategoryResponse(category_name=name) for name in names]


@router.post(
    "/post-products",
    response_model=ProductCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def post_product(
    request: Request,
    identity: CurrentIdentity,
    db: DbSession,
    store: Artifacts,
):
    """
    Create a product owned by the caller.

    The image, if any, is stored before the product row is written; the
    response is sent only after both completed.
    """
    fields, artifact = await _read_create_payload(request)
    try:
        data = ProductCreate.model_validate(fields)
    except ValidationError as e:
        raise ValidationFailed(errors=_validation_errors(e))

    created = await ProductService(db, store).create_product(identity, data, artifact)
    return ProductCreatedResponse(
        message="Product added successfully",
        product_id=created.product_id,
        image_url=created.image_url,
    )


@router.put(
    "/edit-product/{product_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def edit_product(
    product_id: str,
    data: ProductUpdate,
    identity: CurrentIdentity,
    db: DbSession,
):
    """Update a product's descriptive fields. Owner and image stay unchanged."""
    await ProductService(db).update_product(product_id, data)
    return MessageResponse(message="Product updated successfully")
