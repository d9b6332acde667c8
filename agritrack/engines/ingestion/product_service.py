"""
Product ingestion pipeline.

``create_product`` runs validate -> upload image -> insert row as one unit:
the row is inserted only after the image write has completed, and a failed
write aborts before anything reaches the database. If the insert fails after
a successful upload, the object is left behind for the bucket lifecycle
rules to collect.
"""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agritrack.errors import Conflict, NotFound, StorageFailure
from agritrack.kernel.identity.identity_service import Identity
from agritrack.kernel.models.product import Product, ProductCategory
from agritrack.kernel.storage.artifact_store import ArtifactStore
from agritrack.logging_config import get_logger
from agritrack.schemas.product import ProductCreate, ProductUpdate

logger = get_logger(__name__)


@dataclass(frozen=True)
class ArtifactUpload:
    """Image bytes received with a creation request."""

    data: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class CreatedProduct:
    product_id: str
    image_url: str


class ProductService:
    """Creates, updates and reads product records."""

    def __init__(self, session: AsyncSession, artifact_store: Optional[ArtifactStore] = None):
        self.session = session
        self.artifact_store = artifact_store

    async def create_product(
        self,
        owner: Identity,
        data: ProductCreate,
        artifact: Optional[ArtifactUpload] = None,
    ) -> CreatedProduct:
        """
        Create a product owned by ``owner``.

        Args:
            owner: Verified identity; its email becomes the owner
            data: Validated product fields
            artifact: Optional image; empty payloads count as absent

        Raises:
            ArtifactStoreFailure: image write failed, nothing was inserted
            Conflict: ``product_id`` already exists
            StorageFailure: any other database error
        """
        image_url = ""
        if artifact is not None and artifact.data:
            if self.artifact_store is None:
                raise RuntimeError("ProductService needs an artifact store to accept images")
            stored = await self.artifact_store.put(
                artifact.data,
                artifact.content_type,
                artifact.filename,
            )
            image_url = stored.url

        product = Product(
            product_id=data.product_id,
            product_name=data.product_name,
            product_origin=data.product_origin or "",
            product_category=data.product_category or "",
            product_composition=data.product_composition or "",
            nutrition_facts=data.nutrition_facts or "",
            owner_email=owner.email,
            image_url=image_url,
        )
        self.session.add(product)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(
                "Duplicate product id",
                extra={"product_id": data.product_id, "orphaned_image": bool(image_url)},
            )
            raise Conflict(f"Product '{data.product_id}' already exists.")
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception(
                "Failed to insert product",
                extra={"product_id": data.product_id, "orphaned_image": bool(image_url)},
            )
            raise StorageFailure()

        logger.info(
            "Product created",
            extra={"product_id": product.product_id, "owner": owner.email, "has_image": bool(image_url)},
        )
        return CreatedProduct(product_id=product.product_id, image_url=image_url)

    async def update_product(self, product_id: str, data: ProductUpdate) -> Product:
        """
        Apply a partial update to the descriptive fields.

        Raises:
            NotFound: no product with this id
            StorageFailure: database error
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        try:
            product = await self.get_product(product_id)
            for field, value in changes.items():
                setattr(product, field, value)
            await self.session.commit()
        except NotFound:
            raise
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Failed to update product", extra={"product_id": product_id})
            raise StorageFailure()

        logger.info(
            "Product updated",
            extra={"product_id": product_id, "fields": sorted(changes)},
        )
        return product

    async def get_product(self, product_id: str) -> Product:
        query = select(Product).where(Product.product_id == product_id)
        result = await self.session.execute(query)
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFound("Product not found")
        return product

    async def list_products(self) -> List[Product]:
        result = await self.session.execute(select(Product).order_by(Product.created_at))
        return list(result.scalars().all())

    async def list_categories(self) -> List[str]:
        result = await self.session.execute(
            select(ProductCategory.category_name).order_by(ProductCategory.category_name)
        )
        return list(result.scalars().all())
