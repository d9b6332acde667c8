"""
Product ingestion: upload-then-persist pipeline for products with images.
"""

from agritrack.engines.ingestion.product_service import ArtifactUpload, CreatedProduct, ProductService

__all__ = ["ArtifactUpload", "CreatedProduct", "ProductService"]
