"""
API routes.
"""

from fastapi import APIRouter

from agritrack.api.v1 import auth, forecast, products

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(forecast.router, prefix="/forecast", tags=["Price Forecasting"])
router.include_router(products.router, prefix="/products", tags=["Products"])
