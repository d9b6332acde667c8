"""
Price forecasting endpoints.
"""

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from agritrack.api.deps import CurrentIdentity, DbSession, Predictions
from agritrack.engines.forecast.commodities import CommodityType
from agritrack.errors import StorageFailure
from agritrack.kernel.models.commodity import Commodity
from agritrack.logging_config import get_logger
from agritrack.schemas.common import ErrorResponse
from agritrack.schemas.forecast import (
    CommodityItem,
    CommodityListResponse,
    PredictRequest,
    PredictResponse,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("/get-allTypes", response_model=CommodityListResponse)
async def get_all_types(identity: CurrentIdentity, db: DbSession):
    """
    List the commodity types offered for forecasting.

    Only rows that name a known commodity are listed, so every advertised
    type is accepted by /predict.
    """
    try:
        result = await db.execute(select(Commodity.commodity_type).order_by(Commodity.commodity_type))
        rows = result.scalars().all()
    except SQLAlchemyError:
        logger.exception("Failed to read commodity types")
        raise StorageFailure()

    known = {c.value for c in CommodityType}
    unknown = [row for row in rows if row not in known]
    if unknown:
        logger.warning("Commodity table lists unknown types", extra={"types": unknown})

    return CommodityListResponse(
        commodities=[CommodityItem(commodity_type=row) for row in rows if row in known],
    )


@router.post(
    "/predict",
    response_model=PredictResponse,
    responses={
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def predict(data: PredictRequest, identity: CurrentIdentity, predictions: Predictions):
    """
    Forecast prices for a commodity.

    The upstream prediction payload is returned unchanged.
    """
    prediction = await predictions.predict(data.commodity_type)
    logger.info(
        "Prediction served",
        extra={"commodity": data.commodity_type, "user_id": identity.user_id},
    )
    return PredictResponse(prediction_data=prediction)
