"""
Forecast schemas.
"""

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class PredictRequest(BaseModel):
    """Prediction request. The label is checked against the known commodities later."""

    model_config = ConfigDict(populate_by_name=True)

    commodity_type: str = Field(..., alias="commodityType", min_length=1, max_length=100)


class PredictResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prediction_data: Any = Field(..., serialization_alias="predictionData")


class CommodityItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    commodity_type: str = Field(..., serialization_alias="commodityType")


class CommodityListResponse(BaseModel):
    commodities: List[CommodityItem]
