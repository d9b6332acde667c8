"""
Price forecasting: commodity validation and the prediction service proxy.
"""

from agritrack.engines.forecast.commodities import (
    COMMODITY_PATH_SEGMENTS,
    CommodityType,
    parse_commodity,
    path_segment,
)
from agritrack.engines.forecast.prediction_client import (
    PredictionClient,
    get_prediction_client,
    init_prediction_client,
)

__all__ = [
    "COMMODITY_PATH_SEGMENTS",
    "CommodityType",
    "parse_commodity",
    "path_segment",
    "PredictionClient",
    "get_prediction_client",
    "init_prediction_client",
]
