"""
Client for the external price prediction service.

Contract: ``GET <base>/predictions/predict/<encoded commodity>`` returns a
JSON array of predicted prices. The whole exchange is bounded by the
configured timeout; nothing is retried.
"""

import asyncio
from typing import Any, Optional

import httpx

from agritrack.config import Settings, get_settings
from agritrack.engines.forecast.commodities import parse_commodity, path_segment
from agritrack.errors import UpstreamError, UpstreamUnavailable
from agritrack.logging_config import get_logger

logger = get_logger(__name__)

PREDICT_PATH = "/predictions/predict/"


class PredictionClient:
    """Validates commodity labels and proxies them to the prediction service."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PredictionClient":
        return cls(settings.prediction_base_url, settings.prediction_timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def predict(self, label: str) -> Any:
        """
        Fetch the prediction for a commodity label.

        Raises:
            ValidationFailed: unknown label; no request is sent
            UpstreamUnavailable: timeout or transport failure
            UpstreamError: non-2xx status or a body that is not JSON
        """
        commodity = parse_commodity(label)
        url = f"{self.base_url}{PREDICT_PATH}{path_segment(commodity)}"

        try:
            response = await asyncio.wait_for(
                self._client.get(url),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(
                "Prediction service timed out",
                extra={"commodity": commodity.value, "timeout_s": self.timeout_seconds},
            )
            raise UpstreamUnavailable()
        except httpx.TransportError as exc:
            logger.warning(
                "Prediction service unreachable: %s",
                exc,
                extra={"commodity": commodity.value},
            )
            raise UpstreamUnavailable()

        if not response.is_success:
            logger.warning(
                "Prediction service returned %s",
                response.status_code,
                extra={"commodity": commodity.value},
            )
            raise UpstreamError(response.status_code)

        try:
            return response.json()
        except ValueError:
            logger.warning(
                "Prediction service returned a non-JSON body",
                extra={"commodity": commodity.value},
            )
            raise UpstreamError(response.status_code, "Prediction service returned a malformed response.")


_prediction_client: Optional[PredictionClient] = None


def init_prediction_client(client: Optional[PredictionClient] = None) -> PredictionClient:
    """Create the process-wide client. Called once at startup."""
    global _prediction_client
    _prediction_client = client or PredictionClient.from_settings(get_settings())
    return _prediction_client


async def close_prediction_client() -> None:
    global _prediction_client
    if _prediction_client is not None:
        await _prediction_client.aclose()
    _prediction_client = None


def get_prediction_client() -> PredictionClient:
    """Dependency returning the process-wide client."""
    if _prediction_client is None:
        raise RuntimeError("Prediction client is not initialized; call init_prediction_client() first")
    return _prediction_client
