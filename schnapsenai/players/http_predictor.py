"""Predictor backed by the hosted move-prediction service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

import requests

from schnapsenai.domain.errors import PredictionServiceError

logger = logging.getLogger(__name__)


@dataclass
class HttpPredictor:
    """POST the belief state as JSON and return the response body as a card token."""

    url: str
    token: str = ""
    token_header: str = "x-token"
    timeout: float = 5.0
    name: str = "http"
    kind: str = "http"

    def __post_init__(self) -> None:
        """Validate the endpoint configuration."""
        if not self.url:
            raise ValueError("Prediction service URL is required")
        if self.timeout <= 0:
            raise ValueError("Prediction timeout must be positive")

    def predict(self, payload: Mapping[str, object]) -> str:
        """Call the prediction service once; raise PredictionServiceError on failure."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers[self.token_header] = self.token
        try:
            response = requests.post(
                self.url,
                json=dict(payload),
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.Timeout as exc:
            raise PredictionServiceError(f"Prediction timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise PredictionServiceError(f"Prediction request failed: {exc}") from exc
        logger.debug("Prediction service answered %r", response.text)
        return response.text
