"""Tests for the prediction service client."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from schnapsenai.domain.errors import PredictionServiceError
from schnapsenai.domain.state import BeliefState
from schnapsenai.players.http_predictor import HttpPredictor


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, text: str, status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        """Raise HTTPError for error status codes."""
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_predict_posts_payload_with_token(monkeypatch: pytest.MonkeyPatch) -> None:
    """The belief state is posted as JSON with the credential header."""
    calls: list[dict[str, Any]] = []

    def fake_post(url: str, **kwargs: Any) -> FakeResponse:
        calls.append({"url": url, **kwargs})
        return FakeResponse('"Hearts_A"')

    monkeypatch.setattr(requests, "post", fake_post)
    predictor = HttpPredictor(url="http://model/predict", token="secret", timeout=2.0)
    payload = BeliefState(skill_level=3).to_payload()

    assert predictor.predict(payload) == '"Hearts_A"'
    assert calls[0]["url"] == "http://model/predict"
    assert calls[0]["json"]["ki_level"] == 3
    assert calls[0]["headers"]["x-token"] == "secret"
    assert calls[0]["headers"]["Content-Type"] == "application/json"
    assert calls[0]["timeout"] == 2.0


def test_custom_token_header(monkeypatch: pytest.MonkeyPatch) -> None:
    """The credential header name is configurable."""
    headers: list[dict[str, str]] = []

    def fake_post(url: str, **kwargs: Any) -> FakeResponse:
        headers.append(kwargs["headers"])
        return FakeResponse("Bells_T")

    monkeypatch.setattr(requests, "post", fake_post)
    HttpPredictor(url="http://model", token="k", token_header="Authorization").predict({})
    assert headers[0]["Authorization"] == "k"
    assert "x-token" not in headers[0]


def test_timeout_becomes_prediction_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """A timed-out call is reported as a prediction service error."""

    def fake_post(url: str, **kwargs: Any) -> FakeResponse:
        raise requests.Timeout("slow")

    monkeypatch.setattr(requests, "post", fake_post)
    with pytest.raises(PredictionServiceError):
        HttpPredictor(url="http://model").predict({})


def test_http_error_becomes_prediction_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """Non-2xx answers are prediction service errors."""
    monkeypatch.setattr(requests, "post", lambda url, **kwargs: FakeResponse("", 503))
    with pytest.raises(PredictionServiceError):
        HttpPredictor(url="http://model").predict({})


def test_invalid_configuration_is_rejected() -> None:
    """A URL and a positive timeout are required."""
    with pytest.raises(ValueError):
        HttpPredictor(url="")
    with pytest.raises(ValueError):
        HttpPredictor(url="http://model", timeout=0)
