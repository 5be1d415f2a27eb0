"""Move predictors and registry utilities."""

from schnapsenai.players.base import Predictor
from schnapsenai.players.registry import PredictorFactory, PredictorRegistry

__all__ = ["Predictor", "PredictorFactory", "PredictorRegistry"]
