"""Predictor registry for creating predictors from specs."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from schnapsenai.players.base import Predictor

PredictorFactory = Callable[[Mapping[str, Any]], Predictor]


class PredictorRegistry:
    """Registry of predictor factories keyed by type string."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._factories: dict[str, PredictorFactory] = {}

    def register(self, predictor_type: str, factory: PredictorFactory) -> None:
        """Register a factory for a predictor type."""
        if not predictor_type:
            raise ValueError("Predictor type is required")
        if predictor_type in self._factories:
            raise ValueError(f"Predictor type already registered: {predictor_type}")
        self._factories[predictor_type] = factory

    def create(self, spec: Mapping[str, Any]) -> Predictor:
        """Create a predictor instance from a spec mapping."""
        predictor_type = self._extract_type(spec)
        if predictor_type not in self._factories:
            raise KeyError(f"Unknown predictor type: {predictor_type}")
        return self._factories[predictor_type](spec)

    def available_types(self) -> tuple[str, ...]:
        """Return the registered predictor types as a sorted tuple."""
        return tuple(sorted(self._factories.keys()))

    def _extract_type(self, spec: Mapping[str, Any]) -> str:
        """Extract the predictor type from the spec mapping."""
        predictor_type = spec.get("type")
        if not isinstance(predictor_type, str) or not predictor_type:
            raise ValueError("Predictor spec must include a non-empty 'type'")
        return predictor_type


def build_default_registry() -> PredictorRegistry:
    """Return a registry pre-populated with the built-in predictors."""
    registry = PredictorRegistry()
    register_builtin_predictors(registry)
    return registry


def register_builtin_predictors(registry: PredictorRegistry) -> None:
    """Register built-in predictor factories."""
    from schnapsenai.players.http_predictor import HttpPredictor
    from schnapsenai.players.random_predictor import RandomPredictor

    registry.register("http", _http_factory(HttpPredictor))
    registry.register("random", _random_factory(RandomPredictor))


def _http_factory(predictor_cls: type) -> PredictorFactory:
    """Create a factory for the prediction service client."""

    def factory(spec: Mapping[str, Any]) -> Predictor:
        params = _coerce_params(spec.get("params"))
        url = params.get("url")
        if not isinstance(url, str) or not url:
            raise ValueError("http predictor requires a 'url'")
        kwargs: dict[str, object] = {
            "url": url,
            "name": _coerce_name(spec.get("name"), default="http"),
        }
        if params.get("token"):
            kwargs["token"] = str(params["token"])
        if params.get("token_header"):
            kwargs["token_header"] = str(params["token_header"])
        if "timeout" in params:
            kwargs["timeout"] = float(params["timeout"])  # type: ignore[arg-type]
        return predictor_cls(**kwargs)

    return factory


def _random_factory(predictor_cls: type) -> PredictorFactory:
    """Create a factory for the offline random predictor."""

    def factory(spec: Mapping[str, Any]) -> Predictor:
        params = _coerce_params(spec.get("params"))
        seed = params.get("seed")
        name = _coerce_name(spec.get("name"), default="random")
        return predictor_cls(name=name, seed=seed if isinstance(seed, int) else None)

    return factory


def _coerce_params(params: object) -> dict[str, object]:
    """Coerce params into a dict."""
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise ValueError("Predictor spec params must be a dict")
    return dict(params)


def _coerce_name(name: object, default: str) -> str:
    """Coerce the predictor name into a string."""
    if isinstance(name, str) and name:
        return name
    return default
