"""CLI helpers for loading agent specs and wiring the dispatcher."""

from __future__ import annotations

import importlib
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from schnapsenai.app.decision import DecisionEngine
from schnapsenai.app.dispatcher import EngineFactory, TaskDispatcher
from schnapsenai.domain.task import Task
from schnapsenai.interfaces import ConnectionFactory
from schnapsenai.ops.config import AgentSettings
from schnapsenai.ops.spec import AgentSpec, default_agent_spec
from schnapsenai.players.registry import PredictorRegistry, build_default_registry
from schnapsenai.server.amqp import AmqpBroker

logger = logging.getLogger(__name__)


def load_spec(path: Path) -> AgentSpec:
    """Load an agent spec from JSON or YAML."""
    spec, _ = load_spec_with_data(path)
    return spec


def load_spec_with_data(path: Path) -> tuple[AgentSpec, Mapping[str, Any]]:
    """Load an agent spec and return both the parsed spec and raw mapping."""
    data = _load_spec_data(path)
    if not isinstance(data, Mapping):
        raise ValueError("Spec file must contain a mapping")
    return AgentSpec.from_mapping(data), data


def resolve_connection_factory(path: str) -> ConnectionFactory:
    """Import a connection factory from a ``module:attribute`` path."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Connection factory must look like 'module:attr', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        factory = getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"{module_name} has no attribute {attr}") from exc
    if not callable(factory):
        raise ValueError(f"Connection factory {path} is not callable")
    return factory


def build_engine_factory(
    settings: AgentSettings,
    registry: PredictorRegistry | None = None,
) -> EngineFactory:
    """Return a factory creating one decision engine per task."""
    predictors = registry or build_default_registry()
    predictor_spec = settings.predictor_spec()
    # Fail at startup rather than on the first task.
    predictors.create(predictor_spec)

    def factory(task: Task) -> DecisionEngine:
        return DecisionEngine(predictors.create(predictor_spec), timeout=settings.predictor_timeout)

    return factory


def build_dispatcher(
    settings: AgentSettings,
    spec: AgentSpec | None = None,
    connection_factory: ConnectionFactory | None = None,
    registry: PredictorRegistry | None = None,
) -> TaskDispatcher:
    """Assemble a dispatcher from settings, falling back to built-in defaults."""
    if spec is None:
        spec = load_spec(settings.spec_path) if settings.spec_path else default_agent_spec()
    if connection_factory is None:
        if not settings.connection_factory:
            raise ValueError("SCHNAPSEN_AI_CONNECTION_FACTORY is not configured")
        connection_factory = resolve_connection_factory(settings.connection_factory)
    logger.info(
        "Serving %s identities for %s with %s predictor",
        len(spec.identities),
        spec.game,
        settings.predictor_type,
    )
    return TaskDispatcher(
        spec=spec,
        connection_factory=connection_factory,
        engine_factory=build_engine_factory(settings, registry),
    )


def build_broker(settings: AgentSettings) -> AmqpBroker | None:
    """Return the AMQP broker for the configured URL, or None without one."""
    if not settings.broker_url:
        return None
    return AmqpBroker(
        settings.broker_url,
        task_queue=settings.task_queue,
        registration_queue=settings.registration_queue,
        prefetch_count=settings.broker_prefetch,
    )


def _load_spec_data(path: Path) -> Mapping[str, Any]:
    """Load spec data from disk."""
    if not path.exists():
        raise FileNotFoundError(f"Spec file not found: {path}")
    if path.suffix.lower() in {".json"}:
        return _load_json(path)
    if path.suffix.lower() in {".yaml", ".yml"}:
        return _load_yaml(path)
    raise ValueError("Spec file must be .json or .yaml")


def _load_json(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if not isinstance(data, Mapping):
        raise ValueError("YAML spec must be a mapping")
    return data
