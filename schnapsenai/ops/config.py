"""Environment configuration and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

_TRUTHY = {"1", "true", "yes", "on"}
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class AgentSettings:
    """Process-wide settings read from the environment at startup."""

    broker_url: str = ""
    task_queue: str = "ai-task-generate-request"
    registration_queue: str = ""
    broker_prefetch: int = 10
    predictor_url: str = ""
    predictor_token: str = ""
    predictor_token_header: str = "x-token"
    predictor_timeout: float = 5.0
    predictor_type: str = "http"
    spec_path: Path | None = None
    connection_factory: str = ""
    host_addr: str = "0.0.0.0:6060"
    public_addr: str = ""
    private_addr: str = ""
    debug: bool = False

    def __post_init__(self) -> None:
        if self.predictor_timeout <= 0:
            raise ValueError("SCHNAPSEN_AI_TIMEOUT must be positive")
        if not self.task_queue:
            raise ValueError("SCHNAPSEN_AI_TASK_QUEUE cannot be empty")
        if self.broker_prefetch < 1:
            raise ValueError("SCHNAPSEN_AI_PREFETCH must be at least 1")

    @property
    def host(self) -> str:
        host, _, _ = self.host_addr.rpartition(":")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.host_addr.rpartition(":")
        try:
            return int(port)
        except ValueError as exc:
            raise ValueError(f"HOST_ADDR needs host:port, got {self.host_addr!r}") from exc

    def predictor_spec(self) -> dict[str, object]:
        """Return the predictor spec mapping for the predictor registry."""
        if self.predictor_type == "http":
            return {
                "type": "http",
                "params": {
                    "url": self.predictor_url,
                    "token": self.predictor_token,
                    "token_header": self.predictor_token_header,
                    "timeout": self.predictor_timeout,
                },
            }
        return {"type": self.predictor_type}

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "AgentSettings":
        """Read settings from environment variables."""
        env = os.environ if environ is None else environ
        spec_value = env.get("SCHNAPSEN_AI_ROSTER", "")
        return AgentSettings(
            broker_url=env.get("AMQP_URL", ""),
            task_queue=env.get("SCHNAPSEN_AI_TASK_QUEUE", "ai-task-generate-request"),
            registration_queue=env.get("SCHNAPSEN_AI_REGISTRATION_QUEUE", ""),
            broker_prefetch=int(env.get("SCHNAPSEN_AI_PREFETCH", "10")),
            predictor_url=env.get("SCHNAPSEN_AI_MODEL_URL", ""),
            predictor_token=env.get("SCHNAPSEN_AI_TOKEN", ""),
            predictor_token_header=env.get("SCHNAPSEN_AI_TOKEN_HEADER", "x-token"),
            predictor_timeout=float(env.get("SCHNAPSEN_AI_TIMEOUT", "5")),
            predictor_type=env.get("SCHNAPSEN_AI_PREDICTOR", "http"),
            spec_path=Path(spec_value) if spec_value else None,
            connection_factory=env.get("SCHNAPSEN_AI_CONNECTION_FACTORY", ""),
            host_addr=env.get("HOST_ADDR", "0.0.0.0:6060"),
            public_addr=env.get("PUBLIC_ADDR", ""),
            private_addr=env.get("PRIVATE_ADDR", ""),
            debug=env.get("DEBUG", "").strip().lower() in _TRUTHY,
        )


def configure_logging(debug: bool = False) -> None:
    """Configure root logging for entry scripts."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
