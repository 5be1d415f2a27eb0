"""Bounded error recovery policy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ErrorRecovery:
    """Allow at most ``replay_cap`` corrective actions between resets."""

    replay_cap: int = 1
    attempts: int = 0
    errors_seen: int = 0

    def __post_init__(self) -> None:
        if self.replay_cap < 0:
            raise ValueError("replay_cap cannot be negative")

    @property
    def retry_used(self) -> bool:
        return self.attempts >= self.replay_cap

    def acquire(self) -> bool:
        """Record a protocol error; return True if a corrective action may run."""
        self.errors_seen += 1
        if self.retry_used:
            return False
        self.attempts += 1
        return True

    def reset(self) -> None:
        self.attempts = 0
        self.errors_seen = 0
