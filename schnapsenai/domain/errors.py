"""Error taxonomy for the Schnapsen agent."""

from __future__ import annotations


class SchnapsenAIError(Exception):
    """Base class for agent errors."""


class TaskMismatchError(SchnapsenAIError):
    """Task names a game or mode this agent does not serve."""


class PredictionServiceError(SchnapsenAIError):
    """Prediction service call failed, timed out, or answered garbage."""


class IllegalMoveError(SchnapsenAIError):
    """A well-formed card that is not currently playable."""


class ConnectionLostError(SchnapsenAIError):
    """Protocol connection is gone and cannot be used anymore."""


class InvalidState(SchnapsenAIError):
    """Session or belief state is inconsistent."""


class InvalidCard(SchnapsenAIError, ValueError):
    """Card token or payload cannot be parsed."""
