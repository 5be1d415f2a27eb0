"""Autonomous Schnapsen agent: match sessions driven by protocol events."""

__version__ = "0.1.0"
