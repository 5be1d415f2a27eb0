"""Game-protocol event vocabulary."""

from schnapsenai.protocol.events import EventName

__all__ = ["EventName"]
