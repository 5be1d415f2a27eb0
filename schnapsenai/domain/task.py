"""Task assignments and registrable agent identities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class MatchAddress:
    """Where and how to attach to a running match."""

    url: str
    read: str
    write: str
    players: tuple[str, ...] = ()


@dataclass(frozen=True)
class Task:
    """Assignment to play one match as a given AI identity."""

    ai_id: str
    game: str
    mode: str
    address: str
    read: str
    write: str
    players: tuple[str, ...] = ()
    ai_level: int | None = None

    def __post_init__(self) -> None:
        """Validate task fields."""
        for name in ("ai_id", "game", "mode", "address", "read", "write"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"Task.{name} must be a non-empty string")

    def match_address(self, scheme: str = "http") -> MatchAddress:
        """Return the scheme-prefixed match address for the protocol client."""
        url = self.address if "://" in self.address else f"{scheme}://{self.address}"
        return MatchAddress(url=url, read=self.read, write=self.write, players=self.players)

    def to_mapping(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "ai_id": self.ai_id,
            "game": self.game,
            "mode": self.mode,
            "address": self.address,
            "read": self.read,
            "write": self.write,
            "players": list(self.players),
        }
        if self.ai_level is not None:
            payload["ai_level"] = self.ai_level
        return payload

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "Task":
        """Create a Task from a decoded broker message."""
        if not isinstance(data, Mapping):
            raise ValueError("Task message must be a mapping")
        players_value = data.get("players", []) or []
        if not isinstance(players_value, list):
            raise ValueError("Task.players must be a list")
        level_value = data.get("ai_level")
        if level_value is not None and (
            isinstance(level_value, bool) or not isinstance(level_value, int)
        ):
            raise ValueError("Task.ai_level must be an integer")
        return Task(
            ai_id=_require_str(data, "ai_id"),
            game=_require_str(data, "game"),
            mode=_require_str(data, "mode"),
            address=_require_str(data, "address"),
            read=_require_str(data, "read"),
            write=_require_str(data, "write"),
            players=tuple(str(player) for player in players_value),
            ai_level=level_value,
        )


@dataclass(frozen=True)
class AgentProfile:
    """Identity a matchmaker can route tasks to."""

    game: str
    mode: str
    elo: int
    display_name: str

    def to_message(self) -> dict[str, object]:
        """Return the registration channel payload."""
        return {
            "game": self.game,
            "mode": self.mode,
            "elo": self.elo,
            "display_name": self.display_name,
        }


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Task.{key} must be a non-empty string")
    return value
