"""Mode policies that parameterize a match session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .state import UnavailablePolicy


@dataclass(frozen=True)
class ModePolicy:
    """Per-mode differences in how a session reacts to protocol events."""

    name: str
    announce_enabled: bool = True
    draw_phase: bool = True
    multi_round: bool = False
    unavailable_policy: UnavailablePolicy = UnavailablePolicy.IGNORE

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("ModePolicy.name is required")
        if not isinstance(self.unavailable_policy, UnavailablePolicy):
            raise ValueError("ModePolicy.unavailable_policy must be an UnavailablePolicy")

    def to_mapping(self) -> dict[str, object]:
        return {
            "name": self.name,
            "announce_enabled": self.announce_enabled,
            "draw_phase": self.draw_phase,
            "multi_round": self.multi_round,
            "unavailable_policy": self.unavailable_policy.value,
        }

    @staticmethod
    def from_mapping(data: Mapping[str, Any], name: str | None = None) -> "ModePolicy":
        """Create a policy from a mapping; missing flags fall back to defaults."""
        name_value = data.get("name", name)
        if not isinstance(name_value, str) or not name_value:
            raise ValueError("ModePolicy.name must be a non-empty string")
        policy_value = data.get("unavailable_policy", UnavailablePolicy.IGNORE.value)
        try:
            unavailable = UnavailablePolicy(policy_value)
        except ValueError as exc:
            raise ValueError(f"Invalid unavailable_policy: {policy_value}") from exc
        return ModePolicy(
            name=name_value,
            announce_enabled=bool(data.get("announce_enabled", True)),
            draw_phase=bool(data.get("draw_phase", True)),
            multi_round=bool(data.get("multi_round", False)),
            unavailable_policy=unavailable,
        )


DEFAULT_MODE_POLICIES: dict[str, ModePolicy] = {
    "speed": ModePolicy(name="speed"),
    "bummerl": ModePolicy(name="bummerl", multi_round=True),
    "duo": ModePolicy(name="duo", announce_enabled=False, multi_round=True),
}
