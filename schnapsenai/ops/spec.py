"""Agent roster: identities, supported modes, and session tuning."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from schnapsenai.app.session import SessionTimings
from schnapsenai.domain.modes import DEFAULT_MODE_POLICIES, ModePolicy
from schnapsenai.domain.task import AgentProfile

DEFAULT_GAME = "Schnapsen"


@dataclass(frozen=True)
class IdentitySpec:
    """Registrable AI identity and the skill level it plays at."""

    name: str
    skill_level: int
    elo: int = 1000
    modes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate identity fields."""
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("IdentitySpec.name is required")
        if self.skill_level < 0:
            raise ValueError("IdentitySpec.skill_level cannot be negative")
        if not self.modes:
            raise ValueError(f"Identity {self.name} must support at least one mode")

    def to_mapping(self) -> dict[str, object]:
        """Serialize the identity into a mapping."""
        return {
            "name": self.name,
            "skill_level": self.skill_level,
            "elo": self.elo,
            "modes": list(self.modes),
        }

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "IdentitySpec":
        """Create an IdentitySpec from a mapping."""
        name_value = data.get("name")
        if not isinstance(name_value, str) or not name_value:
            raise ValueError("IdentitySpec.name must be a non-empty string")
        modes_value = data.get("modes", [])
        if isinstance(modes_value, str):
            modes_value = [modes_value]
        if not isinstance(modes_value, list):
            raise ValueError("IdentitySpec.modes must be a list")
        return IdentitySpec(
            name=name_value,
            skill_level=int(data.get("skill_level", 0)),
            elo=int(data.get("elo", 1000)),
            modes=tuple(str(mode) for mode in modes_value),
        )


@dataclass(frozen=True)
class AgentSpec:
    """Everything the dispatcher needs to decide which tasks to take and how to play them."""

    identities: tuple[IdentitySpec, ...]
    game: str = DEFAULT_GAME
    modes: dict[str, ModePolicy] = field(default_factory=lambda: dict(DEFAULT_MODE_POLICIES))
    default_skill_level: int = 0
    replay_cap: int = 1
    timings: SessionTimings = field(default_factory=SessionTimings)

    def __post_init__(self) -> None:
        """Validate agent spec fields."""
        if not self.identities:
            raise ValueError("At least one identity is required")
        names = [identity.name for identity in self.identities]
        if len(names) != len(set(names)):
            raise ValueError("Duplicate identity name")
        for identity in self.identities:
            for mode in identity.modes:
                if mode not in self.modes:
                    raise ValueError(f"Identity {identity.name} uses unknown mode: {mode}")
        if self.replay_cap < 0:
            raise ValueError("replay_cap cannot be negative")

    def supports(self, game: str, mode: str, ai_id: str | None = None) -> bool:
        """Return True if the game/mode combination is served.

        A known ``ai_id`` must serve the mode itself; an unknown or missing
        one is accepted when any identity serves it.
        """
        if game != self.game:
            return False
        for identity in self.identities:
            if identity.name == ai_id:
                return mode in identity.modes
        return any(mode in identity.modes for identity in self.identities)

    def skill_for(self, ai_id: str) -> int | None:
        for identity in self.identities:
            if identity.name == ai_id:
                return identity.skill_level
        return None

    def policy_for(self, mode: str) -> ModePolicy:
        if mode not in self.modes:
            raise KeyError(f"Unknown mode: {mode}")
        return self.modes[mode]

    def profiles(self) -> list[AgentProfile]:
        """Return one registration profile per identity and supported mode."""
        return [
            AgentProfile(
                game=self.game,
                mode=mode,
                elo=identity.elo,
                display_name=identity.name,
            )
            for identity in self.identities
            for mode in identity.modes
        ]

    def to_mapping(self) -> dict[str, object]:
        """Return a mapping representation of the agent spec."""
        return {
            "game": self.game,
            "default_skill_level": self.default_skill_level,
            "replay_cap": self.replay_cap,
            "identities": [identity.to_mapping() for identity in self.identities],
            "modes": {name: policy.to_mapping() for name, policy in self.modes.items()},
            "timings": {
                "announce_delay": self.timings.announce_delay,
                "announce_play_delay": self.timings.announce_play_delay,
                "swap_delay": self.timings.swap_delay,
                "play_delay": self.timings.play_delay,
                "draw_delay": self.timings.draw_delay,
                "recovery_delay": self.timings.recovery_delay,
            },
        }

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "AgentSpec":
        """Create an AgentSpec from a mapping."""
        identities_data = data.get("identities", [])
        if not isinstance(identities_data, list):
            raise ValueError("identities must be a list")
        identities = tuple(IdentitySpec.from_mapping(item) for item in identities_data)
        modes = dict(DEFAULT_MODE_POLICIES)
        modes_data = data.get("modes", {}) or {}
        if not isinstance(modes_data, Mapping):
            raise ValueError("modes must be a mapping of mode name to policy")
        for name, policy_data in modes_data.items():
            if not isinstance(policy_data, Mapping):
                raise ValueError(f"Mode policy for {name} must be a mapping")
            modes[str(name)] = ModePolicy.from_mapping(policy_data, name=str(name))
        timings_data = data.get("timings", {}) or {}
        if not isinstance(timings_data, Mapping):
            raise ValueError("timings must be a mapping")
        return AgentSpec(
            identities=identities,
            game=str(data.get("game", DEFAULT_GAME)),
            modes=modes,
            default_skill_level=int(data.get("default_skill_level", 0)),
            replay_cap=int(data.get("replay_cap", 1)),
            timings=SessionTimings.from_mapping(timings_data),
        )


def default_agent_spec() -> AgentSpec:
    """Return the built-in roster of identities."""
    return AgentSpec(
        identities=(
            IdentitySpec(name="Bugo Hoss", skill_level=1, elo=900, modes=("speed", "bummerl")),
            IdentitySpec(name="Franz Kartler", skill_level=2, elo=1200, modes=("speed", "bummerl")),
            IdentitySpec(name="Gretl Trumpf", skill_level=3, elo=1500, modes=("speed", "duo")),
        ),
    )


def parse_agent_spec(spec: AgentSpec | Mapping[str, Any]) -> AgentSpec:
    """Normalize an agent spec input into an AgentSpec instance."""
    if isinstance(spec, AgentSpec):
        return spec
    return AgentSpec.from_mapping(spec)
