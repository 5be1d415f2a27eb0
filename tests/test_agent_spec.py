"""Tests for agent spec parsing and roster loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from schnapsenai.domain.state import UnavailablePolicy
from schnapsenai.ops.cli import load_spec
from schnapsenai.ops.spec import AgentSpec, IdentitySpec, default_agent_spec, parse_agent_spec


def test_default_spec_serves_all_modes() -> None:
    """The built-in roster covers speed, bummerl and duo."""
    spec = default_agent_spec()
    assert spec.game == "Schnapsen"
    assert spec.skill_for("Bugo Hoss") == 1
    assert spec.skill_for("Nobody") is None
    for mode in ("speed", "bummerl", "duo"):
        assert spec.supports("Schnapsen", mode)
    assert not spec.supports("Schnapsen", "blitz")
    assert not spec.supports("Watten", "speed")


def test_known_identity_only_serves_its_own_modes() -> None:
    """A roster identity is matched on its own modes, not the agent's union."""
    spec = default_agent_spec()
    assert spec.supports("Schnapsen", "duo", "Gretl Trumpf")
    assert not spec.supports("Schnapsen", "bummerl", "Gretl Trumpf")
    assert not spec.supports("Schnapsen", "duo", "Bugo Hoss")
    assert spec.supports("Schnapsen", "duo", "Somebody Else")


def test_spec_round_trips_through_mapping() -> None:
    """A spec rebuilt from its own mapping compares equal."""
    spec = default_agent_spec()
    assert AgentSpec.from_mapping(spec.to_mapping()) == spec


def test_custom_mode_overrides_default_policy() -> None:
    """Mode entries in the roster file replace the built-in policy."""
    spec = AgentSpec.from_mapping(
        {
            "identities": [{"name": "X", "skill_level": 2, "modes": ["speed"]}],
            "modes": {"speed": {"unavailable_policy": "resolve", "draw_phase": False}},
        }
    )
    policy = spec.policy_for("speed")
    assert policy.unavailable_policy == UnavailablePolicy.RESOLVE
    assert policy.draw_phase is False
    assert spec.policy_for("bummerl").multi_round is True


def test_identity_with_unknown_mode_is_rejected() -> None:
    """Identities may only reference configured modes."""
    with pytest.raises(ValueError):
        AgentSpec(identities=(IdentitySpec(name="X", skill_level=1, modes=("blitz",)),))


def test_duplicate_identity_names_are_rejected() -> None:
    """Identity names must be unique."""
    identity = IdentitySpec(name="X", skill_level=1, modes=("speed",))
    with pytest.raises(ValueError):
        AgentSpec(identities=(identity, identity))


def test_unknown_timing_keys_are_rejected() -> None:
    """Typos in the timings block fail fast."""
    with pytest.raises(ValueError):
        AgentSpec.from_mapping(
            {
                "identities": [{"name": "X", "skill_level": 1, "modes": ["speed"]}],
                "timings": {"play_dealy": 0.1},
            }
        )


def test_parse_agent_spec_passes_instances_through() -> None:
    """Instances are returned unchanged."""
    spec = default_agent_spec()
    assert parse_agent_spec(spec) is spec


def test_load_spec_from_yaml(tmp_path: Path) -> None:
    """Roster files can be written in YAML."""
    path = tmp_path / "roster.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "identities": [
                    {"name": "Bugo Hoss", "skill_level": 4, "elo": 950, "modes": ["duo"]}
                ],
                "timings": {"play_delay": 0.1},
            }
        ),
        encoding="utf-8",
    )
    spec = load_spec(path)
    assert spec.skill_for("Bugo Hoss") == 4
    assert spec.timings.play_delay == 0.1
    assert [profile.mode for profile in spec.profiles()] == ["duo"]


def test_load_spec_from_json(tmp_path: Path) -> None:
    """Roster files can be written in JSON."""
    path = tmp_path / "roster.json"
    path.write_text(json.dumps(default_agent_spec().to_mapping()), encoding="utf-8")
    assert load_spec(path) == default_agent_spec()


def test_load_spec_rejects_other_formats(tmp_path: Path) -> None:
    """Only JSON and YAML files are accepted."""
    path = tmp_path / "roster.toml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_spec(path)
    with pytest.raises(FileNotFoundError):
        load_spec(tmp_path / "missing.json")
