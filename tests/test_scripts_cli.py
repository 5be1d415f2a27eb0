"""Tests for the command-line scripts."""

from __future__ import annotations

import asyncio

from scripts.simulate_match import simulate


def test_simulated_bummerl_round_plays_every_permitted_turn() -> None:
    """The scripted round plays once per permitted turn and ends terminally."""
    result = asyncio.run(simulate("bummerl", seed=4))
    assert result["commands"] == ["playCard", "playCard"]
    assert result["phase"] == "terminal"
    assert result["own_points"] == 0


def test_simulated_speed_round_ends_at_round_result() -> None:
    """Single-round modes end before the final result arrives."""
    result = asyncio.run(simulate("speed", seed=4))
    assert result["phase"] == "terminal"
    assert result["own_points"] == 24
