"""Drive one scripted Schnapsen round through a match session locally."""

from __future__ import annotations

import argparse
import asyncio
import json

from schnapsenai.app.decision import DecisionEngine
from schnapsenai.app.session import MatchSession, SessionTimings
from schnapsenai.domain.cards import Card, Rank, Suit, card_to_native
from schnapsenai.domain.state import BeliefState
from schnapsenai.domain.task import Task
from schnapsenai.ops.config import configure_logging
from schnapsenai.ops.spec import default_agent_spec
from schnapsenai.players.random_predictor import RandomPredictor
from schnapsenai.server.memory import InMemoryMatchConnection

HAND = (
    Card(Suit.HEARTS, Rank.KING),
    Card(Suit.HEARTS, Rank.QUEEN),
    Card(Suit.BELLS, Rank.ACE),
    Card(Suit.LEAVES, Rank.TEN),
    Card(Suit.ACORNS, Rank.JACK),
)


async def simulate(mode: str, seed: int | None) -> dict[str, object]:
    """Play a short scripted round against a silent opponent."""
    spec = default_agent_spec()
    task = Task(
        ai_id="Bugo Hoss",
        game=spec.game,
        mode=mode,
        address="localhost:3000",
        read="sim-read",
        write="sim-write",
        players=("agent", "opponent"),
    )
    connection = InMemoryMatchConnection(task.match_address(), user_id="agent")
    session = MatchSession(
        task=task,
        connection=connection,
        engine=DecisionEngine(RandomPredictor(seed=seed), seed=seed),
        belief=BeliefState(skill_level=spec.skill_for(task.ai_id) or 0),
        policy=spec.policy_for(mode),
        timings=SessionTimings.immediate(),
    )
    runner = asyncio.create_task(session.run())
    await asyncio.sleep(0)

    hand = list(HAND)
    for card in hand:
        connection.emit("self:card_available", card_to_native(card))
    connection.emit("trump_change", {"suit": "Diamonds"})
    opponent_cards = [Card(Suit.HEARTS, Rank.ACE), Card(Suit.BELLS, Rank.TEN)]
    for opponent_card in opponent_cards:
        connection.emit(
            "play_card", {"user_id": "opponent", "card": card_to_native(opponent_card)}
        )
        connection.cards_playable = [card_to_native(card) for card in hand]
        connection.emit("self:allow_play_card")
        await session.idle()
        played = connection.commands_named("playCard")[-1].payload
        hand = [card for card in hand if card_to_native(card) != played]
        connection.emit("trick", {"cards": [card_to_native(opponent_card), played]})
    connection.emit("score", {"user_id": "agent", "points": 24})
    connection.emit("round_result", {"winner": "agent"})
    connection.emit("final_result", {"winner": "agent"})
    await runner
    result = session.summary()
    result["commands"] = [command.name for command in connection.commands]
    return result


def main() -> None:
    """Run the simulation and print the session summary."""
    parser = argparse.ArgumentParser(description="Simulate one match locally.")
    parser.add_argument("--mode", default="bummerl", help="Game mode (default: bummerl)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    configure_logging(args.debug)
    print(json.dumps(asyncio.run(simulate(args.mode, args.seed)), indent=2))


if __name__ == "__main__":
    main()
