"""Player list transitions: creation, joins, leaves and reordering."""

import logging
import uuid

from app.schemas.events import PlayerJoined, PlayerLeft, PlayersReordered
from app.schemas.game import Game, Player, PlayerAttributes, PlayerSummary

from .validation import Transition, validate_player_index, validate_win_condition

logger = logging.getLogger(__name__)


def initialize_game(
    players: list[PlayerAttributes],
    win_condition: int,
    lobby_id: str | None = None,
    game_id: str | None = None,
) -> Game:
    """Build a round-one game with the first player as dealer.

    Raises:
        GameValidationError: If win_condition is out of range.
    """
    win_condition = validate_win_condition(win_condition)
    seen: set[str] = set()
    game_players = []
    for attrs in players:
        if attrs.user_id in seen:
            continue
        seen.add(attrs.user_id)
        game_players.append(Player(user_id=attrs.user_id, name=attrs.name))

    return Game(
        id=game_id or str(uuid.uuid4()),
        lobby_id=lobby_id,
        players=game_players,
        current_dealer=game_players[0].user_id if game_players else None,
        win_condition=win_condition,
    )


def add_player(game: Game, user_id: str, name: str) -> Transition:
    """Append a player; adding someone already in the game is a no-op.

    A late joiner gets a zero-filled history so every player keeps the same
    number of recorded rounds.
    """
    if game.find_player(user_id) is not None:
        logger.debug("Player %s already in game %s", user_id, game.id)
        return Transition.noop(game)

    # A finished game keeps its round number but has one more recorded round
    rounds_recorded = (
        len(game.players[0].points_history) if game.players else game.current_round - 1
    )
    new_game = game.model_copy(deep=True)
    new_game.players.append(
        Player(
            user_id=user_id,
            name=name,
            points_history=[0] * rounds_recorded,
        )
    )
    if new_game.current_dealer is None:
        new_game.current_dealer = user_id

    logger.info("Player %s added to game %s", name, game.id)
    event = PlayerJoined(
        game=new_game,
        player=PlayerSummary(user_id=user_id, name=name, score=0),
    )
    return Transition.ok(new_game, event)


def remove_player(game: Game, user_id: str) -> Transition:
    """Remove a player; removing the dealer hands the deal to the new first player."""
    index = next((i for i, p in enumerate(game.players) if p.user_id == user_id), None)
    if index is None:
        logger.debug("Player %s not in game %s", user_id, game.id)
        return Transition.noop(game)

    new_game = game.model_copy(deep=True)
    del new_game.players[index]

    if new_game.current_dealer == user_id:
        new_game.current_dealer = new_game.players[0].user_id if new_game.players else None
        logger.debug("Dealer of game %s updated to %s", game.id, new_game.current_dealer)

    logger.info(
        "Player %s removed from game %s, %d remaining",
        user_id,
        game.id,
        len(new_game.players),
    )
    return Transition.ok(new_game, PlayerLeft(game=new_game, user_id=user_id))


def reorder_players(game: Game, from_index: int, to_index: int) -> Transition:
    """Move the player at from_index to to_index; the new first player deals."""
    validate_player_index(game, from_index)
    validate_player_index(game, to_index)

    new_game = game.model_copy(deep=True)
    moved = new_game.players.pop(from_index)
    new_game.players.insert(to_index, moved)
    new_game.current_dealer = new_game.players[0].user_id

    logger.info(
        "Players reordered: game=%s, %d -> %d, order=%s",
        game.id,
        from_index,
        to_index,
        [p.user_id for p in new_game.players],
    )
    return Transition.ok(new_game, PlayersReordered(game=new_game))
