"""Round and scoring transitions.

Every function takes the current game and returns a Transition holding a
new game; the input is never mutated.
"""

import logging

from app.schemas.events import (
    GameEnded,
    HistoryScoreUpdated,
    RoundReset,
    RoundStarted,
    ScoreSubmitted,
    WinConditionSet,
)
from app.schemas.game import Game, Player, PlayerSummary, WinnerSummary
from app.services.game.errors import (
    ConflictError,
    GameValidationError,
    InvalidGameStateError,
)

from .validation import (
    Transition,
    require_not_finished,
    require_player,
    validate_score,
    validate_win_condition,
)

logger = logging.getLogger(__name__)


def submit_score(game: Game, user_id: str, score: int) -> Transition:
    """Record a player's score for the current round.

    Raises:
        InvalidGameStateError: The game is finished or the player's history
            does not match the current round (stale client).
        GameNotFoundError: The player is not in the game.
        ConflictError: The player already submitted this round.
        GameValidationError: The score is not an integer.
    """
    score = validate_score(score)
    require_not_finished(game)
    require_player(game, user_id)

    new_game = game.model_copy(deep=True)
    player = new_game.find_player(user_id)

    if player.has_submitted:
        logger.warning(
            "Duplicate submission: game=%s, player=%s, round=%d",
            game.id,
            user_id,
            game.current_round,
        )
        raise ConflictError(
            "Player has already submitted score for this round", "ALREADY_SUBMITTED"
        )

    if len(player.points_history) != game.current_round - 1:
        logger.warning(
            "Stale round submission: game=%s, player=%s, round=%d, history=%d",
            game.id,
            user_id,
            game.current_round,
            len(player.points_history),
        )
        raise InvalidGameStateError("Score submitted for a stale round", "STALE_ROUND")

    player.current_round_score = score
    player.has_submitted = True

    all_submitted = new_game.all_players_submitted()
    logger.info(
        "Score submitted: game=%s, player=%s, score=%d, all_submitted=%s",
        game.id,
        user_id,
        score,
        all_submitted,
    )
    event = ScoreSubmitted(
        game=new_game,
        player=PlayerSummary(user_id=player.user_id, name=player.name, score=score),
        all_players_submitted=all_submitted,
    )
    return Transition.ok(new_game, event)


def find_winner(game: Game) -> Player | None:
    """Return the first player in list order whose total reaches the win condition.

    List order decides between players crossing in the same round, not score.
    """
    return next((p for p in game.players if p.total_score >= game.win_condition), None)


def next_dealer(game: Game) -> str | None:
    """Return the user id of the player after the current dealer, wrapping around."""
    if not game.players:
        return None
    ids = [p.user_id for p in game.players]
    if game.current_dealer not in ids:
        return ids[0]
    return ids[(ids.index(game.current_dealer) + 1) % len(ids)]


def _clear_round(game: Game) -> None:
    for player in game.players:
        player.current_round_score = 0
        player.has_submitted = False


def next_round(game: Game, force: bool = False) -> Transition:
    """Commit the current round and either finish the game or start the next round.

    A finished game yields a no-op transition carrying only a message.

    Raises:
        InvalidGameStateError: Not every player submitted and force is False,
            or the game has no players.
    """
    if game.is_finished:
        logger.info("next_round on finished game %s ignored", game.id)
        return Transition.noop(game, "Game has already ended")

    if not game.players:
        raise InvalidGameStateError("Game has no players", "NO_PLAYERS")

    if not force and not game.all_players_submitted():
        raise InvalidGameStateError(
            "Not all players have submitted their scores", "NOT_ALL_SUBMITTED"
        )

    new_game = game.model_copy(deep=True)
    for player in new_game.players:
        player.points_history.append(player.current_round_score)
        player.total_score += player.current_round_score

    winner = find_winner(new_game)
    if winner is not None:
        new_game.is_finished = True
        new_game.winner = winner.user_id
        _clear_round(new_game)
        logger.info(
            "Game ended: game=%s, winner=%s, total=%d, round=%d",
            game.id,
            winner.user_id,
            winner.total_score,
            game.current_round,
        )
        event = GameEnded(
            game=new_game,
            winner=WinnerSummary(
                user_id=winner.user_id,
                name=winner.name,
                total_score=winner.total_score,
            ),
        )
        return Transition.ok(
            new_game,
            event,
            f"Game ended! {winner.name} wins with {winner.total_score} points!",
        )

    new_game.current_round += 1
    _clear_round(new_game)
    new_game.current_dealer = next_dealer(new_game)
    logger.info(
        "Round started: game=%s, round=%d, dealer=%s, forced=%s",
        game.id,
        new_game.current_round,
        new_game.current_dealer,
        force,
    )
    return Transition.ok(
        new_game,
        RoundStarted(game=new_game),
        f"Round {new_game.current_round} started",
    )


def reset_round(game: Game) -> Transition:
    """Clear every player's score for the current round, keeping history."""
    require_not_finished(game, "Cannot reset round - game has ended")

    new_game = game.model_copy(deep=True)
    _clear_round(new_game)
    logger.info("Round reset: game=%s, round=%d", game.id, game.current_round)
    return Transition.ok(new_game, RoundReset(game=new_game), "Round has been reset")


def update_history_score(
    game: Game, user_id: str, round_index: int, new_score: int
) -> Transition:
    """Rewrite one recorded round score and shift the total by the difference.

    Finished games may be corrected; the winner is not re-evaluated.
    """
    new_score = validate_score(new_score)
    require_player(game, user_id)

    new_game = game.model_copy(deep=True)
    player = new_game.find_player(user_id)

    if (
        isinstance(round_index, bool)
        or not isinstance(round_index, int)
        or not 0 <= round_index < len(player.points_history)
    ):
        raise GameValidationError("Invalid round index", "INVALID_ROUND_INDEX")

    old_score = player.points_history[round_index]
    player.points_history[round_index] = new_score
    player.total_score += new_score - old_score

    logger.info(
        "History score updated: game=%s, player=%s, round_index=%d, %d -> %d",
        game.id,
        user_id,
        round_index,
        old_score,
        new_score,
    )
    event = HistoryScoreUpdated(
        game=new_game,
        user_id=user_id,
        round_index=round_index,
        old_score=old_score,
        new_score=new_score,
    )
    return Transition.ok(new_game, event)


def set_win_condition(game: Game, value: int) -> Transition:
    """Change the score threshold checked at the next round commit."""
    require_not_finished(game)
    value = validate_win_condition(value)

    new_game = game.model_copy(deep=True)
    new_game.win_condition = value
    logger.info("Win condition set: game=%s, value=%d", game.id, value)
    return Transition.ok(new_game, WinConditionSet(game=new_game, win_condition=value))
