"""Creating and joining games, and looking up who plays which side."""
from dataclasses import replace
from typing import Optional

from .errors import LifecycleError, Result
from .models import Game, GameStatus, Player


def create_game(creator_id, game_id=None) -> Game:
    """A fresh game in the waiting room; the creator plays X and X moves first."""
    return Game(id=game_id, player1_id=creator_id)


def join_game(game: Game, joiner_id) -> Result:
    if game.status is not GameStatus.WAITING:
        return Result.failure(LifecycleError.NOT_WAITING)
    if joiner_id == game.player1_id:
        return Result.failure(LifecycleError.SELF_JOIN)
    if game.player2_id is not None:
        return Result.failure(LifecycleError.ALREADY_FULL)
    return Result.success(replace(game, player2_id=joiner_id, status=GameStatus.PLAYING,
                                  revision=game.revision + 1))


def get_player_symbol(game: Game, user_id) -> Optional[Player]:
    if user_id is None: return None
    if game.player1_id == user_id: return Player.X
    if game.player2_id == user_id: return Player.O
    return None


def is_player_in_game(game: Game, user_id) -> bool:
    return get_player_symbol(game, user_id) is not None
