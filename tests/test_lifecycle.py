"""
Tests for game creation, joining and player lookups.

Run with:
    python -m pytest tests/test_lifecycle.py
"""
import unittest
from dataclasses import replace

from uttt import (
    BoardResult,
    GameStatus,
    LifecycleError,
    Player,
    create_game,
    get_player_symbol,
    is_player_in_game,
    join_game,
)
from uttt.models import ALL_COORDS


class TestCreateGame(unittest.TestCase):

    def test_fresh_game(self):
        game = create_game('u1')
        self.assertIs(game.status, GameStatus.WAITING)
        self.assertIsNone(game.active_board)
        self.assertIs(game.current_player, Player.X)
        self.assertEqual(game.player1_id, 'u1')
        self.assertIsNone(game.player2_id)
        self.assertIs(game.meta_result, BoardResult.UNDECIDED)
        self.assertIsNone(game.last_move)
        for coord in ALL_COORDS:
            self.assertIs(game.sub_board(coord).result, BoardResult.UNDECIDED)
            self.assertEqual(len(game.sub_board(coord).empty_cells()), 9)

    def test_id_is_passed_through(self):
        self.assertEqual(create_game('u1', game_id='ABC').id, 'ABC')


class TestJoinGame(unittest.TestCase):

    def test_creator_cannot_join_own_game(self):
        result = join_game(create_game('u1'), 'u1')
        self.assertFalse(result.ok)
        self.assertIs(result.error, LifecycleError.SELF_JOIN)

    def test_second_player_starts_the_game(self):
        game = create_game('u1')
        result = join_game(game, 'u2')
        self.assertTrue(result.ok)
        joined = result.value
        self.assertIs(joined.status, GameStatus.PLAYING)
        self.assertEqual(joined.player2_id, 'u2')
        self.assertEqual(joined.player1_id, 'u1')
        self.assertEqual(joined.meta_grid, game.meta_grid)
        self.assertEqual(joined.revision, game.revision + 1)
        # the waiting snapshot is unchanged
        self.assertIs(game.status, GameStatus.WAITING)

    def test_cannot_join_a_started_game(self):
        joined = join_game(create_game('u1'), 'u2').value
        self.assertIs(join_game(joined, 'u3').error, LifecycleError.NOT_WAITING)
        self.assertIs(join_game(joined, 'u1').error, LifecycleError.NOT_WAITING)

    def test_full_waiting_game_is_rejected(self):
        # Not reachable through join_game, but a snapshot loaded from storage may look like this.
        game = replace(create_game('u1'), player2_id='u2')
        self.assertIs(join_game(game, 'u3').error, LifecycleError.ALREADY_FULL)

    def test_error_codes_and_messages(self):
        self.assertEqual(LifecycleError.SELF_JOIN.code, 'self_join')
        self.assertEqual(LifecycleError.ALREADY_FULL.message, 'Game is already full')


class TestPlayerLookup(unittest.TestCase):

    def setUp(self):
        self.game = join_game(create_game('u1'), 'u2').value

    def test_symbols(self):
        self.assertIs(get_player_symbol(self.game, 'u1'), Player.X)
        self.assertIs(get_player_symbol(self.game, 'u2'), Player.O)
        self.assertIsNone(get_player_symbol(self.game, 'u3'))

    def test_membership(self):
        self.assertTrue(is_player_in_game(self.game, 'u1'))
        self.assertTrue(is_player_in_game(self.game, 'u2'))
        self.assertFalse(is_player_in_game(self.game, 'u3'))

    def test_open_seat_is_not_a_member(self):
        waiting = create_game('u1')
        self.assertFalse(is_player_in_game(waiting, None))
        self.assertIsNone(get_player_symbol(waiting, None))


if __name__ == '__main__':
    unittest.main()
