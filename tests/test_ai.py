"""Tests for the BinaryXO move selector."""

import random

import pytest

from binaryxo.ai import PERSONALITIES, MoveSelector
from binaryxo.game import (
    CORNERS,
    DRAW,
    EMPTY_BOARD,
    WON,
    apply_move,
    available_positions,
    evaluate,
    make_board,
)


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value."""

    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def _selector(difficulty=0.88, rng=None, mark="0"):
    selector = MoveSelector.for_mark(mark, rng=rng or random.Random(1))
    selector.set_difficulty(difficulty)
    return selector


def test_opening_prefers_center():
    selector = _selector(rng=FixedRandom(0.1))
    assert selector.choose_move(EMPTY_BOARD) == 4
    assert selector.stats.strategic_moves == 1


def test_opening_corner_branch():
    selector = _selector(rng=FixedRandom(0.9))
    assert selector.choose_move(EMPTY_BOARD) in CORNERS


def test_heuristic_takes_immediate_win():
    board = make_board(["0", "0", None, None, None, None, None, None, None])
    selector = _selector(difficulty=0.0)
    assert selector.choose_move(board) == 2
    assert selector.stats.total_moves == 1
    assert selector.stats.strategic_moves == 0
    assert selector.stats.optimal_moves == 0


def test_heuristic_blocks_opponent():
    board = make_board(["1", "1", None, None, None, None, None, None, None])
    selector = _selector(difficulty=0.0)
    assert selector.choose_move(board) == 2


def test_heuristic_positional_priority():
    selector = _selector()
    board = make_board(["1", None, None, None, None, None, None, None, None])
    assert selector.strategic_move(board) == 4

    board = make_board([None, None, None, None, "1", None, None, None, None])
    assert selector.strategic_move(board) in CORNERS


def test_heuristic_blocks_first_threat_in_position_order():
    board = make_board(["1", None, "0", None, "0", None, "1", None, "1"])
    selector = _selector()
    # "1" threatens both 3 (0-3-6) and 7 (6-7-8)
    assert selector.strategic_move(board) == 3


def test_find_immediate_win():
    selector = _selector()
    board = make_board(["1", None, None, "1", "0", None, None, "0", None])
    assert selector.find_immediate_win(board, "1") == 6
    assert selector.find_immediate_win(board, "0") == 1
    assert selector.find_immediate_win(EMPTY_BOARD, "0") is None


def test_minimax_blocks_threat():
    board = make_board(["1", "1", None, None, "0", None, None, None, None])
    assert _selector().optimal_move(board) == 2


def test_minimax_prefers_win_to_block():
    board = make_board(["0", "0", None, "1", "1", None, None, None, None])
    assert _selector().optimal_move(board) == 2


def test_endgame_always_searches():
    board = make_board(["1", "0", "1", None, "0", None, None, "1", None])
    selector = _selector(difficulty=0.0)
    selector.choose_move(board)
    assert selector.stats.optimal_moves == 1
    assert selector.stats.strategic_moves == 0


def test_midgame_moves_count_only_toward_total():
    board = make_board(["1", None, None, None, None, None, None, None, None])
    selector = _selector(difficulty=1.0)
    assert selector.choose_move(board) == selector.optimal_move(board)

    stats = selector.get_stats()
    assert stats.total_moves == 1
    assert stats.optimal_moves == 0
    assert stats.strategic_moves == 0
    assert stats.optimal_pct == 0.0


@pytest.mark.parametrize("seed", range(6))
def test_perfect_play_always_draws(seed):
    players = {
        "1": _selector(difficulty=1.0, rng=random.Random(seed), mark="1"),
        "0": _selector(difficulty=1.0, rng=random.Random(seed + 100), mark="0"),
    }
    board = EMPTY_BOARD
    turn = "1"
    while not evaluate(board).is_over:
        board = apply_move(board, players[turn].choose_move(board), turn)
        turn = "0" if turn == "1" else "1"
    assert evaluate(board).status == DRAW


def _safe_moves(board, mark):
    """Moves after which the opponent has no immediate win."""

    opponent = "0" if mark == "1" else "1"
    checker = _selector(mark=opponent)
    safe = []
    for position in available_positions(board):
        child = apply_move(board, position, mark)
        if evaluate(child).is_over or checker.find_immediate_win(child, opponent) is None:
            safe.append(position)
    return safe


def test_minimax_never_makes_unforced_blunder():
    rng = random.Random(7)
    selector = _selector(difficulty=1.0)
    for _ in range(25):
        board = EMPTY_BOARD
        turn = "1"
        while not evaluate(board).is_over:
            if turn == "0" and len(available_positions(board)) < 9:
                safe = _safe_moves(board, "0")
                move = selector.optimal_move(board)
                if safe:
                    assert move in safe
            else:
                move = rng.choice(available_positions(board))
            board = apply_move(board, move, turn)
            turn = "0" if turn == "1" else "1"
        assert evaluate(board).winner != "1"


def test_full_board_returns_none():
    selector = _selector()
    board = ("1", "0", "1", "1", "0", "0", "0", "1", "1")
    assert selector.choose_move(board) is None
    assert selector.stats.total_moves == 0


def test_stats_track_every_decision():
    selector = _selector(difficulty=0.5, rng=random.Random(3))
    boards = [
        EMPTY_BOARD,
        make_board(["1", None, None, None, None, None, None, None, None]),
        make_board(["1", None, None, None, "0", None, None, None, "1"]),
        make_board(["1", "0", "1", None, "0", None, None, "1", None]),
    ]
    for board in boards:
        selector.choose_move(board)

    stats = selector.get_stats()
    assert stats.total_moves == len(boards)
    assert stats.optimal_moves + stats.strategic_moves + stats.random_moves <= len(boards)
    # opening counts as strategic, end-game as optimal, mid-game as neither
    assert stats.strategic_moves == 1
    assert stats.optimal_moves == 1
    assert stats.random_moves == 0
    assert stats.strategic_pct == 25.0


def test_reset_stats():
    selector = _selector()
    selector.choose_move(EMPTY_BOARD)
    selector.reset_stats()
    stats = selector.get_stats()
    assert stats.total_moves == 0
    assert stats.optimal_pct == 0.0


def test_difficulty_is_clamped():
    selector = _selector()
    selector.set_difficulty(-0.5)
    assert selector.config.difficulty == 0.0
    selector.set_difficulty(1.7)
    assert selector.config.difficulty == 1.0
    selector.set_difficulty(0.42)
    assert selector.config.difficulty == 0.42


def test_personality_presets():
    selector = _selector()
    assert selector.apply_personality("friendly") is True
    assert (selector.config.difficulty, selector.config.thinking_time) == PERSONALITIES["friendly"]

    assert selector.apply_personality("chaotic") is False
    assert selector.config.difficulty == 0.70
    assert selector.config.thinking_time == 1000


def test_selectors_are_independent():
    first = MoveSelector()
    second = MoveSelector()
    first.set_difficulty(0.1)
    first.choose_move(EMPTY_BOARD)
    assert second.config.difficulty == 0.88
    assert second.stats.total_moves == 0


def test_winning_move_finishes_game():
    board = make_board(["0", "1", "1", "0", None, None, None, "1", None])
    selector = _selector(difficulty=1.0)
    move = selector.choose_move(board)
    assert evaluate(apply_move(board, move, "0")).status == WON
