"""Minimax move selector with alpha-beta pruning and difficulty mixing for BinaryXO."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple
import logging
import math
import random

from .game import (
    CENTER,
    CORNERS,
    EDGES,
    WON,
    Cell,
    Mark,
    apply_move,
    available_positions,
    evaluate,
    opponent_of,
    score,
    to_binary_string,
)

logger = logging.getLogger(__name__)

OPENING_CENTER_PROBABILITY = 0.7
ENDGAME_EMPTY_CELLS = 5

# name -> (difficulty, thinking time in ms)
PERSONALITIES: Dict[str, Tuple[float, int]] = {
    "aggressive": (0.95, 600),
    "balanced": (0.85, 800),
    "friendly": (0.70, 1000),
    "beginner": (0.50, 1200),
}

# Move categories
OPTIMAL, STRATEGIC, RANDOM = "optimal", "strategic", "random"


@dataclass
class SelectorConfig:
    mark: Mark = "0"
    opponent: Mark = "1"
    difficulty: float = 0.88
    max_depth: int = 9
    thinking_time: int = 800  # ms, consumed by the caller


@dataclass
class SelectorStats:
    total_moves: int = 0
    optimal_moves: int = 0
    strategic_moves: int = 0
    random_moves: int = 0


@dataclass(frozen=True)
class StatsSnapshot:
    total_moves: int
    optimal_moves: int
    strategic_moves: int
    random_moves: int
    optimal_pct: float
    strategic_pct: float
    random_pct: float


def _percent(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total > 0 else 0.0


@dataclass
class MoveSelector:
    """Automated player that mixes full minimax with a cheaper heuristic.

    The opening move is a fixed centre/corner heuristic, the end-game
    (five or fewer empty cells) is always searched, and in between the
    configured difficulty is the probability of searching instead of
    playing the heuristic move.
    """

    config: SelectorConfig = field(default_factory=SelectorConfig)
    stats: SelectorStats = field(default_factory=SelectorStats)
    rng: random.Random = field(default_factory=random.Random, repr=False)

    @classmethod
    def for_mark(cls, mark: Mark, **kwargs) -> "MoveSelector":
        config = SelectorConfig(mark=mark, opponent=opponent_of(mark))
        return cls(config=config, **kwargs)

    # ---- public API ----

    def choose_move(self, board: Sequence[Cell]) -> Optional[int]:
        positions = available_positions(board)
        if not positions:
            logger.warning("No move available on board %s", to_binary_string(board))
            return None

        self.stats.total_moves += 1

        if len(positions) == len(board):
            move, category = self._opening_move(), STRATEGIC
        elif len(positions) > ENDGAME_EMPTY_CELLS:
            # mid-game moves only count when the heuristic falls through
            if self.rng.random() < self.config.difficulty:
                move, category = self.optimal_move(board), None
            else:
                move, fallback = self._strategic_choice(board)
                category = RANDOM if fallback == RANDOM else None
        else:
            move, category = self.optimal_move(board), OPTIMAL

        self._count(category)
        logger.debug(
            "Bit %s plays %s on %s (%s)",
            self.config.mark,
            move,
            to_binary_string(board),
            category,
        )
        return move

    def optimal_move(self, board: Sequence[Cell]) -> Optional[int]:
        """Best position by full minimax; ties go to the lowest index."""

        best_score = -math.inf
        best_move: Optional[int] = None
        for position in available_positions(board):
            child = apply_move(board, position, self.config.mark)
            value = self._minimax(child, 0, False, -math.inf, math.inf)
            if value > best_score:
                best_score, best_move = value, position
        logger.debug("Minimax picked %s with score %s", best_move, best_score)
        return best_move

    def strategic_move(self, board: Sequence[Cell]) -> Optional[int]:
        """Win, else block, else centre > corner > edge."""

        return self._strategic_choice(board)[0]

    def find_immediate_win(self, board: Sequence[Cell], mark: Mark) -> Optional[int]:
        for position in available_positions(board):
            verdict = evaluate(apply_move(board, position, mark))
            if verdict.status == WON and verdict.winner == mark:
                return position
        return None

    # ---- configuration ----

    def set_difficulty(self, value: float) -> None:
        self.config.difficulty = max(0.0, min(1.0, float(value)))
        logger.info("Difficulty set to %.2f", self.config.difficulty)

    def apply_personality(self, name: str) -> bool:
        preset = PERSONALITIES.get(name)
        if preset is None:
            logger.debug("Ignoring unknown personality %r", name)
            return False
        self.config.difficulty, self.config.thinking_time = preset
        logger.info("Personality %s applied", name)
        return True

    def get_stats(self) -> StatsSnapshot:
        s = self.stats
        return StatsSnapshot(
            total_moves=s.total_moves,
            optimal_moves=s.optimal_moves,
            strategic_moves=s.strategic_moves,
            random_moves=s.random_moves,
            optimal_pct=_percent(s.optimal_moves, s.total_moves),
            strategic_pct=_percent(s.strategic_moves, s.total_moves),
            random_pct=_percent(s.random_moves, s.total_moves),
        )

    def reset_stats(self) -> None:
        self.stats = SelectorStats()

    # ---- core search ----

    def _minimax(
        self,
        board: Sequence[Cell],
        depth: int,
        maximizing: bool,
        alpha: float,
        beta: float,
    ) -> float:
        # depth counts from the root of this search, not from the game start
        if evaluate(board).is_over or depth >= self.config.max_depth:
            return score(board, self.config.mark) * (10 - depth)

        if maximizing:
            value = -math.inf
            for position in available_positions(board):
                child = apply_move(board, position, self.config.mark)
                result = self._minimax(child, depth + 1, False, alpha, beta)
                value = max(value, result)
                alpha = max(alpha, result)
                if beta <= alpha:
                    break
            return value

        value = math.inf
        for position in available_positions(board):
            child = apply_move(board, position, self.config.opponent)
            result = self._minimax(child, depth + 1, True, alpha, beta)
            value = min(value, result)
            beta = min(beta, result)
            if beta <= alpha:
                break
        return value

    # ---- heuristics ----

    def _opening_move(self) -> int:
        if self.rng.random() < OPENING_CENTER_PROBABILITY:
            return CENTER
        return self.rng.choice(CORNERS)

    def _strategic_choice(self, board: Sequence[Cell]) -> Tuple[Optional[int], str]:
        winning = self.find_immediate_win(board, self.config.mark)
        if winning is not None:
            return winning, STRATEGIC

        blocking = self.find_immediate_win(board, self.config.opponent)
        if blocking is not None:
            return blocking, STRATEGIC

        positions = available_positions(board)
        if CENTER in positions:
            return CENTER, STRATEGIC
        corners = [k for k in CORNERS if k in positions]
        if corners:
            return self.rng.choice(corners), STRATEGIC
        edges = [k for k in EDGES if k in positions]
        if edges:
            return self.rng.choice(edges), STRATEGIC
        if not positions:
            return None, RANDOM
        return positions[0], RANDOM

    def _count(self, category: Optional[str]) -> None:
        if category == OPTIMAL:
            self.stats.optimal_moves += 1
        elif category == STRATEGIC:
            self.stats.strategic_moves += 1
        elif category == RANDOM:
            self.stats.random_moves += 1
