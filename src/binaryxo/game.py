"""Core rules for BinaryXO: a tic-tac-toe board played with the bits 0 and 1."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

Mark = str  # "0" or "1"
Cell = Optional[Mark]
Board = Tuple[Cell, ...]

MARKS: Tuple[Mark, Mark] = ("1", "0")
BOARD_SIZE = 9

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

CENTER = 4
CORNERS: Tuple[int, ...] = (0, 2, 6, 8)
EDGES: Tuple[int, ...] = (1, 3, 5, 7)

EMPTY_BOARD: Board = (None,) * BOARD_SIZE

# Verdict statuses
IN_PROGRESS, WON, DRAW = "in-progress", "won", "draw"


class IllegalMove(ValueError):
    """Raised when a mark is written to an occupied or out-of-range cell."""


@dataclass(frozen=True)
class GameVerdict:
    status: str = IN_PROGRESS
    winner: Optional[Mark] = None
    line: Optional[Tuple[int, int, int]] = None

    @property
    def is_over(self) -> bool:
        return self.status != IN_PROGRESS

    @property
    def pattern_type(self) -> Optional[str]:
        return pattern_type(self.line) if self.line else None


@dataclass(frozen=True)
class PatternAnalysis:
    """Line-based summary of a board from one mark's point of view."""

    opportunities: int
    threats: int
    center_control: bool
    corner_control: int

    @property
    def strategic_value(self) -> int:
        value = self.opportunities * 10 + self.threats * 8
        value += 5 if self.center_control else 0
        return value + self.corner_control * 2


# ---------- Board construction ----------


def opponent_of(mark: Mark) -> Mark:
    if mark not in MARKS:
        raise ValueError(f"Unknown mark {mark!r}")
    return "0" if mark == "1" else "1"


def make_board(cells: Iterable[Optional[str]]) -> Board:
    """Build a board from raw cells, treating ``""`` and ``None`` as empty."""

    board = tuple(cell if cell else None for cell in cells)
    if len(board) != BOARD_SIZE:
        raise ValueError(f"A board has {BOARD_SIZE} cells, got {len(board)}")
    for cell in board:
        if cell is not None and cell not in MARKS:
            raise ValueError(f"Unknown mark {cell!r}")
    return board


def to_binary_string(board: Sequence[Cell]) -> str:
    return "".join(cell if cell else "_" for cell in board)


# ---------- Queries ----------


def available_positions(board: Sequence[Cell]) -> List[int]:
    return [index for index, cell in enumerate(board) if cell is None]


def is_full(board: Sequence[Cell]) -> bool:
    return all(cell is not None for cell in board)


def is_legal(board: Sequence[Cell], position: int) -> bool:
    return 0 <= position < BOARD_SIZE and board[position] is None


def apply_move(board: Sequence[Cell], position: int, mark: Mark) -> Board:
    """Return a new board with ``mark`` written at ``position``."""

    if mark not in MARKS:
        raise ValueError(f"Unknown mark {mark!r}")
    if not 0 <= position < BOARD_SIZE:
        raise IllegalMove(f"Position {position} is outside the board")
    if board[position] is not None:
        raise IllegalMove(f"Position {position} is already occupied")
    cells = list(board)
    cells[position] = mark
    return tuple(cells)


def evaluate(board: Sequence[Cell]) -> GameVerdict:
    for line in WINNING_LINES:
        a, b, c = line
        v = board[a]
        if v is not None and v == board[b] == board[c]:
            return GameVerdict(status=WON, winner=v, line=line)
    if is_full(board):
        return GameVerdict(status=DRAW)
    return GameVerdict()


def score(board: Sequence[Cell], mark: Mark) -> int:
    """+1 if ``mark`` has won, -1 if its opponent has, 0 otherwise."""

    verdict = evaluate(board)
    if verdict.status != WON:
        return 0
    return 1 if verdict.winner == mark else -1


# ---------- Pattern helpers ----------


def pattern_type(line: Tuple[int, int, int]) -> str:
    a, b, c = line
    if a // 3 == b // 3 == c // 3:
        return "horizontal"
    if a % 3 == b % 3 == c % 3:
        return "vertical"
    return "diagonal"


def analyze_patterns(board: Sequence[Cell], mark: Mark) -> PatternAnalysis:
    opp = opponent_of(mark)
    opportunities = threats = 0
    for a, b, c in WINNING_LINES:
        trio = [board[a], board[b], board[c]]
        if trio.count(None) != 1:
            continue
        if trio.count(mark) == 2:
            opportunities += 1
        elif trio.count(opp) == 2:
            threats += 1
    return PatternAnalysis(
        opportunities=opportunities,
        threats=threats,
        center_control=board[CENTER] == mark,
        corner_control=sum(1 for k in CORNERS if board[k] == mark),
    )
