"""BinaryXO package exposing game rules, the move selector, and the web application."""

from .ai import MoveSelector
from .game import GameVerdict, IllegalMove, evaluate
from .ui import app

__all__ = ["GameVerdict", "IllegalMove", "MoveSelector", "app", "evaluate"]
