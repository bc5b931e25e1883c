"""FastAPI-powered web UI for playing BinaryXO in the browser."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field, field_validator

from .ai import MoveSelector, StatsSnapshot
from .game import (
    EMPTY_BOARD,
    Board,
    Mark,
    PatternAnalysis,
    analyze_patterns,
    apply_move,
    available_positions,
    evaluate,
    make_board,
    opponent_of,
    to_binary_string,
)

logger = logging.getLogger(__name__)

Mode = Literal["two-players", "ai-player"]

HUMAN_MARK: Mark = "1"  # "1" always starts
AI_MARK: Mark = "0"
DEFAULT_PERSONALITY: Optional[str] = None
# Multiplier on the selector's thinking time; tests set it to 0.
AI_THINK_SCALE: float = 1.0


@dataclass
class SessionTally:
    ones: int = 0
    zeros: int = 0
    draws: int = 0
    total_games: int = 0

    def record(self, winner: Optional[Mark]) -> None:
        if winner == "1":
            self.ones += 1
        elif winner == "0":
            self.zeros += 1
        else:
            self.draws += 1
        self.total_games += 1


@dataclass
class GameSession:
    """Container for an active BinaryXO game, its tally and optional AI."""

    mode: str
    ai: Optional[MoveSelector]
    board: Board = EMPTY_BOARD
    current_player: Mark = HUMAN_MARK
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    tally: SessionTally = field(default_factory=SessionTally)
    round: int = 0
    ai_pending: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="BinaryXO", description="Tic-tac-toe with bits, played in the browser")


class NewGameRequest(BaseModel):
    """Request payload for starting a new session."""

    mode: Mode = "ai-player"
    personality: Optional[str] = Field(
        default=None, description="AI preset; unknown names keep the defaults"
    )
    difficulty: Optional[float] = Field(
        default=None, description="Probability of a searched mid-game move"
    )


class MoveRequest(BaseModel):
    """Request payload for writing a bit on an existing game."""

    position: int = Field(ge=0, le=8)


class DifficultyRequest(BaseModel):
    value: float


class PersonalityRequest(BaseModel):
    name: str


class AIMoveRequest(BaseModel):
    """Stateless move request: a board snapshot plus optional tuning."""

    board: List[Optional[str]]
    mark: Literal["0", "1"] = AI_MARK
    difficulty: Optional[float] = None
    personality: Optional[str] = None
    seed: Optional[int] = None

    @field_validator("board")
    @classmethod
    def ensure_valid_board(cls, value: List[Optional[str]]) -> List[Optional[str]]:
        make_board(value)
        return value


def _configure_selector(
    selector: MoveSelector, personality: Optional[str], difficulty: Optional[float]
) -> None:
    if personality:
        selector.apply_personality(personality)
    if difficulty is not None:
        selector.set_difficulty(difficulty)


def _create_session(request: NewGameRequest) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    ai: Optional[MoveSelector] = None
    if request.mode == "ai-player":
        ai = MoveSelector.for_mark(AI_MARK)
        _configure_selector(
            ai, request.personality or DEFAULT_PERSONALITY, request.difficulty
        )
    session = GameSession(mode=request.mode, ai=ai)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("Session %s started in %s mode", session_id, request.mode)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _write_bit(session: GameSession, position: int, player: Mark) -> bool:
    """Apply a move, log it and settle the tally; True when the game ended."""

    session.board = apply_move(session.board, position, player)
    session.move_log.append({"player": player, "position": position})
    verdict = evaluate(session.board)
    if verdict.is_over:
        session.tally.record(verdict.winner)
        logger.info(
            "Game over: %s (winner=%s, board=%s)",
            verdict.status,
            verdict.winner,
            to_binary_string(session.board),
        )
        return True
    session.current_player = opponent_of(player)
    return False


def _run_ai_turn(game_id: str, round_id: int) -> None:
    session = SESSIONS.get(game_id)
    if not session or not session.ai:
        return

    delay = session.ai.config.thinking_time / 1000.0 * AI_THINK_SCALE
    time.sleep(max(0.0, delay))

    with session.lock:
        try:
            if session.round != round_id:
                return
            if evaluate(session.board).is_over:
                return
            if session.current_player != session.ai.config.mark:
                return
            position = session.ai.choose_move(session.board)
            if position is None:
                logger.warning("AI had no move in session %s", game_id)
                return
            _write_bit(session, position, session.ai.config.mark)
        finally:
            if session.round == round_id:
                session.ai_pending = False


def _serialize_stats(stats: StatsSnapshot) -> Dict[str, object]:
    return {
        "totalMoves": stats.total_moves,
        "optimalMoves": stats.optimal_moves,
        "strategicMoves": stats.strategic_moves,
        "randomMoves": stats.random_moves,
        "efficiency": {
            "optimal": stats.optimal_pct,
            "strategic": stats.strategic_pct,
            "random": stats.random_pct,
        },
    }


def _serialize_ai(ai: MoveSelector) -> Dict[str, object]:
    config = ai.config
    return {
        "mark": config.mark,
        "opponent": config.opponent,
        "difficulty": config.difficulty,
        "maxDepth": config.max_depth,
        "thinkingTime": config.thinking_time,
    }


def _serialize_analysis(analysis: PatternAnalysis) -> Dict[str, object]:
    return {
        "opportunities": analysis.opportunities,
        "threats": analysis.threats,
        "centerControl": analysis.center_control,
        "cornerControl": analysis.corner_control,
        "strategicValue": analysis.strategic_value,
    }


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        board = session.board
        verdict = evaluate(board)
        tally = session.tally
        state: Dict[str, object] = {
            "id": game_id,
            "mode": session.mode,
            "board": [cell or "" for cell in board],
            "binary": to_binary_string(board),
            "currentPlayer": session.current_player,
            "status": verdict.status,
            "winner": verdict.winner,
            "winningLine": list(verdict.line) if verdict.line else None,
            "patternType": verdict.pattern_type,
            "availablePositions": [] if verdict.is_over else available_positions(board),
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
            "tally": {
                "1": tally.ones,
                "0": tally.zeros,
                "draws": tally.draws,
                "totalGames": tally.total_games,
            },
        }
        if session.ai:
            state["ai"] = _serialize_ai(session.ai)
            state["analysis"] = {
                mark: _serialize_analysis(analyze_patterns(board, mark))
                for mark in (session.ai.config.mark, session.ai.config.opponent)
            }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    position: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    should_schedule_ai = False
    with session.lock:
        if evaluate(session.board).is_over:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        if session.ai and session.current_player == session.ai.config.mark:
            raise HTTPException(status_code=400, detail="It is the AI's turn")

        try:
            finished = _write_bit(session, position, session.current_player)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        should_schedule_ai = bool(
            session.ai
            and not finished
            and session.current_player == session.ai.config.mark
        )
        if should_schedule_ai:
            session.ai_pending = True
        round_id = session.round

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id, round_id)


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.delete("/api/game/{game_id}")
def end_session(game_id: str) -> Dict[str, object]:
    _get_session(game_id)
    SESSIONS.pop(game_id, None)
    return {"id": game_id, "closed": True}


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.position, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/new-round")
def new_round(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.board = EMPTY_BOARD
        session.current_player = HUMAN_MARK
        session.move_log.clear()
        session.round += 1
        session.ai_pending = False
    return _serialize_session(game_id, session)


def _require_ai(session: GameSession) -> MoveSelector:
    if session.ai is None:
        raise HTTPException(status_code=400, detail="This game has no AI player")
    return session.ai


@app.post("/api/game/{game_id}/difficulty")
def set_difficulty(game_id: str, request: DifficultyRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    ai = _require_ai(session)
    with session.lock:
        ai.set_difficulty(request.value)
        return _serialize_ai(ai)


@app.post("/api/game/{game_id}/personality")
def set_personality(game_id: str, request: PersonalityRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    ai = _require_ai(session)
    with session.lock:
        applied = ai.apply_personality(request.name)
        return {**_serialize_ai(ai), "applied": applied}


@app.get("/api/game/{game_id}/ai-stats")
def get_ai_stats(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    ai = _require_ai(session)
    with session.lock:
        return {**_serialize_stats(ai.get_stats()), "config": _serialize_ai(ai)}


@app.post("/api/game/{game_id}/ai-stats/reset")
def reset_ai_stats(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    ai = _require_ai(session)
    with session.lock:
        ai.reset_stats()
        return {**_serialize_stats(ai.get_stats()), "config": _serialize_ai(ai)}


@app.post("/api/ai/move")
def suggest_move(request: AIMoveRequest) -> Dict[str, object]:
    board = make_board(request.board)
    rng = random.Random(request.seed) if request.seed is not None else random.Random()
    selector = MoveSelector.for_mark(request.mark, rng=rng)
    _configure_selector(selector, request.personality, request.difficulty)
    verdict = evaluate(board)
    position = None if verdict.is_over else selector.choose_move(board)
    return {
        "position": position,
        "binary": to_binary_string(board),
        "status": verdict.status,
    }


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>BinaryXO</title>
    <style>
      :root {
        --bg: #0d1117;
        --panel: #161b22;
        --text: #c9d1d9;
        --accent: #58a6ff;
        --one: #3fb950;
        --zero: #f778ba;
      }
      * { box-sizing: border-box; }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        flex-direction: column;
        align-items: center;
        background: var(--bg);
        color: var(--text);
        font-family: \"Fira Code\", \"Source Code Pro\", monospace;
      }
      h1 { margin: 2rem 0 0.5rem; color: var(--accent); }
      .panel {
        background: var(--panel);
        border-radius: 12px;
        padding: 1.25rem;
        margin: 0.75rem;
        width: min(92vw, 420px);
      }
      .hidden { display: none; }
      .row { display: flex; gap: 0.5rem; flex-wrap: wrap; align-items: center; }
      button, select {
        background: #21262d;
        color: var(--text);
        border: 1px solid #30363d;
        border-radius: 8px;
        padding: 0.5rem 0.9rem;
        font: inherit;
        cursor: pointer;
      }
      button:hover { border-color: var(--accent); }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 6px;
        margin: 1rem 0;
      }
      .cell {
        aspect-ratio: 1;
        font-size: 2.6rem;
        display: flex;
        align-items: center;
        justify-content: center;
        background: #0b0f14;
        border-radius: 10px;
      }
      .cell.one { color: var(--one); }
      .cell.zero { color: var(--zero); }
      .cell.win { outline: 2px solid var(--accent); }
      #status { min-height: 1.5rem; }
      #scoreboard span { margin-right: 1rem; }
      #binary { letter-spacing: 0.3rem; opacity: 0.7; }
    </style>
  </head>
  <body>
    <h1>BinaryXO</h1>
    <div id=\"menu\" class=\"panel\">
      <p>Choose how to run the program:</p>
      <div class=\"row\">
        <button data-mode=\"two-players\">Two players</button>
        <button data-mode=\"ai-player\">Vs algorithm</button>
        <select id=\"personality\">
          <option value=\"\">default</option>
          <option value=\"aggressive\">aggressive</option>
          <option value=\"balanced\">balanced</option>
          <option value=\"friendly\">friendly</option>
          <option value=\"beginner\">beginner</option>
        </select>
      </div>
    </div>
    <div id=\"game\" class=\"panel hidden\">
      <div id=\"status\" role=\"status\" aria-live=\"polite\"></div>
      <div id=\"board\"></div>
      <div id=\"binary\"></div>
      <div id=\"scoreboard\"></div>
      <div class=\"row\" style=\"margin-top: 1rem\">
        <button id=\"new-round\">New game (N)</button>
        <button id=\"menu-btn\">Menu (M)</button>
      </div>
      <div id=\"ai-panel\" class=\"hidden\" style=\"margin-top: 1rem\">
        <label>Difficulty <input id=\"difficulty\" type=\"range\" min=\"0\" max=\"1\" step=\"0.01\" /></label>
        <div id=\"ai-stats\"></div>
      </div>
    </div>
    <script>
      const state = { id: null, game: null, poll: null };
      const $ = (id) => document.getElementById(id);

      async function api(path, options = {}) {
        const response = await fetch(path, {
          headers: { \"Content-Type\": \"application/json\" },
          ...options,
        });
        const payload = await response.json();
        if (!response.ok) {
          throw new Error(payload.detail || \"Request failed\");
        }
        return payload;
      }

      function render(game) {
        state.game = game;
        const board = $(\"board\");
        board.innerHTML = \"\";
        game.board.forEach((cell, index) => {
          const el = document.createElement(\"button\");
          el.className = \"cell\" + (cell === \"1\" ? \" one\" : cell === \"0\" ? \" zero\" : \"\");
          if (game.winningLine && game.winningLine.includes(index)) {
            el.classList.add(\"win\");
          }
          el.textContent = cell;
          el.setAttribute(\"aria-label\", `cell ${index + 1}`);
          el.addEventListener(\"click\", () => play(index));
          board.appendChild(el);
        });
        $(\"binary\").textContent = game.binary;
        let status;
        if (game.status === \"won\") {
          status = `Bit ${game.winner} executed a winning ${game.patternType} sequence!`;
        } else if (game.status === \"draw\") {
          status = \"Buffer overflow! Memory full with no winning pattern.\";
        } else if (game.aiPending) {
          status = \"Algorithm processing...\";
        } else {
          status = `Bit ${game.currentPlayer} to write`;
        }
        $(\"status\").textContent = status;
        const t = game.tally;
        $(\"scoreboard\").innerHTML =
          `<span>1: ${t[\"1\"]}</span><span>0: ${t[\"0\"]}</span>` +
          `<span>draws: ${t.draws}</span><span>games: ${t.totalGames}</span>`;
        $(\"ai-panel\").classList.toggle(\"hidden\", !game.ai);
        if (game.ai) {
          $(\"difficulty\").value = game.ai.difficulty;
        }
        if (game.aiPending && !state.poll) {
          state.poll = setInterval(refresh, 300);
        } else if (!game.aiPending && state.poll) {
          clearInterval(state.poll);
          state.poll = null;
          refreshStats();
        }
      }

      async function refresh() {
        render(await api(`/api/game/${state.id}`));
      }

      async function refreshStats() {
        if (!state.game || !state.game.ai) return;
        const stats = await api(`/api/game/${state.id}/ai-stats`);
        $(\"ai-stats\").textContent =
          `moves ${stats.totalMoves} | optimal ${stats.efficiency.optimal}% | ` +
          `strategic ${stats.efficiency.strategic}%`;
      }

      async function start(mode) {
        const personality = $(\"personality\").value || null;
        const game = await api(\"/api/game\", {
          method: \"POST\",
          body: JSON.stringify({ mode, personality }),
        });
        state.id = game.id;
        $(\"menu\").classList.add(\"hidden\");
        $(\"game\").classList.remove(\"hidden\");
        render(game);
        refreshStats();
      }

      async function play(position) {
        if (!state.id || state.game.status !== \"in-progress\" || state.game.aiPending) return;
        try {
          render(await api(`/api/game/${state.id}/move`, {
            method: \"POST\",
            body: JSON.stringify({ position }),
          }));
        } catch (err) {
          $(\"status\").textContent = err.message;
        }
      }

      async function newRound() {
        if (!state.id) return;
        render(await api(`/api/game/${state.id}/new-round`, { method: \"POST\" }));
      }

      async function backToMenu() {
        if (!state.id) return;
        if (state.poll) {
          clearInterval(state.poll);
          state.poll = null;
        }
        await api(`/api/game/${state.id}`, { method: \"DELETE\" });
        state.id = null;
        $(\"game\").classList.add(\"hidden\");
        $(\"menu\").classList.remove(\"hidden\");
      }

      document.querySelectorAll(\"[data-mode]\").forEach((btn) =>
        btn.addEventListener(\"click\", () => start(btn.dataset.mode))
      );
      $(\"new-round\").addEventListener(\"click\", newRound);
      $(\"menu-btn\").addEventListener(\"click\", backToMenu);
      $(\"difficulty\").addEventListener(\"change\", async (event) => {
        await api(`/api/game/${state.id}/difficulty`, {
          method: \"POST\",
          body: JSON.stringify({ value: Number(event.target.value) }),
        });
      });
      document.addEventListener(\"keydown\", (event) => {
        if (!state.id) return;
        const key = parseInt(event.key, 10);
        if (key >= 1 && key <= 9) {
          play(key - 1);
        } else if (event.key.toLowerCase() === \"n\") {
          newRound();
        } else if (event.key.toLowerCase() === \"m\") {
          backToMenu();
        }
      });
    </script>
  </body>
</html>
"""
