from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    exception_handler,
    game_state_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore
from ...engine.board import Color, parse_fen
from ...game.service import Game, GameMode, GameStateError
from ...engine.move import square_to_str, str_to_square
from ...engine.perft import perft as perft_nodes
from ...search.service import Difficulty, SearchService


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    mode: GameMode = Field(default=GameMode.PVP, description="pvp or bot")
    bot_color: Color = Field(default=Color.BLACK, description="Color the bot plays in bot mode")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    move: str = Field(..., description="Coordinate move, e.g. e2e4 or e7e8q")


class SearchRequest(BaseModel):
    difficulty: Optional[Difficulty] = None


class PerftRequest(BaseModel):
    fen: str
    depth: int = Field(default=1, ge=0, le=5)


class SquareMoves(BaseModel):
    square: str
    destinations: list[str]


class GameState(BaseModel):
    game_id: str
    fen: str
    current_player: Color
    mode: GameMode
    bot_color: Color
    difficulty: Difficulty
    bot_thinking: bool
    legal_moves: list[str]
    in_check: bool
    checkmate: bool
    stalemate: bool
    draw: bool
    en_passant_target: Optional[str]
    last_move: Optional[str]
    move_history: list[str]
    captured_white: list[str]
    captured_black: list[str]
    material_diff: int


def create_app() -> FastAPI:
    app = FastAPI(title="Chess Bot API", version="0.1.0")

    logging.basicConfig(level=logging.INFO)

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(GameStateError, game_state_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore()

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        req = req or CreateGameRequest()
        game = Game.new(mode=req.mode, bot_color=req.bot_color, difficulty=req.difficulty)
        game_id = store.create(game)
        logger.info("game created", extra={"game_id": game_id, "mode": req.mode.value})
        return CreateGameResponse(game_id=game_id, fen=game.to_fen())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.get("/api/games/{game_id}/moves/{square}", response_model=SquareMoves)
    async def square_moves(game_id: str, square: str) -> SquareMoves:
        game = _require_game(store, game_id)
        try:
            pos = str_to_square(square)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return SquareMoves(
            square=square, destinations=[square_to_str(p) for p in game.valid_moves(pos)]
        )

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        current = _require_game(store, game_id)
        try:
            game = Game.from_fen(
                req.fen,
                mode=current.mode,
                bot_color=current.bot_color,
                difficulty=current.difficulty,
            )
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid FEN")
        store.replace(game_id, game)
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.apply_uci(req.move)
        except GameStateError:
            raise
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    # Sync handler: runs in the threadpool so a long search does not block
    # the event loop; concurrent calls on one game get a 409 from the Game.
    @app.post("/api/games/{game_id}/bot", response_model=GameState)
    def bot_move(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        game.bot_move()
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/search")
    def search(game_id: str, req: Optional[SearchRequest] = None) -> Dict[str, Any]:
        game = _require_game(store, game_id)
        difficulty = (req.difficulty if req else None) or game.difficulty
        res = SearchService().search(
            game.board, game.current_player, game.en_passant_target, difficulty
        )
        best = None
        if res.best_move is not None:
            best = square_to_str(res.best_move[0]) + square_to_str(res.best_move[1])
        return {
            "best_move": best,
            "score": res.score,
            "depth": res.depth,
            "nodes": res.nodes,
            "time_ms": res.time_ms,
            "random_pick": res.random_pick,
        }

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.undo_move()
        except GameStateError:
            raise
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, str]:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return {"status": "deleted"}

    @app.post("/api/perft")
    async def perft(req: PerftRequest) -> Dict[str, Any]:
        try:
            state = parse_fen(req.fen)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid FEN")
        nodes = perft_nodes(state.board, req.depth, state.side_to_move, state.en_passant_target)
        return {"nodes": nodes}

    return app


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _state(game_id: str, game: Game) -> GameState:
    last = game.last_move()
    ep = game.en_passant_target
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        current_player=game.current_player,
        mode=game.mode,
        bot_color=game.bot_color,
        difficulty=game.difficulty,
        bot_thinking=game.bot_thinking,
        legal_moves=game.legal_moves_uci(),
        in_check=game.in_check(),
        checkmate=game.checkmate(),
        stalemate=game.stalemate(),
        draw=game.is_draw(),
        en_passant_target=square_to_str(ep) if ep is not None else None,
        last_move=last.notation if last else None,
        move_history=game.move_history(),
        captured_white=[p.type.value for p in game.captured_white],
        captured_black=[p.type.value for p in game.captured_black],
        material_diff=game.material_diff(),
    )


# Default app for non-factory servers
app = create_app()
