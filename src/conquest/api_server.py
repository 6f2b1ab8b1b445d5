#!/usr/bin/env python3

import argparse
from typing import List, Literal, Optional
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, BackgroundTasks
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, model_validator
import uvicorn

from .game.game_state import GameState
from .game.settings import GameSettings
from .game.territory import get_map_by_id, list_maps
from .utils.config import load_config
from .utils.game_manager import game_manager
from .utils.logger import conquest_logger


# Pydantic models for API requests
class CreateGameRequest(BaseModel):
    player_names: List[str] = Field(min_length=2, max_length=6, description="Player names in turn order")
    human_player_count: int = Field(0, ge=0, description="The first N players are human")
    map_id: Optional[str] = Field(None, description="Map to play on (defaults to CONQUEST_DEFAULT_MAP)")
    placement_mode: Optional[Literal["random", "sequential"]] = None
    battle_speed: Optional[Literal["normal", "instant"]] = None
    resource_level: Optional[Literal["low", "medium", "high"]] = None
    seed: Optional[str] = Field(None, description="RNG seed for a reproducible game")
    colors: Optional[List[Optional[str]]] = Field(None, description="Optional custom player colors")

    @model_validator(mode='after')
    def validate_human_count(self):
        if self.human_player_count > len(self.player_names):
            raise ValueError("human_player_count cannot exceed the number of players")
        return self


class PlaceArmyRequest(BaseModel):
    territory: str = Field(description="Territory to claim or reinforce")


class SelectAttackRequest(BaseModel):
    from_territory: str = Field(description="Territory to attack from")
    to_territory: str = Field(description="Territory to attack")


class AttackRequest(BaseModel):
    attacker_dice: int = Field(3, ge=1, le=3)
    defender_dice: int = Field(2, ge=1, le=2)
    instant: Optional[bool] = Field(None, description="Resolve until the battle ends; defaults to the game's battle speed")


class ConquestMoveRequest(BaseModel):
    armies: int = Field(ge=1, description="Armies to move into the conquered territory")


class FortifyRequest(BaseModel):
    from_territory: Optional[str] = Field(None, description="Territory to move armies from")
    to_territory: Optional[str] = Field(None, description="Territory to move armies to")
    armies: int = Field(0, ge=0, description="Armies to move; 0 ends the turn without moving")

    @model_validator(mode='after')
    def validate_route(self):
        if self.armies > 0 and not (self.from_territory and self.to_territory):
            raise ValueError("from_territory and to_territory are required when moving armies")
        return self


# Create FastAPI app
app = FastAPI(
    title="Conquest Engine API",
    description="HTTP API for the territorial conquest game engine",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Games whose deferred AI queue is currently being drained
_draining = set()


async def run_deferred_steps(game: GameState):
    """Background task: drain a game's deferred AI steps on the event loop."""
    if game.game_id in _draining:
        return
    _draining.add(game.game_id)
    try:
        await game.scheduler.run_async(step_delay=load_config().ai_step_delay)
    finally:
        _draining.discard(game.game_id)


def get_game_or_404(game_id: str) -> GameState:
    game = game_manager.get_game(game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


def require(accepted: bool, message: str):
    """Map an engine rejection onto a 400 response."""
    if not accepted:
        raise HTTPException(status_code=400, detail=message)


def action_response(game: GameState, background_tasks: BackgroundTasks, **extra) -> dict:
    if game.scheduler.pending:
        background_tasks.add_task(run_deferred_steps, game)
    return {"success": True, **extra, "status": game.get_game_status()}


# Health check endpoint
@app.get("/health", operation_id="health_check")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_games": game_manager.get_game_count(),
        "uptime_seconds": int(conquest_logger.uptime()),
        "stats": dict(conquest_logger.game_stats)
    }


@app.get("/api/maps", operation_id="list_maps")
async def get_maps():
    """List bundled maps with their continents."""
    maps = []
    for map_id in list_maps():
        definition = get_map_by_id(map_id)
        maps.append({
            "id": definition.id,
            "name": definition.name,
            "territory_count": len(definition.territories),
            "continents": [
                {"id": c.id, "name": c.name, "bonus": c.bonus} for c in definition.continents
            ]
        })
    return {"maps": maps}


# Game Management Endpoints
@app.post("/api/games", operation_id="create_game")
async def create_game(request: CreateGameRequest, background_tasks: BackgroundTasks):
    """Create and start a new game."""
    try:
        defaults = game_manager.default_settings()
    except ValueError as e:
        conquest_logger.log_error(f"Invalid default settings: {e}")
        raise HTTPException(status_code=500, detail="Server game settings are invalid")

    settings = GameSettings.from_dict({
        'placement_mode': request.placement_mode or defaults.placement_mode.value,
        'battle_speed': request.battle_speed or defaults.battle_speed.value,
        'resource_level': request.resource_level or defaults.resource_level.value,
        'map_id': request.map_id or defaults.map_id
    })

    success, game_id, message = game_manager.create_game(
        request.player_names,
        request.human_player_count,
        settings=settings,
        seed=request.seed,
        custom_colors=request.colors
    )
    require(success, message)

    game = game_manager.get_game(game_id)
    return action_response(game, background_tasks, game_id=game_id, message=message)


@app.get("/api/games", operation_id="list_games")
async def list_games():
    """List all active games."""
    return {"games": game_manager.list_active_games()}


@app.get("/api/games/{game_id}", operation_id="get_game_status")
async def get_game_status(game_id: str):
    """Get current game status."""
    return get_game_or_404(game_id).get_game_status()


@app.get("/api/games/{game_id}/board", operation_id="get_board_state")
async def get_board_state(game_id: str):
    """Get current board state grouped by continent."""
    game = get_game_or_404(game_id)
    territories = game.territory_manager.to_dict()

    continents = {}
    for territory_id, territory in territories.items():
        continent = game.territory_manager.get_definition(territory_id).continent
        continents.setdefault(continent, []).append(territory)

    return {
        "territories": territories,
        "continents": continents,
        "last_action": game.history.last.to_dict() if game.history.last else None
    }


@app.get("/api/games/{game_id}/history", operation_id="get_history")
async def get_history(game_id: str, limit: int = 50):
    game = get_game_or_404(game_id)
    return {"history": [entry.to_dict() for entry in game.history.recent(limit)]}


@app.delete("/api/games/{game_id}", operation_id="delete_game")
async def delete_game(game_id: str):
    if not game_manager.remove_game(game_id):
        raise HTTPException(status_code=404, detail="Game not found")
    return {"success": True}


# Game action endpoints
@app.post("/api/games/{game_id}/place", operation_id="place_army")
async def place_army(game_id: str, request: PlaceArmyRequest, background_tasks: BackgroundTasks):
    """Claim, distribute or draft one army depending on the phase."""
    game = get_game_or_404(game_id)
    require(game.place_draft_army(request.territory), f"Cannot place an army on {request.territory}")
    return action_response(game, background_tasks)


@app.post("/api/games/{game_id}/redeem", operation_id="redeem_cards")
async def redeem_cards(game_id: str, background_tasks: BackgroundTasks):
    game = get_game_or_404(game_id)
    require(game.redeem_cards(), "No card set can be redeemed now")
    return action_response(game, background_tasks)


@app.post("/api/games/{game_id}/attack/select", operation_id="select_attack")
async def select_attack(game_id: str, request: SelectAttackRequest):
    game = get_game_or_404(game_id)
    require(game.select_attack(request.from_territory, request.to_territory),
            f"Cannot attack {request.to_territory} from {request.from_territory}")
    return {"success": True, "status": game.get_game_status()}


@app.post("/api/games/{game_id}/attack", operation_id="execute_attack")
async def execute_attack(game_id: str, request: AttackRequest, background_tasks: BackgroundTasks):
    """Resolve the selected attack."""
    game = get_game_or_404(game_id)
    result = game.execute_attack(request.attacker_dice, request.defender_dice, instant=request.instant)
    require(result is not None, "Attack is not possible now")
    return action_response(game, background_tasks, result=result.to_dict())


@app.post("/api/games/{game_id}/conquest-move", operation_id="conquest_move")
async def conquest_move(game_id: str, request: ConquestMoveRequest, background_tasks: BackgroundTasks):
    game = get_game_or_404(game_id)
    require(game.conquest_move(request.armies), f"Cannot move {request.armies} armies")
    return action_response(game, background_tasks)


@app.post("/api/games/{game_id}/attack/end", operation_id="end_attack_phase")
async def end_attack_phase(game_id: str, background_tasks: BackgroundTasks):
    game = get_game_or_404(game_id)
    require(game.end_attack_phase(), "Attack phase cannot end now")
    return action_response(game, background_tasks)


@app.post("/api/games/{game_id}/fortify", operation_id="fortify")
async def fortify(game_id: str, request: FortifyRequest, background_tasks: BackgroundTasks):
    """Fortify and end the turn. Zero armies skips the move."""
    game = get_game_or_404(game_id)
    if request.armies > 0:
        require(game.fortify(request.from_territory, request.to_territory, request.armies),
                f"Cannot move {request.armies} armies from {request.from_territory} to {request.to_territory}")
    else:
        require(game.execute_fortify(0), "Fortify is not possible now")
    return action_response(game, background_tasks)


@app.post("/api/games/{game_id}/ai-step", operation_id="ai_step")
async def ai_step(game_id: str, background_tasks: BackgroundTasks):
    """Run one AI decision for the current player immediately."""
    game = get_game_or_404(game_id)
    require(game.play_ai_turn(), "Current player is not an active AI")
    return action_response(game, background_tasks)


# Persistence endpoints
@app.post("/api/games/{game_id}/save", operation_id="save_game")
async def save_game(game_id: str):
    get_game_or_404(game_id)
    if not game_manager.save_game(game_id):
        raise HTTPException(status_code=500, detail="Failed to save game")
    return {"success": True, "game_id": game_id}


@app.post("/api/games/{game_id}/load", operation_id="load_game")
async def load_game(game_id: str, background_tasks: BackgroundTasks):
    game = game_manager.load_game(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="No valid save for this game")
    return action_response(game, background_tasks)


@app.get("/api/saves", operation_id="list_saved_games")
async def list_saved_games():
    return {"saved_games": game_manager.list_saved_games()}


@app.delete("/api/saves/{game_id}", operation_id="delete_saved_game")
async def delete_saved_game(game_id: str):
    if game_id not in game_manager.list_saved_games():
        raise HTTPException(status_code=404, detail="No save for this game")
    if not game_manager.delete_saved_game(game_id):
        raise HTTPException(status_code=500, detail="Failed to delete save")
    return {"success": True}


def main():
    """Main entry point for the API server."""
    config = load_config()
    parser = argparse.ArgumentParser(description="Conquest Engine HTTP API Server")
    parser.add_argument("--port", type=int, default=config.api_port, help="Port to run the server on")
    parser.add_argument("--host", default=config.api_host, help="Host to bind the server to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    args = parser.parse_args()

    conquest_logger.log_info(f"Starting Conquest Engine API server on {args.host}:{args.port}")

    uvicorn.run(
        "conquest.api_server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )


if __name__ == "__main__":
    main()
