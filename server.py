"""
HTTP API for the move arbitration backend.

Endpoints:
    GET  /health
    POST /api/ai/chessNextMove     position (FEN or piece list) -> AI move
    POST /api/ai/ask               prompt -> memory-enriched completion
    POST /api/ai/save              prompt -> stored in semantic memory
    POST /chessValidate            piece-list board state check
    GET  /api/ai/weights           current policy weights
    POST /api/ai/weights/reset     revert policy weights to defaults

Usage:
    python server.py
    python cli.py serve --port 8080
"""

import logging
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from arbiter.arbiter import MoveArbiter
from arbiter.deadline import Deadline
from arbiter.errors import (
    AuthError, InvalidPositionError, NoLegalMovesError, ServiceError
)
from arbiter.learner import OnlineLearner, TrainingLog, WeightKeeper
from arbiter.rules import RulesEngine, validate_piece_list
from services.auth import Authenticator, StaticTokenVerifier
from services.clients import EmbeddingClient, GenerationClient
from services.config import ServiceConfig
from services.memory import SemanticMemory
from services.storage import VectorStore, create_store

logger = logging.getLogger(__name__)


class LastMove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_square: str = Field(alias='from')
    to_square: str = Field(alias='to')

    @property
    def token(self) -> str:
        return f"{self.from_square}{self.to_square}".lower()


class NextMoveRequest(BaseModel):
    fen: Optional[str] = None
    pieces: Optional[List[Dict[str, Any]]] = None
    lastMove: Optional[LastMove] = None


class Services:
    """Everything one application instance talks to."""

    def __init__(self, config: ServiceConfig, store: VectorStore,
                 generator, embedder):
        self.config = config
        self.store = store
        self.generator = generator
        self.embedder = embedder
        self.rules = RulesEngine()

        self.memory = SemanticMemory(
            embedder, store, config.store.memory_collection,
            top_k=config.memory_top_k, store_timeout=config.store.timeout)
        self.keeper = WeightKeeper(
            store, config.store.weights_collection,
            policy_id=config.policy.policy_id,
            default_weights=config.policy.default_weights)
        self.arbiter = MoveArbiter(
            self.keeper,
            generator=generator,
            memory=self.memory,
            training_log=TrainingLog(store, config.store.training_collection),
            rules=self.rules,
            learner=OnlineLearner(config.policy.learning_rate,
                                  config.policy.negative_samples),
            suggestion_bias=config.policy.suggestion_bias,
            generation_timeout=config.generation.timeout,
            store_timeout=config.store.timeout,
        )

        verifier = StaticTokenVerifier(config.auth.tokens) if config.auth.tokens else None
        self.authenticator = Authenticator(verifier, enabled=config.auth.enabled)

    def deadline(self) -> Deadline:
        return Deadline(self.config.request_timeout)


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_claims(request: Request,
                   services: Services = Depends(get_services)) -> Dict[str, str]:
    try:
        return services.authenticator.claims(request.headers.get('Authorization'))
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


async def _read_text(request: Request) -> str:
    body = await request.body()
    text = body.decode('utf-8', errors='replace').strip()
    if not text:
        raise HTTPException(status_code=400, detail="Prompt is empty")
    return text


def create_app(config: ServiceConfig = None, store: VectorStore = None,
               generator=None, embedder=None) -> FastAPI:
    """Build the application; collaborators default to the configured ones."""
    config = config or ServiceConfig.from_env()
    store = store if store is not None else create_store(config.store)
    generator = generator if generator is not None else GenerationClient(config.generation)
    embedder = embedder if embedder is not None else EmbeddingClient(config.embedding)

    app = FastAPI(title="Move Arbiter")
    app.state.services = Services(config, store, generator, embedder)

    @app.get("/health")
    async def health(services: Services = Depends(get_services)):
        weights = services.keeper.current
        return {"status": "ok", "policy_id": weights.policy_id,
                "weights_version": weights.version}

    @app.post("/api/ai/chessNextMove", dependencies=[Depends(require_claims)])
    async def chess_next_move(body: NextMoveRequest,
                              services: Services = Depends(get_services)):
        if (body.fen is None) == (body.pieces is None):
            raise HTTPException(status_code=400,
                                detail="Provide exactly one of 'fen' or 'pieces'")
        last_move = body.lastMove.token if body.lastMove else None
        try:
            if body.fen is not None:
                board = services.rules.parse_position(body.fen)
            else:
                board = services.rules.board_from_pieces(
                    body.pieces,
                    body.lastMove.model_dump(by_alias=True) if body.lastMove else None)
            decision = await services.arbiter.decide(
                board, last_move=last_move, deadline=services.deadline())
        except InvalidPositionError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except NoLegalMovesError as e:
            raise HTTPException(status_code=422, detail=str(e))

        return {
            "aiMove": decision.move,
            "legalMoves": decision.legal_moves,
            "suggestion": decision.suggestion,
            "validation": decision.validation.value,
            "usedFallback": decision.used_fallback,
            "weightsVersion": decision.weights_version,
        }

    @app.post("/api/ai/ask", response_class=PlainTextResponse,
              dependencies=[Depends(require_claims)])
    async def ask(request: Request,
                  services: Services = Depends(get_services)):
        prompt = await _read_text(request)
        try:
            return await services.memory.ask(
                prompt, services.generator, timeout=services.deadline().timeout())
        except ServiceError as e:
            logger.warning(f"Ask failed: {e}")
            return PlainTextResponse(f"Error: {e}", status_code=502)

    @app.post("/api/ai/save", response_class=PlainTextResponse,
              dependencies=[Depends(require_claims)])
    async def save(request: Request,
                   services: Services = Depends(get_services)):
        prompt = await _read_text(request)
        try:
            await services.memory.save(prompt, timeout=services.deadline().timeout())
        except ServiceError as e:
            logger.warning(f"Saving memory failed: {e}")
            return PlainTextResponse(f"Error: {e}", status_code=502)
        return "Memory saved."

    @app.post("/chessValidate", response_class=PlainTextResponse)
    async def chess_validate(request: Request):
        try:
            state = await request.json()
        except ValueError:
            return PlainTextResponse("Invalid JSON format or server error.",
                                     status_code=400)
        reason = validate_piece_list(state)
        if reason:
            return PlainTextResponse(reason, status_code=400)
        return "Board state is valid."

    @app.get("/api/ai/weights", dependencies=[Depends(require_claims)])
    async def get_weights(services: Services = Depends(get_services)):
        weights = await services.keeper.snapshot(timeout=services.config.store.timeout)
        return {"policy_id": weights.policy_id, "version": weights.version,
                "weights": weights.to_list()}

    @app.post("/api/ai/weights/reset", dependencies=[Depends(require_claims)])
    async def reset_weights(services: Services = Depends(get_services)):
        result = await services.keeper.reset(timeout=services.config.store.timeout)
        weights = services.keeper.current
        return JSONResponse({"policy_id": weights.policy_id,
                             "version": weights.version,
                             "weights": weights.to_list(),
                             "persisted": result.ok})

    return app


def main(config: ServiceConfig = None):
    from services.log_setup import setup_logging

    config = config or ServiceConfig.from_env()
    setup_logging(config.log_level, config.log_file)
    app = create_app(config)
    logger.info(f"Serving on {config.host}:{config.port} "
                f"(store={config.store.backend}, policy={config.policy.policy_id})")
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
