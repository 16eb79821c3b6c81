"""
Move Arbiter — Turns a position plus a free-text AI suggestion into one
legal move, then lets the policy learn from the decision.

Per request:
1. Ask the rules engine for the legal moves
2. Build a prompt (optionally enriched with semantic memory) and get a
   suggestion from the text-generation service
3. Normalize the suggestion and validate it against the legal set
   (a four-character pawn move to the last rank is read as a queen
   promotion)
4. Score every legal move with the linear policy; a validated suggestion
   gets an additive bias
5. Pick the highest score, or fall back to the rule-ordered selector when
   nothing is scoreable
6. Update and persist the weights, log every scored candidate

Whatever the generation service or the policy does, the chosen move is a
member of the legal set for this request.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import chess

from arbiter.deadline import Deadline
from arbiter.errors import ServiceError
from arbiter.fallback import FallbackSelector
from arbiter.features import MoveFeatureExtractor
from arbiter.learner import OnlineLearner, TrainingLog, WeightKeeper
from arbiter.move_codec import NO_MOVE, normalize_move, with_default_promotion
from arbiter.policy import LinearPolicy
from arbiter.rules import RulesEngine

logger = logging.getLogger(__name__)


DEFAULT_SUGGESTION_BIAS = 0.15

# Ranks a pawn promotes on, by color
LAST_RANK = {chess.WHITE: 7, chess.BLACK: 0}


class ValidationState(Enum):
    DIRECT = "validated_direct"
    WITH_PROMOTION = "validated_with_promotion"
    UNVALIDATED = "unvalidated"


@dataclass
class MoveDecision:
    move: str
    legal_moves: List[str]
    suggestion_raw: Optional[str]
    suggestion: str
    validation: ValidationState
    scores: Dict[str, Optional[float]] = field(default_factory=dict)
    used_fallback: bool = False
    weights_version: int = 0
    suggestion_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'move': self.move,
            'legal_moves': list(self.legal_moves),
            'suggestion_raw': self.suggestion_raw,
            'suggestion': self.suggestion,
            'validation': self.validation.value,
            'scores': dict(self.scores),
            'used_fallback': self.used_fallback,
            'weights_version': self.weights_version,
            'suggestion_error': self.suggestion_error,
        }


def build_prompt(board: chess.Board, legal_tokens: Sequence[str],
                 last_move: Optional[str] = None,
                 context: Sequence[str] = ()) -> str:
    """Prompt asking the generation service for exactly one UCI move."""
    lines = [c for c in context if c]
    lines.append("You are playing chess. Reply with exactly one legal move in "
                 "UCI notation (for example e2e4 or e7e8q) and nothing else.")
    lines.append(f"Position (FEN): {board.fen()}")
    lines.append(f"Side to move: {'white' if board.turn == chess.WHITE else 'black'}")
    if last_move:
        lines.append(f"Opponent's last move: {last_move}")
    lines.append(f"Legal moves: {', '.join(legal_tokens)}")
    return "\n".join(lines)


class MoveArbiter:
    """
    Orchestrates codec → validation → scoring → selection → learning.

    Collaborators are injected:
        generator: object with ``async acomplete(prompt, timeout) -> str``
        memory:    object with ``async context(text, timeout) -> List[str]``
        keeper:    WeightKeeper owning the policy weights
        training_log: TrainingLog (optional)
    """

    def __init__(self, keeper: WeightKeeper, generator=None, memory=None,
                 training_log: Optional[TrainingLog] = None,
                 rules: RulesEngine = None,
                 learner: OnlineLearner = None,
                 suggestion_bias: float = DEFAULT_SUGGESTION_BIAS,
                 generation_timeout: Optional[float] = None,
                 store_timeout: Optional[float] = None):
        self.keeper = keeper
        self.generator = generator
        self.memory = memory
        self.training_log = training_log
        self.rules = rules or RulesEngine()
        self.extractor = MoveFeatureExtractor()
        self.policy = LinearPolicy()
        self.fallback = FallbackSelector(self.rules)
        self.learner = learner or OnlineLearner()
        self.suggestion_bias = suggestion_bias
        self.generation_timeout = generation_timeout
        self.store_timeout = store_timeout

    # ── suggestion ────────────────────────────────────────────────────

    async def _memory_context(self, board: chess.Board,
                              last_move: Optional[str],
                              deadline: Deadline) -> List[str]:
        if self.memory is None or deadline.expired():
            return []
        query = board.fen() if not last_move else f"{board.fen()} {last_move}"
        try:
            return await self.memory.context(query, timeout=deadline.timeout())
        except ServiceError as e:
            logger.warning(f"Memory search failed, prompting without context: {e}")
            return []

    async def request_suggestion(self, board: chess.Board,
                                 legal_tokens: List[str],
                                 last_move: Optional[str],
                                 deadline: Deadline) -> Tuple[Optional[str], Optional[str]]:
        """Returns (raw text or None, error description or None)."""
        if self.generator is None:
            return None, "no generation service configured"
        if deadline.expired():
            return None, "request deadline exceeded"

        context = await self._memory_context(board, last_move, deadline)
        prompt = build_prompt(board, legal_tokens, last_move, context)
        try:
            raw = await self.generator.acomplete(
                prompt, timeout=deadline.timeout(self.generation_timeout))
        except ServiceError as e:
            logger.warning(f"Generation service failed, no AI suggestion: {e}")
            return None, str(e)
        return raw, None

    # ── validation ────────────────────────────────────────────────────

    def validate(self, board: chess.Board, legal: List[chess.Move],
                 token: str) -> Tuple[Optional[chess.Move], ValidationState]:
        """Match a normalized token against the legal set."""
        if token == NO_MOVE:
            return None, ValidationState.UNVALIDATED

        by_uci = {m.uci(): m for m in legal}
        if token in by_uci:
            return by_uci[token], ValidationState.DIRECT

        if len(token) == 4 and self._is_promotion_push(board, token):
            promoted = with_default_promotion(token)
            if promoted in by_uci:
                return by_uci[promoted], ValidationState.WITH_PROMOTION

        return None, ValidationState.UNVALIDATED

    def _is_promotion_push(self, board: chess.Board, token: str) -> bool:
        from_sq = chess.parse_square(token[0:2])
        to_sq = chess.parse_square(token[2:4])
        piece = self.rules.piece_at(board, from_sq)
        if piece is None or piece.piece_type != chess.PAWN:
            return False
        return chess.square_rank(to_sq) == LAST_RANK[piece.color]

    # ── decision ──────────────────────────────────────────────────────

    async def decide(self, board: chess.Board, last_move: Optional[str] = None,
                     suggestion: Optional[str] = None,
                     deadline: Optional[Deadline] = None) -> MoveDecision:
        """
        Choose a move for ``board``.

        ``suggestion`` replaces the generation service when given. Raises
        NoLegalMovesError when the position has no legal moves.
        """
        deadline = deadline or Deadline()
        legal = self.rules.legal_moves(board)
        legal_tokens = [m.uci() for m in legal]

        error = None
        raw = suggestion
        if raw is None:
            raw, error = await self.request_suggestion(board, legal_tokens,
                                                       last_move, deadline)

        token = normalize_move(raw)
        suggested_move, state = self.validate(board, legal, token)
        features = self.extractor.encode_moves(board, legal)

        async with self.keeper.transaction(
                timeout=deadline.timeout(self.store_timeout)) as txn:
            candidates = self.policy.score_all(txn.weights.values, legal, features)

            suggested = None
            if suggested_move is not None:
                for cand in candidates:
                    if cand.move == suggested_move:
                        suggested = cand
                        if cand.score is not None:
                            cand.score += self.suggestion_bias
                        break

            selected = self.policy.best(candidates)
            used_fallback = selected is None
            if used_fallback:
                move = self.fallback.choose(board, legal)
                selected = next(c for c in candidates if c.move == move)
                logger.warning(f"No scoreable candidate; fallback chose {move.uci()}")

            updated = self.learner.update(txn.weights.values, selected, candidates)
            await txn.commit(updated, timeout=deadline.timeout(self.store_timeout))
            version = txn.weights.version

        logger.debug("Scores: " + ", ".join(
            f"{c.uci}={c.score if c.score is None else round(c.score, 4)}"
            for c in candidates))
        logger.info(f"Decision policy={self.keeper.policy_id} v{version} "
                    f"suggestion={token or '-'} ({state.value}) "
                    f"selected={selected.uci} fallback={used_fallback}")

        if self.training_log is not None and not deadline.expired():
            await self.training_log.record(
                self.keeper.policy_id, board.fen(), candidates, selected,
                suggested, timeout=deadline.timeout(self.store_timeout))

        return MoveDecision(
            move=selected.uci,
            legal_moves=legal_tokens,
            suggestion_raw=raw,
            suggestion=token,
            validation=state,
            scores={c.uci: c.score for c in candidates},
            used_fallback=used_fallback,
            weights_version=version,
            suggestion_error=error,
        )

