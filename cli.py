#!/usr/bin/env python3
"""
Move Arbiter - Command Line Interface

Run the HTTP service or drive the arbiter directly from a shell.

Usage:
    python cli.py serve --port 8080
    python cli.py move startpos --suggestion "E2-E4!!"
    python cli.py validate board.json
    python cli.py weights --reset
"""

import argparse
import asyncio
import json
import sys

from arbiter.errors import ArbiterError
from arbiter.learner import OnlineLearner, TrainingLog, WeightKeeper
from arbiter.arbiter import MoveArbiter
from arbiter.deadline import Deadline
from arbiter.rules import RulesEngine, validate_piece_list
from services.clients import EmbeddingClient, GenerationClient
from services.config import ServiceConfig
from services.log_setup import setup_logging
from services.memory import SemanticMemory
from services.storage import create_store


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='move-arbiter',
        description='Legal chess moves from free-text AI suggestions'
    )
    parser.add_argument('--verbose', '-v', action='store_true',
                       help='Verbose output')
    parser.add_argument('--config', '-c', type=str, default=None,
                       help='JSON configuration file (default: environment)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Serve command
    serve_parser = subparsers.add_parser('serve', help='Run the HTTP service')
    serve_parser.add_argument('--host', type=str, default=None,
                             help='Bind address')
    serve_parser.add_argument('--port', '-p', type=int, default=None,
                             help='Port to listen on')

    # Move command
    move_parser = subparsers.add_parser('move', help='Choose a move for a position')
    move_parser.add_argument('fen', type=str,
                            help="FEN text or 'startpos'")
    move_parser.add_argument('--suggestion', '-s', type=str, default=None,
                            help='Use this text instead of asking the generation service')
    move_parser.add_argument('--last-move', '-l', type=str, default=None,
                            help="Opponent's last move in UCI, included in the prompt")

    # Validate command
    validate_parser = subparsers.add_parser('validate', help='Check a piece-list board state')
    validate_parser.add_argument('input', type=str,
                                help='JSON file with the piece list')

    # Weights command
    weights_parser = subparsers.add_parser('weights', help='Show policy weights')
    weights_parser.add_argument('--reset', action='store_true',
                               help='Revert the weights to their defaults')

    return parser


def load_config(args) -> ServiceConfig:
    if args.config:
        return ServiceConfig.load(args.config)
    return ServiceConfig.from_env()


def build_keeper(config: ServiceConfig, store) -> WeightKeeper:
    return WeightKeeper(
        store, config.store.weights_collection,
        policy_id=config.policy.policy_id,
        default_weights=config.policy.default_weights)


def cmd_serve(args, config: ServiceConfig):
    """Run the HTTP service"""
    from server import main as serve

    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    serve(config)


async def cmd_move(args, config: ServiceConfig):
    """Choose one move for a position"""
    rules = RulesEngine()
    board = rules.parse_position(args.fen)

    store = create_store(config.store)
    keeper = build_keeper(config, store)
    generator = None
    memory = None
    if args.suggestion is None:
        generator = GenerationClient(config.generation)
        memory = SemanticMemory(
            EmbeddingClient(config.embedding), store, config.store.memory_collection,
            top_k=config.memory_top_k, store_timeout=config.store.timeout)

    arbiter = MoveArbiter(
        keeper,
        generator=generator,
        memory=memory,
        training_log=TrainingLog(store, config.store.training_collection),
        rules=rules,
        learner=OnlineLearner(config.policy.learning_rate,
                              config.policy.negative_samples),
        suggestion_bias=config.policy.suggestion_bias,
        generation_timeout=config.generation.timeout,
        store_timeout=config.store.timeout,
    )
    decision = await arbiter.decide(board, last_move=args.last_move,
                                    suggestion=args.suggestion,
                                    deadline=Deadline(config.request_timeout))

    print(f"Move: {decision.move}")
    print(f"  Suggestion: {decision.suggestion or '-'} ({decision.validation.value})")
    print(f"  Fallback: {decision.used_fallback}")
    print(f"  Weights version: {decision.weights_version}")
    if args.verbose:
        print(json.dumps(decision.to_dict(), indent=2))


async def cmd_validate(args, config: ServiceConfig):
    """Check a piece-list board state"""
    try:
        with open(args.input, 'r') as f:
            pieces = json.load(f)
    except (OSError, ValueError) as e:
        print(f"Error reading input: {e}")
        return 1

    reason = validate_piece_list(pieces)
    if reason:
        print(reason)
        return 1
    print("Board state is valid.")


async def cmd_weights(args, config: ServiceConfig):
    """Show (or reset) the policy weights"""
    from arbiter.features import FEATURE_NAMES

    store = create_store(config.store)
    keeper = build_keeper(config, store)
    if args.reset:
        result = await keeper.reset(timeout=config.store.timeout)
        print(f"Weights reset (persisted: {result.ok})")
        weights = keeper.current
    else:
        weights = await keeper.snapshot(timeout=config.store.timeout)

    print(f"Policy: {weights.policy_id}  version {weights.version}")
    print("-" * 40)
    for name, value in zip(FEATURE_NAMES, weights.to_list()):
        print(f"  {name:<18} {value: .4f}")


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    config = load_config(args)
    setup_logging('DEBUG' if args.verbose else config.log_level, config.log_file)

    # uvicorn owns the event loop
    if args.command == 'serve':
        return cmd_serve(args, config)

    # Map commands to functions
    commands = {
        'move': cmd_move,
        'validate': cmd_validate,
        'weights': cmd_weights,
    }

    try:
        return asyncio.run(commands[args.command](args, config))
    except ArbiterError as e:
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main() or 0)
