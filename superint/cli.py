"""
SuperInt CLI - Command-line interface for the engine.

Usage:
    superint run [--turns N] [--seed S] [--start ID:COMPUTE]... [--save NAME]
    superint saves [--save-dir DIR]
    superint validate [--file research.json]
    superint serve [--host HOST] [--port PORT]
"""

import argparse
import math
import sys

from .config import EngineConfig
from .log import configure_logging


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="SuperInt - AI research strategy simulation core",
        prog="superint",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Simulate a number of turns")
    run_parser.add_argument("--turns", type=int, default=5, help="Turns to simulate")
    run_parser.add_argument("--seed", type=int, help="Seed for risk draws")
    run_parser.add_argument(
        "--start", action="append", default=[], metavar="ID:COMPUTE",
        help="Start research before the first turn (repeatable)",
    )
    run_parser.add_argument("--save", metavar="NAME", help="Save slot to write at the end")
    run_parser.add_argument("--save-dir", help="Directory for save files")

    # Saves command
    saves_parser = subparsers.add_parser("saves", help="List save slots")
    saves_parser.add_argument("--save-dir", help="Directory for save files")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate research content")
    validate_parser.add_argument("--file", help="JSON array of research definitions")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    config = EngineConfig.from_env()
    configure_logging(config.log_level, config.log_format)

    if args.command == "run":
        return cmd_run(args, config)
    elif args.command == "saves":
        return cmd_saves(args, config)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        return 1


def _parse_start(value: str) -> tuple[str, float]:
    node_id, sep, compute = value.partition(":")
    if not sep:
        raise ValueError(f"Expected ID:COMPUTE, got {value!r}")
    amount = float(compute)
    if not math.isfinite(amount):
        raise ValueError(f"Expected a finite COMPUTE amount, got {compute!r}")
    return node_id, amount


def cmd_run(args, config: EngineConfig) -> int:
    """Simulate turns and print a summary of each."""
    from .engine import GameEngine

    if args.seed is not None:
        config.seed = args.seed
    if args.save_dir:
        config.save_dir = args.save_dir

    engine = GameEngine(config)
    engine.start()

    for value in args.start:
        try:
            node_id, compute = _parse_start(value)
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        if not engine.research.start_research(node_id, compute):
            print(f"Could not start research {node_id!r} with {compute} compute")

    for _ in range(args.turns):
        turn = engine.state.turn
        engine.end_turn()
        state = engine.state
        game_time = state.meta.game_time
        active = ", ".join(
            f"{node_id} {state.research.nodes[node_id].progress:.0%}"
            for node_id in state.research.active_research
        ) or "-"
        print(
            f"Turn {turn}: {game_time.year}-{game_time.month:02d}-{game_time.day:02d} | "
            f"compute {state.resources.computing.available:.0f}/{state.resources.computing.total:.0f} | "
            f"funding {state.resources.funding.current:.0f} | "
            f"active: {active} | completed: {len(state.research.completed)}"
        )

    if args.save:
        if not engine.save(args.save):
            print(f"Error: failed to save to {args.save!r}")
            return 1
        print(f"Saved to slot {args.save!r}")
    return 0


def cmd_saves(args, config: EngineConfig) -> int:
    """List save slots in the save directory."""
    from .engine_core.events import EventBus
    from .engine_core.persistence import FileStore
    from .engine_core.store import StateManager

    save_dir = args.save_dir or config.save_dir
    if not save_dir:
        print("Error: no save directory (use --save-dir or SUPERINT_SAVE_DIR)")
        return 1

    manager = StateManager(EventBus(), store=FileStore(save_dir))
    saves = manager.list_saves()
    if not saves:
        print("No saves found")
        return 0
    for summary in saves:
        meta = summary.meta
        print(f"{summary.name}: turn {meta.turn}, {meta.year} Q{meta.quarter} (v{summary.version})")
    return 0


def cmd_validate(args) -> int:
    """Validate research content."""
    from .content import (
        ContentValidationError,
        definitions_from_json,
        get_all_research_definitions,
        load_research_definitions,
    )

    try:
        if args.file:
            with open(args.file, "rb") as f:
                definitions = definitions_from_json(f.read())
        else:
            definitions = load_research_definitions(get_all_research_definitions())
    except FileNotFoundError:
        print(f"Error: File not found: {args.file}")
        return 1
    except ContentValidationError as e:
        print("Research content is invalid:")
        for error in e.errors:
            print(f"  - {error}")
        return 1

    print(f"OK: {len(definitions)} research definitions")
    return 0


def cmd_serve(args) -> int:
    """Run the HTTP API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install 'superint[api]'")
        return 1

    from .api.app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
