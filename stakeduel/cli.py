"""
Stakeduel CLI - Command-line interface for the engine.

Usage:
    stakeduel demo [--scenario tie|win|timeout|idle]   Run a scripted session
    stakeduel encode --player-a A --player-b B ...     Show packed storage words
    stakeduel serve [--host H] [--port P]              Run the HTTP API
"""

import argparse
import logging
import sys

from .config import StakeConfig


SCENARIOS = ("tie", "win", "timeout", "idle")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Stakeduel - Wagered Rock/Paper/Scissors engine",
        prog="stakeduel",
    )
    parser.add_argument("--stake", type=int, help="Stake per move (default from env)")
    parser.add_argument("--session-length", type=int, help="Blocks before forced termination")
    parser.add_argument("--log-level", help="Log level (default from env)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run a scripted session")
    demo_parser.add_argument("--scenario", choices=SCENARIOS, default="win")

    # Encode command
    encode_parser = subparsers.add_parser("encode", help="Show packed storage words")
    encode_parser.add_argument("--player-a", default="alice", help="Label for player A")
    encode_parser.add_argument("--player-b", default="bob", help="Label for player B")
    encode_parser.add_argument("--move-a", type=int, default=0)
    encode_parser.add_argument("--move-b", type=int, default=0)
    encode_parser.add_argument("--start", type=int, default=1, help="Start marker")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "demo":
        cmd_demo(args, config)
    elif args.command == "encode":
        cmd_encode(args, config)
    elif args.command == "serve":
        cmd_serve(args, config)
    else:
        parser.print_help()
        sys.exit(1)


def _load_config(args) -> StakeConfig:
    base = StakeConfig.from_env()
    config = StakeConfig(
        stake=args.stake if args.stake is not None else base.stake,
        session_length=(
            args.session_length if args.session_length is not None else base.session_length
        ),
        log_level=(args.log_level or base.log_level).upper(),
    )
    config.validate()
    return config


def cmd_demo(args, config: StakeConfig):
    """Play one scripted session and print balances."""
    from .engine_core import BlockClock, Ledger, Move, SessionMachine, identity

    alice, bob = identity("alice"), identity("bob")
    ledger = Ledger()
    clock = BlockClock()
    for who in (alice, bob):
        ledger.fund(who, config.stake * 2)
    machine = SessionMachine(config, ledger, clock)

    machine.create(alice, bob)
    print(f"Session created at block {clock.now()}, deadline {machine.deadline}")

    settlement = None
    if args.scenario == "tie":
        machine.submit_move(alice, Move.ROCK, config.stake)
        settlement = machine.submit_move(bob, Move.ROCK, config.stake).settlement
    elif args.scenario == "win":
        machine.submit_move(alice, Move.ROCK, config.stake)
        settlement = machine.submit_move(bob, Move.SCISSORS, config.stake).settlement
    else:
        if args.scenario == "timeout":
            machine.submit_move(alice, Move.PAPER, config.stake)
        clock.advance(config.session_length + 1)
        settlement = machine.terminate()

    print(f"Outcome: {settlement.outcome.value}")
    print(f"Pool: {settlement.pool}, paid: {settlement.paid_total}")
    print(f"alice: {ledger.balance_of(alice)}")
    print(f"bob:   {ledger.balance_of(bob)}")
    print(f"Session phase: {machine.phase.value}")


def cmd_encode(args, config: StakeConfig):
    """Print the four packed words for a hypothetical session."""
    from .engine_core import Move, SessionState, encode, identity

    try:
        state = SessionState(
            start_marker=args.start,
            stake=config.stake,
            player_a=identity(args.player_a),
            move_a=Move(args.move_a),
            player_b=identity(args.player_b),
            move_b=Move(args.move_b),
            in_progress=True,
            session_length=config.session_length,
        )
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    storage = encode(state)
    for name, word in zip(("start", "stake", "slot_a", "shared"), storage.snapshot()):
        print(f"{name:>7}: 0x{word:064x}")


def cmd_serve(args, config: StakeConfig):
    """Run the API under uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)

    from .api.app import create_app
    from .api.service import APIService

    app = create_app(APIService(config=config))
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
