#!/usr/bin/env python3
"""
Ledger Backgammon - headless host loop.
Creates or joins a match on the ledger while a fixed-tick loop keeps running.
"""

import argparse
import sys
import time

from dotenv import load_dotenv
from loguru import logger

from backgammon import (
    BackgammonError,
    CreateMatch,
    JoinMatch,
    LedgerConfig,
    LedgerTransactionClient,
    Player,
    SessionController,
    SessionEventKind,
    SessionPhase,
)

load_dotenv()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create or join a backgammon match recorded on the ledger.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("create", help="Create a match hosted by this account")
    join = sub.add_parser("join", help="Join the match hosted at ADDRESS")
    join.add_argument("address", help="Hex account address of the match host")

    parser.add_argument("--tick", type=float, default=1 / 30, help="Seconds per tick")
    parser.add_argument(
        "--timeout", type=float, default=60.0, help="Give up after this many seconds"
    )
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument(
        "--show-board", action="store_true", help="Print the board from our side"
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace, session: SessionController) -> int:
    intent = CreateMatch() if args.command == "create" else JoinMatch(args.address)
    pending = [intent]
    deadline = time.monotonic() + args.timeout

    while time.monotonic() < deadline:
        for event in session.tick(pending):
            if event.kind is SessionEventKind.REJECTED:
                logger.error(f"Request rejected: {event.detail}")
                return 2
            logger.info(f"{event.previous} -> {event.state}")
        pending = []

        if session.phase.is_terminal:
            break
        time.sleep(args.tick)
    else:
        logger.error(f"No result after {args.timeout}s (still {session.state})")
        return 1

    if session.phase is SessionPhase.FAILED:
        logger.error(f"Session failed: {session.state.reason}")
        return 1

    address = session.require_match_address()
    logger.success(f"Match {address} ready, playing as {session.player.display_name}")
    if args.show_board:
        print(session.board.describe(session.player or Player.HOST))
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    try:
        client = LedgerTransactionClient(LedgerConfig.from_env())
    except BackgammonError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    logger.info(f"Playing as account {client.address()}")
    session = SessionController(client)
    try:
        return run(args, session)
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
