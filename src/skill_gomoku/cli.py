"""Command-line entry point for the skill Gomoku terminal game."""

from __future__ import annotations

import argparse
import logging
import random
import time
from typing import List, Optional

from .config import GameConfig
from .controller import Command, Controller
from .session import GameSession
from .ui import input as input_mod
from .ui.renderer import render

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> None:  # pragma: no cover - interactive loop
    """Launch a two-player hot-seat game."""

    args = _parse_args(argv)
    _configure_logging(args.log_level, args.log_file)

    session = GameSession(GameConfig(), rng=random.Random(args.seed))
    session.on_game_ended(
        lambda winner: logger.info("winner: %s", winner.value if winner else "draw")
    )
    controller = Controller(session)

    while True:
        print("\033[H\033[J", end="")  # Clear terminal
        print(render(controller))
        command = _map_key_to_command(input_mod.get_key(), controller)
        if command == "quit":
            return
        if command:
            try:
                controller.handle_input(command)
            except ValueError as exc:
                controller.info_message = str(exc)
        time.sleep(0.01)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="skill-gomoku", description="技能五子棋")
    parser.add_argument("--seed", type=int, default=None, help="随机技能使用的种子")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别",
    )
    parser.add_argument("--log-file", default=None, help="日志输出文件，默认输出到 stderr")
    return parser.parse_args(argv)


def _configure_logging(level: str, log_file: Optional[str]) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        filename=log_file,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _map_key_to_command(key: Optional[str], controller: Controller) -> Optional[str]:
    mapping = {
        "w": Command.MOVE_UP,
        "s": Command.MOVE_DOWN,
        "a": Command.MOVE_LEFT,
        "d": Command.MOVE_RIGHT,
        " ": Command.PLACE,
        "p": Command.PASS,
        "u": Command.UNDO,
        "x": Command.CANCEL,
        "r": Command.RESET,
        "q": "quit",
    }
    if not key:
        return None
    key = key.lower()
    for skill_id, skill in controller.session.skills.items():
        if key == skill.hotkey:
            return f"{Command.SKILL_PREFIX}{skill_id}"
    return mapping.get(key)


if __name__ == "__main__":  # pragma: no cover
    main()
