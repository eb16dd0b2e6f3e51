from __future__ import annotations

import argparse
from typing import Sequence

from closedroom.cli.pygame_viewer import run_pygame_viewer
from closedroom.cli.settings import HEADLESS_ENV_VAR, configure_logging, env_flag_enabled
from closedroom.cli.viewer import main as run_text_main
from closedroom.content.io import DEFAULT_STORY_PATH

SHELL_CHOICES = ("pygame", "text")
DEFAULT_SHELL = "pygame"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="closedroom-play", description="Canonical closedroom launcher.")
    parser.add_argument("--story", default=DEFAULT_STORY_PATH, help="Story JSON path or http(s) URL.")
    parser.add_argument("--shell", choices=SHELL_CHOICES, default=DEFAULT_SHELL, help="Presentation shell to run.")
    parser.add_argument("--headless", action="store_true", help="Run the pygame startup path without a window.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $CLOSEDROOM_LOG_LEVEL or WARNING).")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.shell == "text":
        forwarded = ["--story", args.story]
        if args.log_level:
            forwarded += ["--log-level", args.log_level]
        return run_text_main(forwarded)
    configure_logging(args.log_level)
    return run_pygame_viewer(
        args.story,
        headless=args.headless or env_flag_enabled(HEADLESS_ENV_VAR),
    )


if __name__ == "__main__":
    raise SystemExit(main())
