"""Command line entry point for Wave Plan."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .plan_logging import setup_logging
from .workflow import PlanManager

LOG_LEVEL_ENV = "WAVEPLAN_LOG_LEVEL"
ROOT_ENV = "WAVEPLAN_PROJECT_ROOT"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waveplan",
        description="Generate an implementation plan from the feature catalog",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help=f"Project root (defaults to ${ROOT_ENV} or the current directory)",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show the stored plan instead of generating a new one",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write the plan as markdown to this path (relative to the project root)",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Profile type used for task ordering in the markdown export",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv(LOG_LEVEL_ENV, "WARNING"),
        help="Logging level for diagnostics on stderr",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the planner and return a process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper())
    logger = logging.getLogger("waveplan.cli")

    root = args.root or Path(os.getenv(ROOT_ENV) or Path.cwd())
    manager = PlanManager(root)

    if args.status:
        status = manager.plan_status()
        if status.get("error"):
            logger.error(status["error"])
            return 1
        print("\n".join(status["lines"]))
        return 0

    if not manager.workspace.is_initialized():
        logger.error(f"No {manager.workspace.state_dir.name} directory found in {manager.workspace.root}")
        return 1

    result = manager.generate_plan(output=args.output, profile_type=args.profile)
    if result.get("errors") or result.get("error"):
        for error in result.get("errors") or [result["error"]]:
            logger.error(error)
        return 1

    print("\n".join(result["summary"]))
    if result["markdown_path"]:
        print(f"Plan written to {result['markdown_path']}")
    print(result["message"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
