"""Command-line entry point: replay a recorded closedness stream."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Ensure project root is on the path when running as `python app/main.py`
_ROOT = Path(__file__).parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.alerting import LoggingAlertSink, RecordingAlertSink
from app.config import Config
from app.controller import SessionController
from storage.measurement_reader import read_measurements


def _configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drowsiness-monitor",
        description="Evaluate eye-closure measurements for signs of drowsiness.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="replay a timestamp,left,right CSV")
    replay.add_argument("csv", type=Path, help="recorded measurements")
    replay.add_argument("--config", type=Path, default=Path("config.json"))
    replay.add_argument("--runs-dir", help="write session files here (default from config)")
    replay.add_argument("--no-runs", action="store_true", help="do not write session files")
    replay.add_argument(
        "--time-only",
        action="store_true",
        help="trim the PERCLOS window by time only (disable fast recovery)",
    )
    replay.add_argument("--quiet", action="store_true", help="record alerts instead of logging them")
    return parser


def replay(args: argparse.Namespace, config: Config) -> int:
    logger = logging.getLogger(__name__)

    if args.time_only:
        config.evaluator.fast_recovery = False
    if args.no_runs:
        config.runs_dir = None
    elif args.runs_dir:
        config.runs_dir = args.runs_dir

    sink = RecordingAlertSink() if args.quiet else LoggingAlertSink()
    controller = SessionController(config, sink)

    try:
        rows = list(read_measurements(args.csv))
    except (OSError, ValueError) as exc:
        logger.error("Cannot read %s: %s", args.csv, exc)
        return 2

    if not rows:
        logger.error("%s contains no measurements.", args.csv)
        return 2

    controller.start_session(rows[0].timestamp, source=str(args.csv))
    for row in rows:
        if row.measurement is None:
            controller.handle_face_lost(row.timestamp)
        else:
            controller.handle_measurement(row.measurement)
    debrief = controller.stop_session(rows[-1].timestamp)

    summary = {k: v for k, v in debrief.items() if k != "timeline"}
    print(json.dumps(summary, indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = Config.load(args.config)
    _configure_logging(config.log_level)
    logger = logging.getLogger(__name__)
    logger.info("Drowsiness monitor – starting up.")

    ret = replay(args, config)
    logger.info("Exiting with code %d.", ret)
    return ret


if __name__ == "__main__":
    sys.exit(main())
