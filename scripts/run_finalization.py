"""Run a finalization pass from cron / a scheduler.

Examples:
    python scripts/run_finalization.py --pass absent
    python scripts/run_finalization.py --pass finalize --date 2024-03-15
"""

from __future__ import annotations

import argparse
import importlib
import json
import signal
import sys
import threading
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_engine.attendance_engine.common.validators import optional_date
from src.attendance_engine.attendance_engine.container import build_container
from src.attendance_engine.attendance_engine.main import configure_logging

PASSES = ("absent", "finalize", "classify", "incomplete")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Attendance finalization passes")
    parser.add_argument("--pass", dest="pass_name", choices=PASSES, default="finalize")
    parser.add_argument("--date", dest="work_date", default=None, help="YYYY-MM-DD, defaults to today")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    load_dotenv(override=False)
    args = parse_args(argv)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    job = build_container(db_config=dict(settings.DB_CONFIG), settings=settings).finalization_job
    work_date = optional_date(args.work_date, "--date")

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    runners = {
        "absent": lambda: job.check_absent(work_date, should_stop=stop.is_set),
        "finalize": lambda: job.finalize(work_date, should_stop=stop.is_set),
        "classify": lambda: job.classify(work_date, should_stop=stop.is_set),
        "incomplete": lambda: job.mark_incomplete(work_date, should_stop=stop.is_set),
    }
    report = runners[args.pass_name]()
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return 0 if report.success and not report.errors else 1


if __name__ == "__main__":
    sys.exit(main())
