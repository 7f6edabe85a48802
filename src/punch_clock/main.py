from __future__ import annotations

import argparse
import importlib
import signal
import threading
from datetime import date
from typing import Optional, Sequence

from dotenv import load_dotenv

from .common.datetime_utils import parse_iso_date
from .common.logging import configure_logging, get_logger
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="punch-clock", description="Time-and-attendance backend")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="run the job scheduler until interrupted (default)")
    sub.add_parser("sync-devices", help="pull attendance from every active device once")
    sub.add_parser("sync-staff", help="push active staff to every online device once")
    sub.add_parser("cleanup-devices", help="remove inactive staff from every online device once")
    sub.add_parser("process-pending", help="recompute attendance for unprocessed punches")

    process = sub.add_parser("process", help="recompute attendance for a date range")
    process.add_argument("start", type=parse_iso_date)
    process.add_argument("end", type=parse_iso_date, nargs="?")

    show = sub.add_parser("show-attendance", help="print stored attendance records for a date range")
    show.add_argument("start", type=parse_iso_date)
    show.add_argument("end", type=parse_iso_date)
    show.add_argument("--staff-id", type=int, default=None)

    history = sub.add_parser("sync-history", help="print the sync runs recorded for a device")
    history.add_argument("device_id", type=int)

    reprocess = sub.add_parser("reprocess-anomalies", help="recompute records that carry anomaly flags")
    reprocess.add_argument("--from-date", type=parse_iso_date, default=None)

    return parser.parse_args(argv)


def _serve(container: Container) -> None:
    logger = get_logger("main")
    stop_event = threading.Event()

    def _stop(signum, _frame) -> None:
        logger.info("Received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    scheduler = container.build_scheduler(stop_event)
    with container.registry:
        scheduler.run_forever(stop_event)


def _print_attendance(container: Container, start: date, end: date, staff_id: Optional[int]) -> None:
    records = container.attendance_store.query_by_date_range(start_date=start, end_date=end, staff_id=staff_id)
    for r in records:
        flags = ", ".join(f.value for f in r.anomaly_flags) or "-"
        print(
            f"{r.attendance_date} staff={r.staff_id} {r.status.value:<10} "
            f"in={r.clock_in or '-'} out={r.clock_out or '-'} total={r.total_hours} "
            f"overtime={r.overtime_hours} late={r.late_minutes}m flags={flags}"
        )
    print(f"{len(records)} records")


def _print_sync_history(container: Container, device_id: int) -> None:
    for run in container.sync_run_store.list_for_device(device_id):
        print(
            f"#{run.sync_id} {run.sync_type.value:<10} {run.status.value:<11} started={run.started_at} "
            f"completed={run.completed_at or '-'} synced={run.records_synced} deleted={run.records_deleted} "
            f"error={run.error_message or '-'}"
        )


def _run_command(container: Container, args: argparse.Namespace) -> None:
    logger = get_logger("main")
    command = args.command or "serve"

    if command == "serve":
        _serve(container)
        return

    with container.registry:
        if command == "sync-devices":
            container.sync_orchestrator.sync_all_devices()
        elif command == "sync-staff":
            container.sync_orchestrator.sync_all_staff()
        elif command == "cleanup-devices":
            container.sync_orchestrator.remove_inactive_staff_from_all_devices()
        elif command == "process-pending":
            container.attendance_job.process_pending_punches()
        elif command == "process":
            end: date = args.end or args.start
            container.attendance_job.process_date_range(args.start, end)
        elif command == "show-attendance":
            _print_attendance(container, args.start, args.end, args.staff_id)
        elif command == "sync-history":
            _print_sync_history(container, args.device_id)
        elif command == "reprocess-anomalies":
            container.attendance_job.reprocess_anomalies(args.from_date)
        else:
            logger.error("Unknown command %s", command)


def run(argv: Optional[Sequence[str]] = None) -> None:
    load_dotenv(override=False)
    args = _parse_args(argv)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", None))
    logger = get_logger("main")

    db_config = dict(settings.DB_CONFIG)
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(settings=settings)
    _run_command(container, args)


if __name__ == "__main__":
    run()
