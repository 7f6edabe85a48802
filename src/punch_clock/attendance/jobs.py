from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_utc
from ..core.exceptions import ValidationError
from ..punches.repository import PunchEventStore
from .model import ComputationResult
from .service import AttendanceComputationEngine


class AttendanceProcessingJob:
    """Scheduled entry points around the computation engine."""

    def __init__(
        self,
        engine: AttendanceComputationEngine,
        punches: PunchEventStore,
        *,
        logger: logging.Logger,
        clock: Callable = now_utc,
    ):
        self._engine = engine
        self._punches = punches
        self._logger = logger
        self._clock = clock

    def process_yesterday(self) -> ComputationResult:
        yesterday = self._clock().date() - timedelta(days=1)
        self._logger.info("Processing attendance for %s", yesterday)
        result = self.process_date(yesterday)
        self._logger.info("Completed attendance processing for %s", yesterday)
        return result

    def process_date(self, day: date) -> ComputationResult:
        result = self._engine.compute_for_all_staff(day)
        self._logger.info(
            "Processed %d attendance records for %s (%d skipped)", result.count, day, len(result.skipped)
        )
        return result

    def process_date_range(self, start_date: date, end_date: date) -> ComputationResult:
        self._logger.info("Processing attendance from %s to %s", start_date, end_date)
        result = self._engine.compute_for_all_staff_date_range(start_date, end_date)
        self._logger.info("Processed %d attendance records for date range", result.count)
        return result

    def reprocess_anomalies(self, from_date: Optional[date] = None) -> int:
        self._logger.info("Reprocessing attendance records with anomalies from %s", from_date or "beginning")
        count = self._engine.reprocess_anomalies(from_date)
        self._logger.info("Reprocessed %d attendance records with anomalies", count)
        return count

    def process_pending_punches(self) -> int:
        """Recompute every (staff, date) touched by unprocessed punches.

        Only the punches read here are marked processed; punches that arrive
        while the job runs are left for the next run. Punches of units that
        failed stay unprocessed so they are retried.
        """

        pending = [p for p in self._punches.list_unprocessed() if p.is_valid]
        units = sorted({(p.staff_id, p.punch_date) for p in pending})
        self._logger.info("Found %d distinct staff/date combinations to process", len(units))

        done = set()
        for staff_id, day in units:
            try:
                self._engine.compute_daily_attendance(staff_id, day)
                done.add((staff_id, day))
            except ValidationError as exc:
                self._logger.warning("Skipping pending punches of staff %s on %s: %s", staff_id, day, exc)
            except Exception:
                self._logger.exception("Unexpected error processing pending punches of staff %s on %s", staff_id, day)

        processed_ids = [
            p.punch_id for p in pending if p.punch_id is not None and (p.staff_id, p.punch_date) in done
        ]
        marked = self._punches.mark_processed(processed_ids) if processed_ids else 0
        self._logger.info("Completed processing pending punch logs (%d punches marked processed)", marked)
        return len(done)
