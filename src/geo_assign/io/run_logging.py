# io/run_logging.py
import itertools
import json
import logging
import sys

from geo_assign.app.hooks import NoopHooks
from geo_assign.domain.entities.assignment import AssignmentRecord
from geo_assign.io.business_events import AssignmentMadeBiz, DistanceFallbackBiz, RunCompletedBiz
from geo_assign.io.recorder import Recorder


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def default_json_logger(name="geo_assign", level="INFO", stream=None):
    """
    JSON logger for the package root; module loggers (`geo_assign.*`)
    propagate into it.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(stream or sys.stdout)
        h.setFormatter(JsonFormatter())
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


class RunLogging(NoopHooks):
    """
    One place to shape and emit structured logs for an assignment run,
    and to feed business events to a recorder.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 1,
        logger: logging.Logger | None = None,
        recorder: Recorder | None = None,
    ):
        self.run_id, self.debug, self.sample_every = run_id, debug, max(1, sample_every)
        self.recorder = recorder
        self.log = logger or default_json_logger(level=level)
        self._seq = itertools.count(1)
        self._progress_seen = 0

    # --------------- Helpers -----------------------------

    def _emit(self, level: str, msg: str, **extra):
        self.log.log(getattr(logging, level), msg, extra={"extra": {"run_id": self.run_id, **extra}})

    def _biz(self, ev):
        if self.recorder:
            self.recorder.emit(ev)

    # --------------------------------------------------------

    def run_start(self, *, individuals: int, facilities: int, capacity: int, mode: str):
        self._progress_seen = 0
        self._emit(
            "INFO",
            "run_start",
            individuals=individuals,
            facilities=facilities,
            capacity=capacity,
            mode=mode,
        )

    def run_end(self, *, assigned: int, unassigned: int, wall_ms: float | None = None):
        self._emit("INFO", "run_end", assigned=assigned, unassigned=unassigned, wall_ms=wall_ms)
        self._biz(
            RunCompletedBiz(
                run_id=self.run_id,
                seq=next(self._seq),
                name="RunCompleted",
                assigned=assigned,
                unassigned=unassigned,
                wall_ms=wall_ms,
            )
        )

    def progress(self, completed: int, total: int, message: str, *, source: str = "engine"):
        self._progress_seen += 1
        if completed >= total or (self._progress_seen % self.sample_every) == 0:
            self._emit("INFO", "progress", source=source, completed=completed, total=total, message=message)

    def fallback(self, *, tier: str, error: str, pair: str):
        self._emit("WARNING", "distance_fallback", tier=tier, error=error, pair=pair)
        self._biz(
            DistanceFallbackBiz(
                run_id=self.run_id,
                seq=next(self._seq),
                name="DistanceFallback",
                tier=tier,
                pair=pair,
                error=error,
            )
        )

    def assigned(self, record: AssignmentRecord):
        if self.debug:
            self._emit(
                "DEBUG",
                "assigned",
                individual=record.individual_index,
                facility=record.facility_index,
                category=record.category.value,
                km=record.distance_km,
            )
        self._biz(
            AssignmentMadeBiz(
                run_id=self.run_id,
                seq=next(self._seq),
                name="AssignmentMade",
                individual_index=record.individual_index,
                facility_index=record.facility_index,
                category=record.category.value,
                distance_km=record.distance_km,
            )
        )
