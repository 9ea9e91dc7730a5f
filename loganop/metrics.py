"""Counters and timings for the reconcile loop."""

from __future__ import annotations

import threading
from collections import Counter, defaultdict
from datetime import timedelta
from enum import Enum
from typing import Union

RECONCILE_ERRORS_METRIC = "logan_controller_runtime_reconcile_errors_total"
RECONCILE_TIME_METRIC = "logan_controller_runtime_reconcile_time_seconds"


class Stage(str, Enum):
    """Main stages and sub stages of a reconcile."""

    GET_BOOT = "reconcile_get_boot"
    UPDATE_BOOT_DEFAULTERS = "reconcile_update_boot_defaulters"
    CREATE = "reconcile_create"
    UPDATE = "reconcile_update"
    UPDATE_BOOT_META = "reconcile_update_boot_meta"

    CREATE_DEPLOYMENT = "create_deployment"
    GET_DEPLOYMENT = "get_deployment"
    UPDATE_DEPLOYMENT = "update_deployment"
    CREATE_SERVICE = "create_service"
    GET_SERVICE = "get_service"
    LIST_SERVICES = "list_service"
    UPDATE_SERVICE = "update_service"
    CREATE_OTHER_SERVICE = "create_other_service"
    UPDATE_OTHER_SERVICE = "update_other_service"
    DELETE_OTHER_SERVICE = "delete_other_service"
    LIST_PODS = "list_pods"
    UPDATE_BOOT_META_SUB = "update_boot_meta"


StageLike = Union[Stage, str]
Duration = Union[float, int, timedelta]


def _label(stage: StageLike) -> str:
    return stage.value if isinstance(stage, Stage) else str(stage)


def _seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


class ReconcileMetrics:
    """Error counts per (kind, stage, sub stage, boot) and reconcile durations per kind."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: Counter[tuple[str, str, str, str]] = Counter()
        self._times: defaultdict[str, list[float]] = defaultdict(list)

    def update_reconcile_time(self, kind: str, seconds: Duration) -> None:
        """Record how long one reconcile of ``kind`` took."""
        value = _seconds(seconds)
        with self._lock:
            self._times[kind].append(value)

    def update_reconcile_errors(self, kind: str, stage: StageLike, sub_stage: StageLike, boot: str) -> None:
        """Count one error in a sub stage of a main stage."""
        key = (kind, _label(stage), _label(sub_stage), boot)
        with self._lock:
            self._errors[key] += 1

    def update_main_stage_errors(self, kind: str, stage: StageLike, boot: str) -> None:
        """Count one error in a main stage, with no sub stage."""
        self.update_reconcile_errors(kind, stage, "", boot)

    def error_count(self, kind: str, stage: StageLike, sub_stage: StageLike, boot: str) -> int:
        """Return how many errors were counted for these labels."""
        with self._lock:
            return self._errors[(kind, _label(stage), _label(sub_stage), boot)]

    def observations(self, kind: str) -> tuple[float, ...]:
        """Return the recorded durations of ``kind`` in seconds, oldest first."""
        with self._lock:
            return tuple(self._times.get(kind, ()))


_registry = ReconcileMetrics()


def update_reconcile_time(kind: str, seconds: Duration) -> None:
    """Record a reconcile duration in the process-wide metrics."""
    _registry.update_reconcile_time(kind, seconds)


def update_reconcile_errors(kind: str, stage: StageLike, sub_stage: StageLike, boot: str) -> None:
    """Count a sub stage error in the process-wide metrics."""
    _registry.update_reconcile_errors(kind, stage, sub_stage, boot)


def update_main_stage_errors(kind: str, stage: StageLike, boot: str) -> None:
    """Count a main stage error in the process-wide metrics."""
    _registry.update_main_stage_errors(kind, stage, boot)


def default_metrics() -> ReconcileMetrics:
    """Return the process-wide metrics."""
    return _registry