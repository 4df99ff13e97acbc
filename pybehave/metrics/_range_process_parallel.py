"""
Parallel per-student range aggregation.

Each student's aggregation reads only that student's records, so students can
be processed in separate worker processes without shared state.
"""

import datetime as dt
import logging
from functools import partial
from multiprocessing import Pool, cpu_count

from ..records import EvaluationRecord, StudentRangeAggregate
from ..schedule import Schedule
from ._range_process import _student_worker

logger = logging.getLogger(__name__)


def resolve_worker_count(n_workers: int | None, n_tasks: int) -> int:
    """
    Number of processes to use.

    None or 1 means serial. -1 means one per CPU. Never more than `n_tasks`.
    """
    if n_workers is None:
        return 1
    if not isinstance(n_workers, int) or isinstance(n_workers, bool):
        raise TypeError("n_workers must be an integer or None.")
    if n_workers == -1:
        n_workers = cpu_count()
    elif n_workers < 1:
        raise ValueError("n_workers must be a positive integer, -1, or None.")
    return max(1, min(n_workers, cpu_count(), n_tasks))


def aggregate_students_parallel(
    records_by_student: dict[str, list[EvaluationRecord]],
    dates: tuple[dt.date, ...],
    categories: tuple[str, ...],
    comment_mode: str,
    schedule: Schedule,
    n_workers: int,
    verbosity: int = 0,
) -> dict[str, StudentRangeAggregate]:
    """
    Aggregates every student in a process pool.

    Returns:
        student_id -> StudentRangeAggregate, in the order of `records_by_student`.
    """
    worker_func = partial(
        _student_worker,
        dates=dates,
        categories=categories,
        comment_mode=comment_mode,
        schedule=schedule,
    )
    if verbosity <= -1:
        logger.info(
            f"Using {n_workers} workers to aggregate {len(records_by_student)} students"
        )

    with Pool(processes=n_workers) as pool:
        # map preserves input order, so output is identical to the serial path
        results = pool.map(worker_func, list(records_by_student.items()))

    return dict(results)
