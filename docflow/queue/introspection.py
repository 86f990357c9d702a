from dataclasses import replace

from docflow.queue.base import BaseJobQueue
from docflow.queue.models import QueueSnapshot
from docflow.queue.timings import ProcessingTimes


class QueueIntrospection:
    """Read-only queue report for status pollers and admin tooling.

    The wait estimate is informational and never feeds scheduling.
    """

    def __init__(
        self,
        queue: BaseJobQueue,
        timings: ProcessingTimes,
        default_seconds_per_job: float = 30.0,
    ) -> None:
        self._queue = queue
        self._timings = timings
        self._default_seconds_per_job = default_seconds_per_job

    def snapshot(self) -> QueueSnapshot:
        counts = self._queue.get_snapshot()
        per_job = self._timings.average()
        if per_job is None:
            per_job = self._default_seconds_per_job
        return replace(counts, estimated_wait_seconds=round(counts.waiting * per_job, 1))
