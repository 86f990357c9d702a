from docflow.queue.events import JobEvent, JobEvents, log_listener
from docflow.queue.models import Job, JobKind, JobPriority


def _make_job() -> Job:
    return Job(id="1", kind=JobKind.EXTRACT, document_id="doc-1", priority=JobPriority.NORMAL)


class TestJobEvents:
    def test_publishes_to_subscribers(self) -> None:
        events = JobEvents()
        seen: list[JobEvent] = []
        events.subscribe(lambda event, job: seen.append(event))

        events.publish(JobEvent.ADDED, _make_job())

        assert seen == [JobEvent.ADDED]

    def test_unsubscribe(self) -> None:
        events = JobEvents()
        seen: list[JobEvent] = []
        unsubscribe = events.subscribe(lambda event, job: seen.append(event))
        unsubscribe()

        events.publish(JobEvent.ADDED, _make_job())

        assert seen == []

    def test_failing_listener_does_not_stop_others(self) -> None:
        events = JobEvents()
        seen: list[JobEvent] = []

        def broken(event: JobEvent, job: Job) -> None:
            raise RuntimeError("listener bug")

        events.subscribe(broken)
        events.subscribe(lambda event, job: seen.append(event))

        events.publish(JobEvent.FAILED, _make_job())

        assert seen == [JobEvent.FAILED]

    def test_log_listener_accepts_every_event(self) -> None:
        for event in JobEvent:
            log_listener(event, _make_job())
