import signal
import threading
from types import FrameType

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.services import PipelineServices, build_services, connect_database


def run_maintenance(services: PipelineServices) -> None:
    """Prune old finished jobs and log a queue snapshot; errors wait for the next round."""
    try:
        services.queue.clean(services.settings.clean_grace_seconds)
        snapshot = services.introspection.snapshot()
    except Exception as exc:
        Log.warning(f"Queue maintenance failed, will retry: {exc}")
        return
    Log.info(f"Queue snapshot: {snapshot.to_dict()}")


def main() -> None:
    """Entry point: connect -> build services -> run worker slots until stopped."""
    settings = Settings()
    Log.configure(settings.log_level, settings.app_env)
    database_ready = connect_database(settings)
    services = build_services(settings, database_ready=database_ready)

    stop = threading.Event()

    def _request_stop(signum: int, _frame: FrameType | None) -> None:
        Log.info(f"Received signal {signum}, stopping")
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    services.start()
    try:
        while not stop.wait(settings.maintenance_interval_seconds):
            run_maintenance(services)
    finally:
        services.shutdown()


if __name__ == "__main__":
    main()
