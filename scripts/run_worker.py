"""Run an RQ worker for the notification queue."""

from rq import Worker

from quote_portal.core.config import get_settings
from quote_portal.core.logging_config import setup_logging
from quote_portal.workers.queue import get_queue


def main() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    queue = get_queue("default")
    Worker([queue], connection=queue.connection).work()


if __name__ == "__main__":
    main()
