"""RQ queue setup and the request-side enqueue helper."""

from __future__ import annotations

import logging
from typing import Any, Callable

import rq
from redis import Redis
from redis.exceptions import RedisError

from quote_portal.core.config import get_settings

logger = logging.getLogger(__name__)


def get_queue(name: str = "default") -> rq.Queue:
    settings = get_settings()
    conn = Redis.from_url(settings.REDIS_URL)
    return rq.Queue(name, connection=conn)


def enqueue(func: Callable[..., Any], *args: Any) -> bool:
    """Queue a notification job. A broker outage is logged, never raised.

    The HTTP request that triggered the job has already committed its state
    change; mail is a side effect it must not depend on.
    """
    try:
        get_queue().enqueue(func, *args)
    except RedisError:
        logger.exception("Could not enqueue %s%r", func.__name__, args, extra={"job": func.__name__})
        return False
    return True
