from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from django.conf import settings
from django.db import OperationalError, transaction

from voting.exceptions import ConsistencyError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def atomic_with_conflict_retry(*, operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Run the wrapped function in its own atomic block, retrying store conflicts.

    Serialization failures, deadlocks and lock timeouts all surface from the
    database drivers as OperationalError. Each attempt starts a fresh
    transaction (or savepoint, when nested), so nothing from a failed attempt
    leaks into the next one. Domain errors raised by the function propagate
    untouched on the first attempt.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            retries = max(int(settings.VOTING_TRANSACTION_RETRIES), 0)
            attempt = 0
            while True:
                attempt += 1
                try:
                    with transaction.atomic():
                        return func(*args, **kwargs)
                except OperationalError as exc:
                    if attempt <= retries:
                        logger.warning(
                            "%s: store conflict on attempt %d, retrying: %s",
                            operation,
                            attempt,
                            exc,
                        )
                        continue
                    logger.exception("%s: store conflict persisted after %d attempts", operation, attempt)
                    raise ConsistencyError(f"{operation} could not be completed, please retry") from exc

        return wrapper

    return decorator
