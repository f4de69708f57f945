"""Blocking poll loop used by the create, terminate, park and unpark operations."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from .errors import ConvergenceTimeout, DecodeFailure, RemoteRejection, TransportFailure
from .models import Database, StatusEnum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How long to keep checking a database before giving up.

    The wait between fetches is constant, so the total wait is always
    ``attempts * interval_seconds``.

    Attributes:
        attempts: Number of fetches to make, at least 1.
        interval_seconds: Seconds to sleep before each fetch, at least 0.
    """
    attempts: int
    interval_seconds: float

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")
        if self.interval_seconds < 0:
            raise ValueError(
                f"interval_seconds must be >= 0, got {self.interval_seconds}"
            )

    @property
    def budget_seconds(self) -> float:
        return self.attempts * self.interval_seconds


def as_targets(status: Union[StatusEnum, Iterable[StatusEnum]]) -> frozenset[StatusEnum]:
    """Normalize a single status or a collection of statuses to a set.

    Unlike decoding a fetched database, an unrecognized status here is a
    caller mistake and raises ValueError instead of becoming UNKNOWN.
    """
    if isinstance(status, str):
        return frozenset([_lookup_status(status)])
    targets = frozenset(_lookup_status(s) for s in status)
    if not targets:
        raise ValueError("at least one target status is required")
    return targets


def _lookup_status(value):
    if isinstance(value, StatusEnum):
        return value
    try:
        return StatusEnum.__members__[value]
    except (KeyError, TypeError):
        raise ValueError(f"unknown target status {value!r}") from None


def poll_until(
    database_id: str,
    fetch: Callable[[str], Database],
    targets: Union[StatusEnum, Iterable[StatusEnum]],
    policy: RetryPolicy,
    *,
    is_gone: Optional[Callable[[RemoteRejection], bool]] = None,
    verbose: bool = False,
    sleep: Optional[Callable[[float], None]] = None,
) -> Optional[Database]:
    """Fetch a database until its status is one of ``targets``.

    Sleeps ``policy.interval_seconds`` before every fetch, the first one
    included. Transport failures, rejected fetches and undecodable bodies
    count against the budget and are otherwise ignored, unless ``is_gone``
    says a rejection means the database no longer exists, in which case
    polling stops and None is returned.

    Args:
        database_id: The database to watch.
        fetch: Returns a fresh snapshot for an id, e.g. ``AstraClient.find_db``.
        targets: Status, or statuses, that end the wait.
        policy: Attempt and interval budget.
        is_gone: Predicate marking a rejection as "database deleted".
        verbose: Log every attempt in detail instead of a bare "waiting".
        sleep: Replacement for ``time.sleep``.

    Returns:
        The first snapshot whose status is in ``targets``, or None when the
        database is gone.

    Raises:
        ConvergenceTimeout: If no fetch matched within the budget.
    """
    wanted = as_targets(targets)
    sleep = sleep or time.sleep
    last_error = None
    for attempt in range(1, policy.attempts + 1):
        sleep(policy.interval_seconds)
        remaining = policy.attempts - attempt
        try:
            db = fetch(database_id)
        except RemoteRejection as e:
            if is_gone is not None and is_gone(e):
                logger.info(
                    "db %s returned status code %s and is considered gone",
                    database_id,
                    e.status_code,
                )
                return None
            last_error = e
            _log_fetch_failure(database_id, e, remaining, verbose)
            continue
        except (TransportFailure, DecodeFailure) as e:
            last_error = e
            _log_fetch_failure(database_id, e, remaining, verbose)
            continue

        if db.status in wanted:
            if verbose:
                logger.info(
                    "db %s reached status %s after %d attempt(s)",
                    database_id,
                    db.status.value,
                    attempt,
                )
            return db
        if verbose:
            logger.info(
                "db %s in state %s but expected %s trying again %d more times",
                database_id,
                db.status.value,
                _describe(wanted),
                remaining,
            )
        else:
            logger.info("waiting")

    raise ConvergenceTimeout(
        database_id, _sorted(wanted), policy.budget_seconds, last_error
    )


def _log_fetch_failure(database_id, error, remaining, verbose):
    if verbose:
        logger.warning(
            "db %s not able to be found with error '%s' trying again %d more times",
            database_id,
            error,
            remaining,
        )
    else:
        logger.warning("waiting")


def _sorted(targets):
    return sorted(targets, key=lambda s: s.value)


def _describe(targets):
    return " or ".join(s.value for s in _sorted(targets))
