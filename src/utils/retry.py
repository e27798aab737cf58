"""
Exponential backoff for transient MySQL failures.

Page fetches and keyed (upsert) chunk writes are idempotent, so they are
retried on every transient error, lost connections included. A plain append
INSERT for a keyless table may have committed before the connection dropped,
so it is retried only on errors where the server provably did not apply the
statement: refused connections (1040, 2002, 2003), a lock wait timeout
(1205, statement rolled back) and a deadlock (1213, transaction rolled back).
See retry_unapplied_database_operation.

Usage:
    from src.utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3, base_delay=1.0)
    def fetch_page(db, query):
        return db.execute(query)
"""

import logging
import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, Exception, float], None]

# Client and server error codes worth another attempt
RETRYABLE_MYSQL_ERROR_CODES = frozenset({
    1040,  # ER_CON_COUNT_ERROR: too many connections
    1205,  # ER_LOCK_WAIT_TIMEOUT
    1213,  # ER_LOCK_DEADLOCK
    2002,  # CR_CONNECTION_ERROR
    2003,  # CR_CONN_HOST_ERROR
    2006,  # CR_SERVER_GONE_ERROR
    2013,  # CR_SERVER_LOST
    2055,  # CR_SERVER_LOST_EXTENDED
})

# Subset where the statement never took effect; the lost-connection codes
# (2006, 2013, 2055) are excluded because the server may have committed first
UNAPPLIED_MYSQL_ERROR_CODES = frozenset({1040, 1205, 1213, 2002, 2003})

# Used only when the exception carries no MySQL error code
TRANSIENT_MESSAGE_FRAGMENTS = (
    "timeout",
    "timed out",
    "deadlock",
    "lost connection",
    "server has gone away",
    "can't connect",
    "connection refused",
    "connection reset",
    "broken pipe",
)

TRANSIENT_EXCEPTION_TYPES = (ConnectionError, TimeoutError)


@dataclass(frozen=True)
class Backoff:
    """Delay schedule: base * factor ** attempt, capped, with +/-25% jitter."""

    base_delay: float = 1.0
    max_delay: float = 60.0
    factor: float = 2.0
    jitter: bool = True

    def delay(self, attempt: int) -> float:
        delay = min(self.base_delay * self.factor ** attempt, self.max_delay)
        if not self.jitter:
            return delay
        spread = delay * 0.25
        return max(0.1, delay + random.uniform(-spread, spread))


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[RetryCallback] = None,
):
    """
    Retry the decorated function with exponential backoff

    Args:
        max_retries: Attempts after the first one (default: 3)
        base_delay: Delay before the first retry in seconds (default: 1.0)
        max_delay: Upper bound for any single delay (default: 60.0)
        exponential_base: Growth factor between delays (default: 2.0)
        jitter: Randomize each delay by up to 25% (default: True)
        retryable_exceptions: Exception types worth retrying (default: any)
        retry_if: Extra predicate an exception must also satisfy
        on_retry: Called as on_retry(attempt, exception, delay) before sleeping;
            errors raised by it are logged and ignored

    The last exception is re-raised once retries run out.
    """
    backoff = Backoff(base_delay, max_delay, exponential_base, jitter)

    def should_retry(error: Exception) -> bool:
        if retryable_exceptions is not None and not isinstance(error, retryable_exceptions):
            return False
        return retry_if is None or retry_if(error)

    def decorator(func: Callable) -> Callable:
        name = getattr(func, "__name__", repr(func))

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not should_retry(e):
                        logger.error(f"{name} failed permanently: {type(e).__name__}: {e}")
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            f"{name} still failing after {max_retries} retries: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = backoff.delay(attempt)
                    attempt += 1
                    logger.warning(
                        f"{name} attempt {attempt}/{max_retries} hit {type(e).__name__}: {e}; "
                        f"sleeping {delay:.2f}s"
                    )
                    if on_retry is not None:
                        try:
                            on_retry(attempt, e, delay)
                        except Exception as callback_error:
                            logger.error(f"on_retry callback raised: {callback_error}")
                    time.sleep(delay)

        return wrapper

    return decorator


def _mysql_error_code(exception: Exception) -> Optional[int]:
    # PyMySQL errors carry (code, message) as their args
    args = getattr(exception, "args", ())
    if args and type(args[0]) is int:
        return args[0]
    return None


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    True for connection loss, lock waits and deadlocks

    A MySQL error code, when present, decides on its own; syntax errors,
    unknown columns and duplicate keys are permanent whatever their message
    says. Without a code, connection/timeout exception types and well-known
    message fragments count as transient.
    """
    code = _mysql_error_code(exception)
    if code is not None:
        return code in RETRYABLE_MYSQL_ERROR_CODES

    if isinstance(exception, TRANSIENT_EXCEPTION_TYPES):
        return True

    message = str(exception).lower()
    return any(fragment in message for fragment in TRANSIENT_MESSAGE_FRAGMENTS)


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[RetryCallback] = None,
):
    """retry_with_backoff restricted to transient database errors."""
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        retry_if=is_retryable_db_exception,
        on_retry=on_retry,
    )


def is_unapplied_db_exception(exception: Exception) -> bool:
    """
    True only when the failed statement certainly left no trace

    Exceptions without a MySQL error code are never considered unapplied.
    """
    return _mysql_error_code(exception) in UNAPPLIED_MYSQL_ERROR_CODES


def retry_unapplied_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[RetryCallback] = None,
):
    """retry_with_backoff for non-idempotent writes such as append INSERTs."""
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        retry_if=is_unapplied_db_exception,
        on_retry=on_retry,
    )
