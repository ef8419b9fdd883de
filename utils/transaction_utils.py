"""
Transaction Utilities
=====================

Helpers for ledger writes that must be serialized per row:
``select_for_update`` inside ``transaction.atomic()``, retried when the
database reports a deadlock or lock timeout.

Usage Examples:
    # Function decorator
    @retry_on_deadlock()
    def move_funds(store_id, amount):
        with locked_row(StoreEarnings.objects.filter(store_id=store_id)) as earnings:
            earnings.available_balance += amount
            earnings.save()

    # Timing
    @log_transaction_performance
    def settle():
        pass
"""

import logging
import time
from contextlib import contextmanager
from functools import wraps

from django.db import IntegrityError, OperationalError, transaction

logger = logging.getLogger(__name__)

# Substrings identifying a retryable lock conflict across backends
DEADLOCK_MARKERS = (
    "deadlock",
    "1213",  # MySQL ER_LOCK_DEADLOCK
    "1205",  # MySQL ER_LOCK_WAIT_TIMEOUT
    "could not serialize access",  # PostgreSQL serialization failure
    "database is locked",  # SQLite busy
)


class TransactionError(Exception):
    """Custom exception for transaction-related errors"""

    pass


class DeadlockError(TransactionError):
    """Exception raised when a deadlock is detected"""

    pass


def is_deadlock(error):
    message = str(error).lower()
    return any(marker in message for marker in DEADLOCK_MARKERS)


def retry_on_deadlock(max_retries=3, delay=0.1, backoff=2.0):
    """
    Decorator to retry operations on deadlock with exponential backoff.

    Args:
        max_retries (int): Maximum number of retry attempts
        delay (float): Initial delay between retries in seconds
        backoff (float): Backoff multiplier for delay
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    if not is_deadlock(e):
                        raise TransactionError(f"Database operation failed: {e}") from e

                    last_exception = DeadlockError(f"Deadlock detected: {e}")
                    if attempt < max_retries:
                        logger.warning(
                            f"Deadlock detected in {func.__name__}, retrying in {current_delay}s "
                            f"(attempt {attempt + 1}/{max_retries})"
                        )
                        time.sleep(current_delay)
                        current_delay *= backoff

            # If we get here, we've exhausted all retries
            raise last_exception

        return wrapper

    return decorator


@contextmanager
def locked_row(queryset, using=None):
    """
    Open an atomic block and yield the single row of ``queryset`` locked
    with SELECT ... FOR UPDATE, or None when no row matches.

    The lock is released when the block commits or rolls back.
    """
    try:
        with transaction.atomic(using=using):
            instance = queryset.select_for_update().first()
            yield instance
    except IntegrityError as e:
        logger.error(f"Integrity error while holding row lock on {queryset.model.__name__}: {e}")
        raise TransactionError(f"Transaction failed: {e}") from e


def log_transaction_performance(func):
    """
    Decorator to log transaction performance metrics.

    Usage:
        @log_transaction_performance
        @retry_on_deadlock()
        def my_database_operation():
            pass
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
            elapsed = time.time() - start_time
            logger.info(f"Transaction {func.__name__} completed in {elapsed:.3f}s")
            return result
        except Exception as e:
            elapsed = time.time() - start_time
            logger.error(f"Transaction {func.__name__} failed after {elapsed:.3f}s: {e}")
            raise

    return wrapper
