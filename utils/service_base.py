"""
Shared service-layer utilities.

Services in the commission app subclass ``BaseService`` for a per-class
logger and the ``log_performance`` timing decorator. Batch operations
report partial success through ``BatchResult`` instead of stopping at the
first failing item.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Generic, List, Tuple, TypeVar

T = TypeVar("T")


@dataclass
class BatchResult(Generic[T]):
    """Outcome of a batch operation.

    - succeeded: items processed without error
    - failed: ``(item, message)`` pairs for items that raised
    """

    succeeded: List[T] = field(default_factory=list)
    failed: List[Tuple[Any, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def add_success(self, item: T) -> None:
        self.succeeded.append(item)

    def add_failure(self, item: Any, error: Any) -> None:
        self.failed.append((item, str(error)))

    def errors(self) -> List[str]:
        return [f"{item}: {message}" for item, message in self.failed]

    def to_dict(self) -> dict:
        return {
            "succeeded": len(self.succeeded),
            "failed": [{"item": str(item), "error": message} for item, message in self.failed],
        }


class BaseService:
    """
    Base class for commission services.

    Provides:
    - Logging with class name
    - Performance timing decorator

    Usage:
        class SettlementService(BaseService):
            def __init__(self, clock):
                super().__init__()
                self.clock = clock

            @BaseService.log_performance
            def settle_pending_funds(self):
                self.logger.info("Settling")
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log execution time of service methods.

        BatchResult return values with failures are logged at warning level.
        Exceptions are logged with traceback and re-raised.
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms

                if isinstance(result, BatchResult) and not result.ok:
                    self.logger.warning(
                        f"{method_name} finished with {len(result.failed)} failures "
                        f"({len(result.succeeded)} succeeded) in {elapsed_time:.2f}ms"
                    )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper
