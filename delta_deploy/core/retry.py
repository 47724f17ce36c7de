"""Bounded fixed-delay retries for remote operations"""

import logging
import subprocess
import time
from typing import Callable, List, Optional, Tuple, Type

from ..api.exceptions import RemoteOperationError
from ..constants import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_DELAY, AttemptOutcome, OperationKind
from ..models.result import CommandResult, DeployAttempt, ExecutionReport

logger = logging.getLogger(__name__)


class RetryableExecutor:
    """Run a named operation up to ``max_attempts`` times

    The delay between attempts is constant. There is no wait after the
    final attempt.
    """

    def __init__(self,
                 max_attempts: int = DEFAULT_RETRY_COUNT,
                 delay: float = DEFAULT_RETRY_DELAY,
                 sleep: Callable[[float], None] = time.sleep,
                 retry_on: Tuple[Type[BaseException], ...] = (OSError, subprocess.SubprocessError),
                 attempt_log: Optional[List[DeployAttempt]] = None):
        """Initialize executor

        Args:
            max_attempts: Maximum number of attempts per operation
            delay: Seconds to wait between attempts
            sleep: Wait function
            retry_on: Exceptions raised by the operation that count as a failed attempt
            attempt_log: Shared list every attempt is appended to
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.max_attempts = max_attempts
        self.delay = delay
        self.sleep = sleep
        self.retry_on = retry_on
        self.attempt_log = attempt_log if attempt_log is not None else []

    def run(self,
            operation: OperationKind,
            func: Callable[[], CommandResult],
            error_cls: Type[RemoteOperationError] = RemoteOperationError) -> ExecutionReport:
        """Run an operation with retries

        Args:
            operation: Operation being run
            func: Callable performing one attempt
            error_cls: Error raised once attempts are exhausted

        Returns:
            Report of the attempts, the last one successful

        Raises:
            RemoteOperationError: error_cls after max_attempts failures
        """
        name = operation.value
        report = ExecutionReport(operation)
        last_result = None

        for attempt in range(1, self.max_attempts + 1):
            logger.info(f"Starting {name} (attempt {attempt}/{self.max_attempts})")
            try:
                result = func()
            except self.retry_on as e:
                result = None
                reason = str(e) or e.__class__.__name__
            else:
                last_result = result
                reason = None if result.success else result.reason

            if reason is None:
                self._record(report, DeployAttempt(
                    operation, attempt, AttemptOutcome.SUCCESS, result.payload
                ))
                logger.info(f"{name} succeeded on attempt {attempt}")
                return report

            self._record(report, DeployAttempt(
                operation, attempt, AttemptOutcome.FAILURE,
                result.payload if result is not None else None, reason
            ))
            logger.error(f"{name} attempt {attempt} failed: {reason}")

            if attempt < self.max_attempts:
                logger.info(f"Retrying in {self.delay:g} seconds...")
                self.sleep(self.delay)

        raise error_cls(
            f"{name} failed after {self.max_attempts} attempts",
            operation=name,
            attempts=self.max_attempts,
            last_result=last_result,
        )

    def _record(self, report: ExecutionReport, attempt: DeployAttempt) -> None:
        report.attempts.append(attempt)
        self.attempt_log.append(attempt)
