"""Retry scheduling for failed hook deliveries.

A retry is first persisted (``status = retrying`` plus ``next_retry_at``) and
only then handed to Celery as a delayed task. The persisted due time is the
source of truth: the periodic sweeper re-drives any retry whose task was
lost, and the claim in :meth:`ExecutionStore.claim_retry` makes sure each
retry runs once.
"""
import logging
import random
from datetime import timedelta
from typing import Callable, Optional

from app.config import Settings, get_settings
from app.services.execution_store import ExecutionStore, utcnow

logger = logging.getLogger(__name__)


def enqueue_retry_task(execution_id: int, delay: float) -> None:
    """Send the delayed retry task to the Celery broker."""
    # Imported here: the task module imports the dispatcher, which imports us
    from app.tasks.hook_tasks import retry_hook_execution

    retry_hook_execution.apply_async(args=[execution_id], countdown=delay)


class RetryScheduler:
    """Computes backoff delays and schedules durable follow-up attempts."""

    def __init__(
        self,
        executions: ExecutionStore,
        enqueue: Optional[Callable[[int, float], None]] = None,
        settings: Optional[Settings] = None,
        rng: Callable[[], float] = random.random,
    ):
        self.executions = executions
        self.enqueue = enqueue or enqueue_retry_task
        self.settings = settings or get_settings()
        self.rng = rng

    def backoff_delay(self, retry_attempt: int) -> float:
        """
        Seconds to wait before attempt number ``retry_attempt`` (1-based).

        Exponential in the attempt number, capped, with up to
        ``retry_jitter_ratio`` of extra random delay.
        """
        exponent = max(retry_attempt - 1, 0)
        delay = min(
            self.settings.retry_backoff_max_seconds,
            self.settings.retry_backoff_base_seconds * (2 ** exponent),
        )
        return delay + delay * self.settings.retry_jitter_ratio * self.rng()

    def schedule_retry(
        self, execution_id: int, retry_attempt: int, delay: Optional[float] = None
    ) -> bool:
        """
        Schedule the attempt that follows a failed execution.

        Args:
            execution_id: The failed execution record
            retry_attempt: Attempt number of the failed execution
            delay: Seconds to wait; computed from the backoff policy when omitted

        Returns:
            True if the retry was persisted
        """
        next_attempt = retry_attempt + 1
        if delay is None:
            delay = self.backoff_delay(next_attempt)

        due_at = utcnow() + timedelta(seconds=delay)
        if not self.executions.mark_retrying(execution_id, next_attempt, due_at):
            logger.error(f"Could not persist retry {next_attempt} for execution {execution_id}")
            return False

        logger.info(
            f"Scheduling retry {next_attempt} for execution {execution_id} in {delay:.1f}s"
        )
        self.requeue(execution_id, delay)
        return True

    def requeue(self, execution_id: int, delay: float) -> None:
        """Enqueue the delayed task; a broker failure leaves the retry to the sweeper."""
        try:
            self.enqueue(execution_id, delay)
        except Exception as e:
            logger.warning(
                f"Could not enqueue retry for execution {execution_id}, "
                f"sweeper will pick it up: {e}"
            )
