"""Hook dispatcher: delivers domain events to subscribed hooks."""
import asyncio
import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.hook_execution import FAILED, RETRYING, SUCCESS
from app.schemas.hook import HookResponse
from app.services.execution_store import ExecutionStore, utcnow
from app.services.hook_registry import HookRegistry
from app.services.retry_scheduler import RetryScheduler
from app.services.template_engine import render

settings = get_settings()
logger = logging.getLogger(__name__)

# Known CMS event types; hooks may subscribe to any other non-empty type too
HOOK_EVENTS = [
    "content.created",
    "content.updated",
    "content.deleted",
    "content.published",
    "content.unpublished",
    "media.uploaded",
    "media.deleted",
    "user.role_assigned",
    "user.role_removed",
]

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class HookDispatcher:
    """
    Executes active hooks for domain events.

    Nothing raised while dispatching reaches the caller: delivery is
    best-effort and must never fail the action that emitted the event.
    """

    def __init__(
        self,
        db: Session,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        scheduler: Optional[RetryScheduler] = None,
    ):
        self.db = db
        self.registry = HookRegistry(db)
        self.executions = ExecutionStore(db)
        self.scheduler = scheduler or RetryScheduler(self.executions)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    async def trigger_hooks(self, event_type: str, event_data: Dict[str, Any]) -> None:
        """
        Execute every active hook subscribed to ``event_type``.

        Hooks run concurrently; one hook failing never stops another.

        Args:
            event_type: Type of event (e.g., "content.published")
            event_data: Event data, used to render payload templates
        """
        try:
            rows = self.registry.list_active_for_event(event_type)
        except Exception:
            logger.exception(f"Error loading hooks for '{event_type}', skipping dispatch")
            return

        hooks = []
        for row in rows:
            try:
                hooks.append(HookResponse.model_validate(row))
            except Exception:
                logger.exception(f"Hook {row.id} has an invalid definition, skipping it")

        if not hooks:
            return

        logger.info(f"Triggering {len(hooks)} hook(s) for '{event_type}'")
        try:
            async with self._client() as client:
                tasks = [
                    self._execute_hook(client, hook, event_type, event_data) for hook in hooks
                ]
                results = await asyncio.gather(*tasks, return_exceptions=True)
        except Exception:
            logger.exception(f"Error dispatching hooks for '{event_type}'")
            return

        for hook, result in zip(hooks, results):
            if isinstance(result, BaseException):
                logger.error(f"Hook {hook.id} crashed while handling '{event_type}': {result!r}")

    async def _execute_hook(
        self,
        client: httpx.AsyncClient,
        hook: HookResponse,
        event_type: str,
        event_data: Dict[str, Any],
    ) -> None:
        record = self.executions.create_pending(hook.id, event_type, event_data)
        execution_id = record.id if record else None

        if not hook.endpoint_url:
            # Registered without a target: nothing to send
            if execution_id is not None:
                self.executions.mark_completed(execution_id, SUCCESS, execution_time_ms=0)
            return

        await self._attempt(client, hook, event_data, execution_id, retry_attempt=0)

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        hook: HookResponse,
        event_data: Dict[str, Any],
        execution_id: Optional[int],
        retry_attempt: int,
    ) -> str:
        """Perform one delivery, store its outcome and decide on a retry."""
        payload = render(hook.payload_template, event_data)
        headers = merge_headers(hook.headers)
        body = json.dumps(payload, default=str)

        start_time = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.request(
                    hook.http_method,
                    hook.endpoint_url,
                    content=body,
                    headers=headers,
                    timeout=hook.timeout_seconds,
                ),
                timeout=hook.timeout_seconds,
            )
        except Exception as e:
            execution_time_ms = _elapsed_ms(start_time)
            error_message = str(e) or e.__class__.__name__
            logger.warning(
                f"Hook {hook.id} delivery to {hook.endpoint_url} failed after "
                f"{execution_time_ms}ms: {error_message}"
            )
            status = FAILED
            outcome = {"execution_time_ms": execution_time_ms, "error_message": error_message}
        else:
            execution_time_ms = _elapsed_ms(start_time)
            status = SUCCESS if response.is_success else FAILED
            outcome = {
                "response_status": response.status_code,
                "response_body": response.text,
                "execution_time_ms": execution_time_ms,
                "error_message": (
                    None if response.is_success
                    else f"HTTP {response.status_code}: {response.text}"
                ),
            }
            logger.info(
                f"Hook {hook.id} delivered to {hook.endpoint_url}: "
                f"HTTP {response.status_code} in {execution_time_ms}ms"
            )

        if execution_id is None:
            logger.warning(f"Hook {hook.id} outcome '{status}' not recorded, no retry possible")
            return status

        self.executions.mark_completed(execution_id, status, **outcome)

        if status == FAILED and retry_attempt < hook.retry_count:
            self.scheduler.schedule_retry(execution_id, retry_attempt)
        return status

    async def run_retry(self, execution_id: int, now: Optional[datetime] = None) -> None:
        """
        Execute the follow-up attempt of a retrying execution, once.

        Called by the delayed Celery task and by the sweeper. A retry that is
        not due yet is re-enqueued for the remaining delay.
        """
        now = now or utcnow()
        try:
            previous = self.executions.get(execution_id)
            if not previous or previous.status != RETRYING:
                logger.info(f"Execution {execution_id} has no pending retry, skipping")
                return

            if previous.next_retry_at and previous.next_retry_at > now:
                remaining = (previous.next_retry_at - now).total_seconds()
                self.scheduler.requeue(execution_id, remaining)
                return

            hook = self.registry.get(previous.hook_id)
            if not hook or not hook.is_active:
                self.executions.abandon_retry(
                    execution_id, f"Retry abandoned: hook {previous.hook_id} is no longer active"
                )
                return
            snapshot = HookResponse.model_validate(hook)

            record = self.executions.claim_retry(execution_id, now)
            if not record:
                logger.info(f"Retry of execution {execution_id} already claimed")
                return

            event_data = record.event_data
            logger.info(
                f"Retrying hook {snapshot.id} (attempt {record.retry_attempt}) "
                f"as execution {record.id}"
            )
            if not snapshot.endpoint_url:
                self.executions.mark_completed(record.id, SUCCESS, execution_time_ms=0)
                return

            async with self._client() as client:
                await self._attempt(
                    client, snapshot, event_data, record.id, retry_attempt=record.retry_attempt
                )
        except Exception:
            logger.exception(f"Error running retry of execution {execution_id}")

    async def sweep_due_retries(self, now: Optional[datetime] = None, limit: Optional[int] = None) -> int:
        """
        Run every retry whose due time has passed.

        Returns:
            Number of due retries found
        """
        now = now or utcnow()
        try:
            due = self.executions.list_due_retries(now, limit or settings.retry_sweep_batch_size)
        except Exception:
            logger.exception("Error listing due hook retries")
            return 0

        for execution_id in due:
            await self.run_retry(execution_id, now=now)
        return len(due)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)


def merge_headers(headers: Dict[str, str]) -> httpx.Headers:
    """Default headers overridden by the hook's own, compared case-insensitively."""
    merged = httpx.Headers(DEFAULT_HEADERS)
    merged.update(headers)
    return merged


async def send_test_event(
    hook: HookResponse,
    event_data: Dict[str, Any],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    Test a hook by sending a sample event and measuring the response.

    Nothing is recorded and no retry is scheduled.

    Args:
        hook: Hook to test
        event_data: Sample event data for the payload template
        transport: Optional httpx transport (used by tests)

    Returns:
        Dict with test results including status code and response time
    """
    if not hook.endpoint_url:
        return {"success": False, "error": "Hook has no endpoint URL"}

    payload = render(hook.payload_template, event_data)
    start_time = time.time()

    try:
        async with httpx.AsyncClient(transport=transport) as client:
            response = await asyncio.wait_for(
                client.request(
                    hook.http_method,
                    hook.endpoint_url,
                    content=json.dumps(payload, default=str),
                    headers=merge_headers(hook.headers),
                    timeout=hook.timeout_seconds,
                ),
                timeout=hook.timeout_seconds,
            )
            response_time = time.time() - start_time

            return {
                "success": response.is_success,
                "status_code": response.status_code,
                "response_time": round(response_time, 3),
            }
    except (httpx.TimeoutException, asyncio.TimeoutError):
        return {
            "success": False,
            "error": f"Request timeout (> {hook.timeout_seconds:g} seconds)",
            "response_time": hook.timeout_seconds,
        }
    except Exception as e:
        response_time = time.time() - start_time
        return {
            "success": False,
            "error": str(e),
            "response_time": round(response_time, 3),
        }


def sample_event_data(event_type: str) -> Dict[str, Any]:
    """Sample event data used by the hook test endpoint."""
    return {
        "event": event_type,
        "test": True,
        "content": {
            "id": "test-content-001",
            "title": "Test Content",
            "slug": "test-content",
            "status": "published",
        },
        "user": {"id": "test-user-001", "email": "test@example.com"},
        "timestamp": utcnow().isoformat(),
    }
