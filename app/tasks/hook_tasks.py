"""Celery tasks for hook dispatch and retries."""
import asyncio
import logging
from typing import Any, Dict

from app.database import SessionLocal
from app.services.hook_dispatcher import HookDispatcher
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.hook_tasks.dispatch_event")
def dispatch_event(event_type: str, event_data: Dict[str, Any]) -> None:
    """
    Execute all active hooks for an event.
    This runs in Celery worker, NOT in web request context.

    Args:
        event_type: Type of event (e.g., "content.published")
        event_data: Event data for payload templates
    """
    logger.info(f"🪝 Dispatching hooks for event '{event_type}'")

    db = SessionLocal()
    try:
        asyncio.run(HookDispatcher(db).trigger_hooks(event_type, event_data))
        logger.info(f"✅ Hooks dispatched for event '{event_type}'")
    finally:
        db.close()


@celery_app.task(name="app.tasks.hook_tasks.retry_hook_execution")
def retry_hook_execution(execution_id: int) -> None:
    """
    Run the follow-up attempt of a failed execution.

    Args:
        execution_id: The execution record in ``retrying`` state
    """
    logger.info(f"🔁 Running retry for execution {execution_id}")

    db = SessionLocal()
    try:
        asyncio.run(HookDispatcher(db).run_retry(execution_id))
    finally:
        db.close()


@celery_app.task(name="app.tasks.hook_tasks.sweep_due_retries")
def sweep_due_retries() -> int:
    """
    Periodic task: run retries whose delayed task never arrived.

    Returns:
        Number of due retries found
    """
    db = SessionLocal()
    try:
        count = asyncio.run(HookDispatcher(db).sweep_due_retries())
        if count:
            logger.info(f"🧹 Swept {count} due hook retr{'y' if count == 1 else 'ies'}")
        return count
    finally:
        db.close()


def enqueue_event(event_type: str, event_data: Dict[str, Any]) -> bool:
    """
    Hand an event to the worker without waiting for delivery.

    Never raises: a broker outage must not fail the domain action.

    Returns:
        True if the event was queued
    """
    try:
        dispatch_event.delay(event_type, event_data)
    except Exception as e:
        logger.error(f"❌ Could not queue event '{event_type}': {e}")
        return False
    return True
