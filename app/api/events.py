"""Event ingestion endpoint for domain actions running outside this service."""
from fastapi import APIRouter

from app.schemas.hook import EventTriggerRequest, EventTriggerResponse
from app.tasks.hook_tasks import enqueue_event

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post("", response_model=EventTriggerResponse, status_code=202)
def trigger_event(event: EventTriggerRequest):
    """
    Queue an event for hook dispatch.

    Returns immediately; hooks run in the Celery worker. A queueing failure
    is reported in ``queued`` but never turns into an error response.
    """
    queued = enqueue_event(event.event_type, event.data)
    return EventTriggerResponse(event_type=event.event_type, queued=queued)
