"""Hook CRUD API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.hook import (
    HookCreate,
    HookExecutionResponse,
    HookResponse,
    HookTestResponse,
    HookUpdate,
)
from app.services.hook_dispatcher import HOOK_EVENTS, sample_event_data, send_test_event
from app.services.hook_registry import HookRegistry, PersistenceError

router = APIRouter(prefix="/api/hooks", tags=["hooks"])


@router.get("", response_model=List[HookResponse])
def list_hooks(db: Session = Depends(get_db)):
    """
    List all hooks.

    Returns all configured hooks, newest first.
    """
    return HookRegistry(db).list()


@router.post("", response_model=HookResponse, status_code=201)
def create_hook(hook: HookCreate, db: Session = Depends(get_db)):
    """
    Create a new hook.

    The hook runs whenever an event of its event type is triggered.
    """
    try:
        return HookRegistry(db).create(hook)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/events", response_model=List[str])
def list_event_types():
    """Known CMS event types hooks can subscribe to."""
    return HOOK_EVENTS


@router.get("/{hook_id}", response_model=HookResponse)
def get_hook(hook_id: int, db: Session = Depends(get_db)):
    """
    Get a single hook by ID.

    Args:
        hook_id: ID of the hook to retrieve
    """
    hook = HookRegistry(db).get(hook_id)
    if not hook:
        raise HTTPException(status_code=404, detail="Hook not found")

    return hook


@router.put("/{hook_id}", response_model=HookResponse)
def update_hook(hook_id: int, hook_update: HookUpdate, db: Session = Depends(get_db)):
    """
    Update a hook.

    Only provided fields will be updated.

    Args:
        hook_id: ID of the hook to update
        hook_update: Updated hook data
    """
    try:
        hook = HookRegistry(db).update(hook_id, hook_update)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not hook:
        raise HTTPException(status_code=404, detail="Hook not found")

    return hook


@router.delete("/{hook_id}", status_code=204)
def delete_hook(hook_id: int, db: Session = Depends(get_db)):
    """
    Delete a hook and its execution history.

    Args:
        hook_id: ID of the hook to delete
    """
    try:
        deleted = HookRegistry(db).delete(hook_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=404, detail="Hook not found")

    return None


@router.get("/{hook_id}/executions", response_model=List[HookExecutionResponse])
def list_hook_executions(hook_id: int, db: Session = Depends(get_db)):
    """
    Recent execution records for a hook, newest first.

    Args:
        hook_id: ID of the hook
    """
    registry = HookRegistry(db)
    if not registry.get(hook_id):
        raise HTTPException(status_code=404, detail="Hook not found")

    return registry.get_executions(hook_id)


@router.post("/{hook_id}/test", response_model=HookTestResponse)
async def test_hook_endpoint(hook_id: int, db: Session = Depends(get_db)):
    """
    Test a hook by sending a sample event.

    Renders the payload template against sample data, sends it to the hook
    endpoint and returns the response status. Nothing is recorded.

    Args:
        hook_id: ID of the hook to test
    """
    hook = HookRegistry(db).get(hook_id)
    if not hook:
        raise HTTPException(status_code=404, detail="Hook not found")

    snapshot = HookResponse.model_validate(hook)
    result = await send_test_event(snapshot, sample_event_data(snapshot.event_type))

    return HookTestResponse(**result)
