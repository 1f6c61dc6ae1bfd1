"""Hook registry: CRUD access to hook definitions."""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.hook import Hook
from app.models.hook_execution import HookExecution
from app.schemas.hook import HookCreate, HookUpdate

settings = get_settings()
logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """The backing store rejected a read or write."""


class HookRegistry:
    """Reads and writes hook definitions through a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, hook_in: HookCreate) -> Hook:
        """
        Insert a new hook.

        Args:
            hook_in: Validated hook definition

        Returns:
            The persisted hook

        Raises:
            PersistenceError: If the database rejects the write
        """
        hook = Hook(**hook_in.model_dump())
        self.db.add(hook)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating hook '{hook_in.name}': {e}")
            raise PersistenceError(f"Could not create hook: {e}") from e

        self.db.refresh(hook)
        logger.info(f"Created hook {hook.id} for event '{hook.event_type}'")
        return hook

    def list(self) -> List[Hook]:
        """All hooks, newest first."""
        return self.db.query(Hook).order_by(Hook.created_at.desc(), Hook.id.desc()).all()

    def get(self, hook_id: int) -> Optional[Hook]:
        return self.db.query(Hook).filter(Hook.id == hook_id).first()

    def update(self, hook_id: int, changes: HookUpdate) -> Optional[Hook]:
        """
        Apply a partial update. Only provided fields are changed.

        Returns:
            The updated hook, or None if it does not exist

        Raises:
            PersistenceError: If the database rejects the write
        """
        hook = self.get(hook_id)
        if not hook:
            return None

        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(hook, field, value)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating hook {hook_id}: {e}")
            raise PersistenceError(f"Could not update hook {hook_id}: {e}") from e

        self.db.refresh(hook)
        return hook

    def delete(self, hook_id: int) -> bool:
        hook = self.get(hook_id)
        if not hook:
            return False

        self.db.delete(hook)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Could not delete hook {hook_id}: {e}") from e

        logger.info(f"Deleted hook {hook_id}")
        return True

    def list_active_for_event(self, event_type: str) -> List[Hook]:
        """Active hooks subscribed to ``event_type``; the only read path used for dispatch."""
        return (
            self.db.query(Hook)
            .filter(Hook.event_type == event_type, Hook.is_active == True)  # noqa: E712
            .order_by(Hook.id)
            .all()
        )

    def get_executions(self, hook_id: int) -> List[HookExecution]:
        """Most recent execution records for a hook."""
        return (
            self.db.query(HookExecution)
            .filter(HookExecution.hook_id == hook_id)
            .order_by(HookExecution.executed_at.desc(), HookExecution.id.desc())
            .limit(settings.execution_history_limit)
            .all()
        )
