"""Execution record store: audit log of hook delivery attempts.

All writes are best-effort. A database error is logged and rolled back,
and the caller gets ``None``/``False`` so delivery can carry on.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.hook_execution import FAILED, PENDING, RETRYING, HookExecution

settings = get_settings()
logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ExecutionStore:
    """Creates and transitions HookExecution rows."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, execution_id: int) -> Optional[HookExecution]:
        return self.db.query(HookExecution).filter(HookExecution.id == execution_id).first()

    def create_pending(
        self,
        hook_id: int,
        event_type: str,
        event_data: Dict[str, Any],
        retry_attempt: int = 0,
        chain_id: Optional[str] = None,
    ) -> Optional[HookExecution]:
        """
        Record a new attempt in ``pending`` state.

        Args:
            hook_id: Hook being executed
            event_type: Event that triggered the chain
            event_data: Raw event payload, stored verbatim
            retry_attempt: 0 for the first attempt
            chain_id: Attempt chain identifier; a new one is generated when omitted

        Returns:
            The persisted record, or None if the write failed
        """
        record = HookExecution(
            hook_id=hook_id,
            event_type=event_type,
            chain_id=chain_id or str(uuid.uuid4()),
            event_data=event_data,
            status=PENDING,
            retry_attempt=retry_attempt,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record pending execution for hook {hook_id}: {e}")
            return None

        self.db.refresh(record)
        return record

    def mark_completed(
        self,
        execution_id: int,
        status: str,
        response_status: Optional[int] = None,
        response_body: Optional[str] = None,
        execution_time_ms: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """Store the outcome of an attempt (``success`` or ``failed``)."""
        if response_body is not None:
            response_body = response_body[: settings.response_body_max_length]

        try:
            record = self.get(execution_id)
            if not record:
                logger.warning(f"Execution {execution_id} vanished before its outcome was stored")
                return False

            record.status = status
            record.response_status = response_status
            record.response_body = response_body
            record.execution_time_ms = execution_time_ms
            record.error_message = error_message
            record.completed_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store outcome of execution {execution_id}: {e}")
            return False
        return True

    def mark_retrying(
        self, execution_id: int, retry_attempt: int, next_retry_at: datetime
    ) -> bool:
        """Flag a failed attempt for a follow-up attempt due at ``next_retry_at``."""
        try:
            record = self.get(execution_id)
            if not record:
                return False

            record.status = RETRYING
            record.retry_attempt = retry_attempt
            record.next_retry_at = next_retry_at
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark execution {execution_id} as retrying: {e}")
            return False
        return True

    def claim_retry(self, execution_id: int, now: datetime) -> Optional[HookExecution]:
        """
        Claim a due retry and insert the attempt that follows it.

        The retrying row goes back to ``failed`` through a conditional UPDATE,
        so only one caller can ever win the claim. The new ``pending`` row is
        inserted in the same transaction.

        Returns:
            The new pending record, or None if the retry was not claimable
        """
        try:
            result = self.db.execute(
                update(HookExecution)
                .where(
                    HookExecution.id == execution_id,
                    HookExecution.status == RETRYING,
                    HookExecution.next_retry_at <= now,
                )
                .values(status=FAILED, next_retry_at=None)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return None

            previous = self.get(execution_id)
            record = HookExecution(
                hook_id=previous.hook_id,
                event_type=previous.event_type,
                chain_id=previous.chain_id,
                parent_execution_id=previous.id,
                event_data=previous.event_data,
                status=PENDING,
                retry_attempt=previous.retry_attempt,
            )
            self.db.add(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to claim retry of execution {execution_id}: {e}")
            return None

        self.db.refresh(record)
        return record

    def abandon_retry(self, execution_id: int, reason: str) -> bool:
        """Give up on a pending retry; the record becomes terminally ``failed``."""
        try:
            result = self.db.execute(
                update(HookExecution)
                .where(HookExecution.id == execution_id, HookExecution.status == RETRYING)
                .values(status=FAILED, next_retry_at=None, error_message=reason)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to abandon retry of execution {execution_id}: {e}")
            return False
        return result.rowcount == 1

    def list_due_retries(self, now: datetime, limit: int) -> List[int]:
        """Ids of retrying records whose follow-up attempt is due."""
        rows = (
            self.db.query(HookExecution.id)
            .filter(
                HookExecution.status == RETRYING,
                HookExecution.next_retry_at <= now,
            )
            .order_by(HookExecution.next_retry_at, HookExecution.id)
            .limit(limit)
            .all()
        )
        return [row.id for row in rows]
