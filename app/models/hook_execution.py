"""Hook execution model: one row per delivery attempt."""
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base

PENDING = "pending"
SUCCESS = "success"
FAILED = "failed"
RETRYING = "retrying"

EXECUTION_STATUSES = [PENDING, SUCCESS, FAILED, RETRYING]


class HookExecution(Base):
    """Audit row for one delivery attempt of one hook."""

    __tablename__ = "cms_hook_executions"

    id = Column(Integer, primary_key=True, index=True)
    hook_id = Column(
        Integer, ForeignKey("cms_hooks.id", ondelete="CASCADE"), nullable=False
    )
    event_type = Column(String(100), nullable=False)
    chain_id = Column(String(36), nullable=False)
    parent_execution_id = Column(Integer, nullable=True)
    event_data = Column(JSON, nullable=False, default=dict)
    status = Column(
        String(20), nullable=False, default=PENDING
    )  # pending, success, failed, retrying
    response_status = Column(Integer, nullable=True)
    response_body = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    execution_time_ms = Column(Integer, nullable=True)
    retry_attempt = Column(Integer, default=0, nullable=False)
    next_retry_at = Column(DateTime, nullable=True)
    executed_at = Column(DateTime, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)

    hook = relationship("Hook", back_populates="executions")

    __table_args__ = (
        CheckConstraint(
            "status IN (" + ", ".join(f"'{status}'" for status in EXECUTION_STATUSES) + ")",
            name="ck_cms_hook_executions_status",
        ),
        Index("idx_cms_hook_executions_hook", "hook_id", "executed_at"),
        Index("idx_cms_hook_executions_due", "status", "next_retry_at"),
    )

    def __repr__(self):
        return (
            f"<HookExecution(id={self.id}, hook_id={self.hook_id}, "
            f"status='{self.status}', retry_attempt={self.retry_attempt})>"
        )
