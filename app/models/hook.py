"""Hook model for event subscriptions."""
from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class Hook(Base):
    """A subscription binding an event type to an outbound HTTP call."""

    __tablename__ = "cms_hooks"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    event_type = Column(String(100), nullable=False)
    endpoint_url = Column(String(2048), nullable=True)
    http_method = Column(String(10), nullable=False, default="POST")
    headers = Column(JSON, nullable=False, default=dict)
    payload_template = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)
    retry_count = Column(Integer, default=3, nullable=False)
    timeout_seconds = Column(Float, default=30.0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    executions = relationship(
        "HookExecution",
        back_populates="hook",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("retry_count >= 0", name="ck_cms_hooks_retry_count"),
        CheckConstraint("timeout_seconds > 0", name="ck_cms_hooks_timeout_seconds"),
        CheckConstraint("event_type <> ''", name="ck_cms_hooks_event_type"),
        Index("idx_cms_hooks_event_active", "event_type", "is_active"),
    )

    def __repr__(self):
        return f"<Hook(id={self.id}, event_type='{self.event_type}', name='{self.name}')>"
