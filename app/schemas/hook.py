"""Hook request and response schemas."""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, JsonValue, field_validator

from app.config import get_settings

settings = get_settings()

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class HookBase(BaseModel):
    """Base hook schema."""

    name: str = Field(..., min_length=1, max_length=255)
    event_type: str = Field(..., min_length=1, max_length=100)
    endpoint_url: Optional[str] = Field(None, min_length=1, max_length=2048)
    http_method: HttpMethod = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    payload_template: JsonValue = Field(default_factory=dict)
    is_active: bool = True
    retry_count: int = Field(3, ge=0)
    timeout_seconds: float = Field(settings.default_timeout_seconds, gt=0)


class HookCreate(HookBase):
    """Schema for creating a hook."""

    pass


class HookUpdate(BaseModel):
    """Schema for updating a hook (all fields optional)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    event_type: Optional[str] = Field(None, min_length=1, max_length=100)
    endpoint_url: Optional[str] = Field(None, min_length=1, max_length=2048)
    http_method: Optional[HttpMethod] = None
    headers: Optional[Dict[str, str]] = None
    payload_template: Optional[JsonValue] = None
    is_active: Optional[bool] = None
    retry_count: Optional[int] = Field(None, ge=0)
    timeout_seconds: Optional[float] = Field(None, gt=0)

    @field_validator(
        "name",
        "event_type",
        "http_method",
        "headers",
        "is_active",
        "retry_count",
        "timeout_seconds",
    )
    @classmethod
    def reject_null(cls, value):
        """Only endpoint_url and payload_template may be cleared."""
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class HookResponse(HookBase):
    """Schema for hook responses; also the immutable snapshot used during dispatch."""

    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class HookExecutionResponse(BaseModel):
    """Schema for execution history entries."""

    id: int
    hook_id: int
    event_type: str
    chain_id: str
    parent_execution_id: Optional[int] = None
    event_data: Dict[str, Any]
    status: str
    response_status: Optional[int] = None
    response_body: Optional[str] = None
    error_message: Optional[str] = None
    execution_time_ms: Optional[int] = None
    retry_attempt: int
    next_retry_at: Optional[datetime] = None
    executed_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HookTestResponse(BaseModel):
    """Response from a hook test delivery."""

    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    response_time: Optional[float] = None


class EventTriggerRequest(BaseModel):
    """Request to dispatch a domain event to its hooks."""

    event_type: str = Field(..., min_length=1, max_length=100)
    data: Dict[str, Any] = Field(default_factory=dict)


class EventTriggerResponse(BaseModel):
    """Response after handing an event to the task queue."""

    event_type: str
    queued: bool
