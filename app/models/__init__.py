"""Database models."""
from app.models.hook import Hook
from app.models.hook_execution import HookExecution

__all__ = ["Hook", "HookExecution"]
