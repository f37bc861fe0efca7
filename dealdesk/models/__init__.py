"""DealDesk models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, CreatedAtMixin, TimestampMixin, OwnerMixin
from .user import User
from .contact import Contact
from .pipeline import Pipeline, PipelineStage
from .deal import Deal
from .activity import Activity
from .task import Task
from .automation import AutomationWorkflow
from .integration import Integration
from .webhook_log import WebhookLog

__all__ = [
    "Base",
    "UUIDMixin",
    "CreatedAtMixin",
    "TimestampMixin",
    "OwnerMixin",
    "User",
    "Contact",
    "Pipeline",
    "PipelineStage",
    "Deal",
    "Activity",
    "Task",
    "AutomationWorkflow",
    "Integration",
    "WebhookLog",
]
