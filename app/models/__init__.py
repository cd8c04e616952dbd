"""Database models."""

from .agent import Agent, AgentStatus
from .notification import NotificationEvent, NotificationOutbox, NotificationStatus
from .project import Client, Project
from .requirement import RequirementDoc, RequirementStatus
from .task import PRIORITY_RANK, Task, TaskPriority, TaskStatus, WorkType
from .time_entry import TimeEntry, TimeEntryType

__all__ = [
    "PRIORITY_RANK",
    "Agent",
    "AgentStatus",
    "Client",
    "NotificationEvent",
    "NotificationOutbox",
    "NotificationStatus",
    "Project",
    "RequirementDoc",
    "RequirementStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TimeEntry",
    "TimeEntryType",
    "WorkType",
]
