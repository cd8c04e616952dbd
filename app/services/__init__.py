"""Business logic services."""

from .agent_registry import AgentRegistryService
from .claim import ClaimService
from .lifecycle import LifecycleService
from .notifications import NotificationService
from .requirement import RequirementService
from .task import TaskService
from .time_ledger import TimeLedgerService

__all__ = [
    "AgentRegistryService",
    "ClaimService",
    "LifecycleService",
    "NotificationService",
    "RequirementService",
    "TaskService",
    "TimeLedgerService",
]
