"""Task status state machine.

Every status change goes through ``next_status``. Handlers never compare
status strings on their own.
"""

from enum import Enum

from app.core.errors import InvalidStateError
from app.models import TaskStatus


class TaskOperation(str, Enum):
    """Operations that move a task between statuses."""

    CLAIM = "claim"
    COMPLETE = "complete"
    LOG = "log"
    # Human review transitions
    SHIP = "ship"
    REOPEN = "reopen"
    PARK = "park"
    RESTORE = "restore"
    RESUME = "resume"


TRANSITIONS: dict[tuple[TaskStatus, TaskOperation], TaskStatus] = {
    (TaskStatus.BACKLOG, TaskOperation.CLAIM): TaskStatus.ACTIVE,
    (TaskStatus.ACTIVE, TaskOperation.CLAIM): TaskStatus.ACTIVE,
    (TaskStatus.REVIEW, TaskOperation.CLAIM): TaskStatus.ACTIVE,
    (TaskStatus.BACKLOG, TaskOperation.COMPLETE): TaskStatus.REVIEW,
    (TaskStatus.ACTIVE, TaskOperation.COMPLETE): TaskStatus.REVIEW,
    # Logging work leaves the status alone
    (TaskStatus.BACKLOG, TaskOperation.LOG): TaskStatus.BACKLOG,
    (TaskStatus.ACTIVE, TaskOperation.LOG): TaskStatus.ACTIVE,
    (TaskStatus.REVIEW, TaskOperation.LOG): TaskStatus.REVIEW,
    (TaskStatus.REVIEW, TaskOperation.SHIP): TaskStatus.SHIPPED,
    (TaskStatus.SHIPPED, TaskOperation.REOPEN): TaskStatus.REVIEW,
    (TaskStatus.BACKLOG, TaskOperation.PARK): TaskStatus.ICEBOX,
    (TaskStatus.ACTIVE, TaskOperation.PARK): TaskStatus.ICEBOX,
    (TaskStatus.REVIEW, TaskOperation.PARK): TaskStatus.ICEBOX,
    (TaskStatus.ACTIVE, TaskOperation.RESTORE): TaskStatus.BACKLOG,
    (TaskStatus.REVIEW, TaskOperation.RESTORE): TaskStatus.BACKLOG,
    (TaskStatus.ICEBOX, TaskOperation.RESTORE): TaskStatus.BACKLOG,
    (TaskStatus.REVIEW, TaskOperation.RESUME): TaskStatus.ACTIVE,
}

# Target status requested by a reviewer -> operation that reaches it
OPERATION_FOR_TARGET: dict[TaskStatus, TaskOperation] = {
    TaskStatus.SHIPPED: TaskOperation.SHIP,
    TaskStatus.REVIEW: TaskOperation.REOPEN,
    TaskStatus.ICEBOX: TaskOperation.PARK,
    TaskStatus.BACKLOG: TaskOperation.RESTORE,
    TaskStatus.ACTIVE: TaskOperation.RESUME,
}

# Statuses in which a task can never be claimed, however it got there
UNCLAIMABLE_STATUSES = frozenset({TaskStatus.SHIPPED, TaskStatus.ICEBOX})

# Statuses that release any agent claim when entered
UNOWNED_STATUSES = frozenset({TaskStatus.BACKLOG, TaskStatus.ICEBOX})


def sources_for(operation: TaskOperation) -> list[TaskStatus]:
    """Statuses from which ``operation`` is allowed."""
    return [status for (status, op) in TRANSITIONS if op == operation]


def can_apply(current: TaskStatus | str, operation: TaskOperation) -> bool:
    return (TaskStatus(current), operation) in TRANSITIONS


def next_status(current: TaskStatus | str, operation: TaskOperation) -> TaskStatus:
    """Return the status ``operation`` moves a task to.

    Raises:
        InvalidStateError: If the operation is not allowed from ``current``
    """
    current = TaskStatus(current)
    try:
        return TRANSITIONS[(current, operation)]
    except KeyError:
        raise InvalidStateError(
            _rejection_message(current, operation),
            current_status=current.value,
        ) from None


def _rejection_message(current: TaskStatus, operation: TaskOperation) -> str:
    if operation == TaskOperation.CLAIM:
        return f"Task cannot be claimed - status is {current.value}"
    if operation == TaskOperation.COMPLETE:
        if current in (TaskStatus.REVIEW, TaskStatus.SHIPPED):
            label = "in review" if current == TaskStatus.REVIEW else "shipped"
            return f"Task is already {label}"
        return f"Task cannot be completed - status is {current.value}"
    if operation == TaskOperation.LOG:
        return f"Cannot log work on task with status {current.value}"
    return f"Cannot {operation.value} task with status {current.value}"
