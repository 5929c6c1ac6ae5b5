"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from app.infrastructure.
"""

from app.application.interfaces.repositories import (
    IGroupMemberLookup,
    ITaskHistoryRepository,
    ITaskRepository,
    ITaskStore,
    ITaskUnitOfWork,
)
from app.application.interfaces.services import ITaskNotifier, IWorkflowSignaler

__all__ = [
    "IGroupMemberLookup",
    "ITaskHistoryRepository",
    "ITaskNotifier",
    "ITaskRepository",
    "ITaskStore",
    "ITaskUnitOfWork",
    "IWorkflowSignaler",
]
