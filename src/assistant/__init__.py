# Assistant conversation package
from .models import (
    RunStatus, Run, ToolCall, ToolOutput, Message, Session, AssistantInfo, UIAction,
    PENDING_STATUSES, ACTIVE_STATUSES,
)
from .service import RunService, AssistantStore
from .sessions import SessionManager
from .event_log import EventLogger
from .coordinator import RunCoordinator, CoordinatorSettings, serialize_result

__all__ = [
    "RunStatus", "Run", "ToolCall", "ToolOutput", "Message", "Session", "AssistantInfo", "UIAction",
    "PENDING_STATUSES", "ACTIVE_STATUSES",
    "RunService", "AssistantStore",
    "SessionManager",
    "EventLogger",
    "RunCoordinator", "CoordinatorSettings", "serialize_result",
]
