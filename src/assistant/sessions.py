"""Session Manager - one conversation thread per session id.

Threads are created lazily on the first reference to a session id and are
never re-created or destroyed for the lifetime of the process.
"""

from __future__ import annotations

import logging
import threading
import uuid

from .models import Session
from .service import RunService

logger = logging.getLogger(__name__)


class SessionManager:
    """Maps opaque session ids to thread ids."""

    def __init__(self, run_service: RunService) -> None:
        self._run_service = run_service
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_session_id() -> str:
        return str(uuid.uuid4())

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> Session:
        """Return the session's binding, creating its thread if needed.

        The lock is held across thread creation so two callers racing on
        a new session id cannot both create a thread.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                thread_id = self._run_service.create_thread()
                session = Session(session_id=session_id, thread_id=thread_id)
                self._sessions[session_id] = session
                logger.info("Session %s bound to thread %s", session_id, thread_id)
            return session

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
