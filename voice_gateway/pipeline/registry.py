"""Registry of live sessions, keyed by session id and by call id."""

from typing import Optional

import structlog

from voice_gateway.models import SessionState
from voice_gateway.pipeline.session import Session

logger = structlog.get_logger()


class SessionRegistry:
    """Tracks live sessions. Entries are removed when their session closes."""

    def __init__(self) -> None:
        self.sessions: dict[str, Session] = {}
        self._by_call_id: dict[str, str] = {}
        self.logger = logger.bind(component="session_registry")

    def register(self, session: Session) -> None:
        self.sessions[session.id] = session
        self.logger.info(
            "Session registered",
            session_id=session.id,
            total_sessions=len(self.sessions),
        )

    def bind_call_id(self, session: Session) -> None:
        """Index a session by its call id once the stream has started."""
        if not session.call_id or session.id not in self.sessions:
            return
        existing = self._by_call_id.get(session.call_id)
        if existing and existing != session.id:
            self.logger.warning(
                "Call id already bound to another session",
                call_id=session.call_id,
                existing_session_id=existing,
            )
        self._by_call_id[session.call_id] = session.id

    def unregister(self, session: Session) -> None:
        self.sessions.pop(session.id, None)
        if session.call_id and self._by_call_id.get(session.call_id) == session.id:
            del self._by_call_id[session.call_id]
        self.logger.info(
            "Session unregistered",
            session_id=session.id,
            total_sessions=len(self.sessions),
        )

    def get(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def get_by_call_id(self, call_id: str) -> Optional[Session]:
        session_id = self._by_call_id.get(call_id)
        return self.sessions.get(session_id) if session_id else None

    def get_active_sessions(self) -> list[Session]:
        return [s for s in self.sessions.values() if s.state == SessionState.ACTIVE]

    def __len__(self) -> int:
        return len(self.sessions)

    async def close_all(self) -> None:
        """Close every registered session."""
        for session in list(self.sessions.values()):
            await session.close(reason="shutdown")
            self.unregister(session)
