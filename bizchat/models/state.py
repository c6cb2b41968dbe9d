"""
Application state snapshot.

``AppState`` is never mutated; reducers in ``services.reducer`` return a new
value for every action.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .core import Attachment, ChatSession, KnowledgeEntry, MasterActivity, ModelTier, UserLog


@dataclass(frozen=True)
class UserIdentity:
    """The logged-in employee."""
    name: str
    employee_id: str


@dataclass(frozen=True)
class RequestToken:
    """Marks the single outstanding model request and the session it belongs to."""
    id: str
    session_id: str
    query: str
    model: ModelTier
    used_search: bool


@dataclass(frozen=True)
class AppState:
    user: Optional[UserIdentity] = None
    sessions: Tuple[ChatSession, ...] = ()
    knowledge: Tuple[KnowledgeEntry, ...] = ()
    user_logs: Tuple[UserLog, ...] = ()
    activities: Tuple[MasterActivity, ...] = ()
    current_session_id: Optional[str] = None
    pending: Optional[RequestToken] = None
    staged_attachments: Tuple[Attachment, ...] = ()
    selected_model: ModelTier = ModelTier.FLASH
    use_search: bool = False
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_loading(self) -> bool:
        return self.pending is not None

    @property
    def current_session(self) -> Optional[ChatSession]:
        return self.find_session(self.current_session_id)

    def find_session(self, session_id: Optional[str]) -> Optional[ChatSession]:
        if session_id is None:
            return None
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None
