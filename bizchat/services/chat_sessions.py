"""
Chat session collection operations.

Sessions are kept newest first. Functions take and return tuples; nothing is
modified in place.
"""

from typing import Optional, Sequence, Tuple

from ..errors import BizChatError
from ..models.core import Attachment, ChatSession, Message
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import new_id, now_millis

logger = get_logger(__name__)

DEFAULT_TITLE = 'New chat'


class SessionNotFoundError(BizChatError):
    """Raised when a session id does not exist."""
    pass


def derive_title(text: str, attachments: Sequence[Attachment] = (), length: Optional[int] = None) -> str:
    """Short title from the first message: its leading characters, else the first attachment name."""
    length = length or config.limits.title_length
    title = text.strip()[:length].strip()
    if title:
        return title
    if attachments:
        return attachments[0].name[:length]
    return DEFAULT_TITLE


def create_session(first_text: str,
                   attachments: Sequence[Attachment] = (),
                   timestamp: Optional[int] = None) -> ChatSession:
    """Allocate a new, empty session titled after its first message."""
    timestamp = timestamp if timestamp is not None else now_millis()
    session = ChatSession(id=new_id(timestamp=timestamp),
                          title=derive_title(first_text, attachments),
                          created_at=timestamp)
    logger.debug(f'Created session {session.id} ({session.title!r})')
    return session


def append_message(sessions: Tuple[ChatSession, ...], session_id: str, message: Message) -> Tuple[ChatSession, ...]:
    """Append a message to one session, keeping collection order.

    Raises:
        SessionNotFoundError: If no session has the id
    """
    found = False
    updated = []
    for session in sessions:
        if session.id == session_id:
            if any(m.id == message.id for m in session.messages):
                raise ValueError(f'Message {message.id} already exists in session {session_id}')
            session = session.with_message(message)
            found = True
        updated.append(session)

    if not found:
        raise SessionNotFoundError(f'Session not found: {session_id}')
    return tuple(updated)


def add_session(sessions: Tuple[ChatSession, ...], session: ChatSession) -> Tuple[ChatSession, ...]:
    return (session, ) + sessions


def require_session(sessions: Sequence[ChatSession], session_id: str) -> ChatSession:
    for session in sessions:
        if session.id == session_id:
            return session
    raise SessionNotFoundError(f'Session not found: {session_id}')


def delete_session(sessions: Tuple[ChatSession, ...], session_id: str) -> Tuple[ChatSession, ...]:
    """Remove a session.

    Raises:
        SessionNotFoundError: If no session has the id
    """
    require_session(sessions, session_id)
    logger.debug(f'Deleting session {session_id}')
    return tuple(s for s in sessions if s.id != session_id)
