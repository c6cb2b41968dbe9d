"""
State update functions, one per user action.

Every function takes an ``AppState`` and returns a new one. Validation
failures raise before anything changes, so callers keep the old state.
"""

from dataclasses import replace
from typing import Optional, Sequence, Tuple

from ..errors import BizChatError, NotAuthenticatedError, PermissionDeniedError
from ..models.core import Attachment, Message, ModelTier, Role
from ..models.state import AppState, RequestToken
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import new_id, now_millis
from . import activity_log, chat_sessions, knowledge_base
from .auth import check_admin_passphrase, validate_login
from .response_client import BizResponse

logger = get_logger(__name__)


class RequestInProgressError(BizChatError):
    """Raised when a message is sent while another request is outstanding."""
    pass


class EmptyMessageError(BizChatError):
    """Raised when a message has neither text nor attachments."""
    pass


def require_user(state: AppState) -> None:
    if not state.is_authenticated:
        raise NotAuthenticatedError('Login required')


def require_admin(state: AppState) -> None:
    require_user(state)
    if not state.is_admin:
        raise PermissionDeniedError('Admin mode required')


def initial_state() -> AppState:
    return AppState(knowledge=knowledge_base.merge_with_seed(()))


# Authentication


def login(state: AppState, name: str, employee_id: str, timestamp: Optional[int] = None) -> AppState:
    user = validate_login(name, employee_id)
    logger.info(f'Login: {user.employee_id}')
    return replace(state,
                   user=user,
                   user_logs=activity_log.record_login(state.user_logs, user.name, user.employee_id, timestamp))


def logout(state: AppState) -> AppState:
    """Back to a fresh state, as after clearing storage."""
    return initial_state()


def elevate_admin(state: AppState, passphrase: str, expected: Optional[str] = None) -> AppState:
    require_user(state)
    check_admin_passphrase(passphrase, expected)
    logger.info(f'Admin mode enabled for {state.user.employee_id}')
    return replace(state, is_admin=True)


def drop_admin(state: AppState) -> AppState:
    return replace(state, is_admin=False)


# Sessions


def new_chat(state: AppState) -> AppState:
    return replace(state, current_session_id=None)


def select_session(state: AppState, session_id: str) -> AppState:
    chat_sessions.require_session(state.sessions, session_id)
    return replace(state, current_session_id=session_id)


def delete_session(state: AppState, session_id: str) -> AppState:
    sessions = chat_sessions.delete_session(state.sessions, session_id)
    current = None if state.current_session_id == session_id else state.current_session_id
    return replace(state, sessions=sessions, current_session_id=current)


def set_model(state: AppState, model: ModelTier) -> AppState:
    return replace(state, selected_model=ModelTier(model))


def toggle_search(state: AppState) -> AppState:
    return replace(state, use_search=not state.use_search)


# Attachments


def stage_attachment(state: AppState, attachment: Attachment) -> AppState:
    return replace(state, staged_attachments=state.staged_attachments + (attachment, ))


def unstage_attachment(state: AppState, index: int) -> AppState:
    if not 0 <= index < len(state.staged_attachments):
        raise IndexError(f'No staged attachment at position {index}')
    staged = state.staged_attachments[:index] + state.staged_attachments[index + 1:]
    return replace(state, staged_attachments=staged)


# Requests


def begin_send(state: AppState,
               text: str,
               timestamp: Optional[int] = None) -> Tuple[AppState, RequestToken, Sequence[Message]]:
    """Append the user message and mark a request outstanding.

    Creates a session when none is selected. Staged attachments go with the
    message and are cleared.

    Returns:
        Tuple of (new state, request token, session history to send)

    Raises:
        RequestInProgressError: If a request is already outstanding
        EmptyMessageError: If there is no text and nothing staged
    """
    require_user(state)
    if state.is_loading:
        raise RequestInProgressError('A request is already in progress')

    attachments = state.staged_attachments
    if not text.strip() and not attachments:
        raise EmptyMessageError('Nothing to send')

    timestamp = timestamp if timestamp is not None else now_millis()
    sessions = state.sessions
    session = state.current_session
    if session is None:
        session = chat_sessions.create_session(text, attachments, timestamp)
        sessions = chat_sessions.add_session(sessions, session)

    user_message = Message(id=new_id(timestamp=timestamp),
                           role=Role.USER,
                           content=text,
                           timestamp=timestamp,
                           attachments=attachments)
    sessions = chat_sessions.append_message(sessions, session.id, user_message)

    token = RequestToken(id=new_id('req_', timestamp),
                         session_id=session.id,
                         query=text,
                         model=state.selected_model,
                         used_search=state.use_search)

    new_state = replace(state,
                        sessions=sessions,
                        current_session_id=session.id,
                        pending=token,
                        staged_attachments=())
    history = chat_sessions.require_session(sessions, session.id).messages
    return new_state, token, history


def complete_send(state: AppState,
                  token: RequestToken,
                  response: BizResponse,
                  timestamp: Optional[int] = None) -> AppState:
    """Apply a reply to the session the request came from.

    A token that is no longer the pending one is ignored. If its session was
    deleted meanwhile, the reply is not stored but the activity is recorded.
    """
    if state.pending != token:
        logger.warning(f'Discarding reply for stale request {token.id}')
        return state

    timestamp = timestamp if timestamp is not None else now_millis()
    sessions = state.sessions
    if state.find_session(token.session_id) is not None:
        assistant_message = Message(id=new_id(timestamp=timestamp),
                                    role=Role.ASSISTANT,
                                    content=response.text,
                                    timestamp=timestamp,
                                    grounding_links=response.grounding_links)
        sessions = chat_sessions.append_message(sessions, token.session_id, assistant_message)
    else:
        logger.warning(f'Session {token.session_id} was deleted before its reply arrived')

    activities = activity_log.record_activity(state.activities,
                                              user_name=state.user.name,
                                              employee_id=state.user.employee_id,
                                              query=token.query,
                                              response=response.text,
                                              used_search=token.used_search,
                                              timestamp=timestamp)
    return replace(state, sessions=sessions, activities=activities, pending=None)


def abort_send(state: AppState, token: RequestToken) -> AppState:
    """Release a pending request that will never complete. The user message is kept."""
    if state.pending != token:
        return state
    logger.warning(f'Abandoning request {token.id}')
    return replace(state, pending=None)


# Knowledge base and logs (admin)


def save_knowledge(state: AppState, text: str, timestamp: Optional[int] = None) -> AppState:
    require_admin(state)
    return replace(state, knowledge=knowledge_base.add_entry(state.knowledge, text, timestamp))


def delete_knowledge(state: AppState, entry_id: str) -> AppState:
    require_admin(state)
    return replace(state, knowledge=knowledge_base.delete_entry(state.knowledge, entry_id))


def clear_user_logs(state: AppState) -> AppState:
    require_admin(state)
    return replace(state, user_logs=())


def clear_activities(state: AppState) -> AppState:
    require_admin(state)
    return replace(state, activities=())
