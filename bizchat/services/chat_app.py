"""
Chat application service.

Holds the current ``AppState``, applies reducer actions and flushes the four
persisted collections after every change made while a user is logged in.
"""

from typing import Callable, Optional, Tuple

from ..models.core import Attachment, ChatSession, KnowledgeEntry, MasterActivity, Message, ModelTier
from ..models.state import AppState, RequestToken
from ..utils.attachments import attachment_from_path
from ..utils.logging_config import get_logger
from . import reducer
from .activity_log import search_activities
from .persisted_store import PersistedStore
from .response_client import BizResponse, ResponseClient

logger = get_logger(__name__)


class ChatApplication:
    """Single-user chat application over a persisted store and a response client."""

    def __init__(self,
                 store: Optional[PersistedStore] = None,
                 client: Optional[ResponseClient] = None,
                 admin_passphrase: Optional[str] = None):
        """
        Initialize the application and load persisted state.

        Args:
            store: PersistedStore, defaults to the configured file store
            client: ResponseClient, defaults to the configured Gemini client
            admin_passphrase: Overrides the configured admin passphrase
        """
        self.store = store or PersistedStore()
        self.client = client or ResponseClient()
        self.admin_passphrase = admin_passphrase
        self.state = self.store.load().to_state()

        logger.info(f'Initialized ChatApplication (authenticated={self.state.is_authenticated})')

    def _apply(self, action: Callable[..., AppState], *args, **kwargs) -> AppState:
        self.state = action(self.state, *args, **kwargs)
        if self.state.is_authenticated:
            self.store.flush(self.state)
        return self.state

    # Authentication

    def login(self, name: str, employee_id: str) -> AppState:
        self._apply(reducer.login, name, employee_id)
        self.store.save_auth(self.state.user)
        return self.state

    def logout(self) -> AppState:
        self.store.clear()
        self.state = reducer.logout(self.state)
        logger.info('Logged out')
        return self.state

    def elevate_admin(self, passphrase: str) -> AppState:
        return self._apply(reducer.elevate_admin, passphrase, self.admin_passphrase)

    def drop_admin(self) -> AppState:
        return self._apply(reducer.drop_admin)

    # Sessions

    def new_chat(self) -> AppState:
        return self._apply(reducer.new_chat)

    def select_session(self, session_id: str) -> AppState:
        return self._apply(reducer.select_session, session_id)

    def delete_session(self, session_id: str) -> AppState:
        return self._apply(reducer.delete_session, session_id)

    def set_model(self, model: ModelTier) -> AppState:
        return self._apply(reducer.set_model, model)

    def toggle_search(self) -> AppState:
        return self._apply(reducer.toggle_search)

    def stage_attachment(self, attachment: Attachment) -> AppState:
        return self._apply(reducer.stage_attachment, attachment)

    def stage_file(self, path: str) -> AppState:
        return self.stage_attachment(attachment_from_path(path))

    def unstage_attachment(self, index: int) -> AppState:
        return self._apply(reducer.unstage_attachment, index)

    # Requests

    def begin_send(self, text: str) -> Tuple[RequestToken, Tuple[Message, ...]]:
        """Append the user message and mark the request outstanding.

        Returns:
            Tuple of (request token, history to send)
        """
        self.state, token, history = reducer.begin_send(self.state, text)
        try:
            self.store.flush(self.state)
        except Exception:
            self.abort_send(token)
            raise
        return token, tuple(history)

    def complete_send(self, token: RequestToken, response: BizResponse) -> AppState:
        return self._apply(reducer.complete_send, token, response)

    def abort_send(self, token: RequestToken) -> AppState:
        self.state = reducer.abort_send(self.state, token)
        return self.state

    def send_message(self, text: str) -> BizResponse:
        """Send one user turn and wait for the reply.

        Raises:
            RequestInProgressError: If a request is already outstanding
            EmptyMessageError: If there is no text and nothing staged
        """
        token, history = self.begin_send(text)
        try:
            response = self.client.generate(text,
                                            history,
                                            self.state.knowledge,
                                            model=token.model,
                                            use_search=token.used_search)
            self.complete_send(token, response)
        finally:
            # No-op once complete_send has cleared the token
            self.abort_send(token)
        return response

    # Knowledge and logs

    def save_knowledge(self, text: str) -> AppState:
        return self._apply(reducer.save_knowledge, text)

    def delete_knowledge(self, entry_id: str) -> AppState:
        return self._apply(reducer.delete_knowledge, entry_id)

    def clear_user_logs(self) -> AppState:
        return self._apply(reducer.clear_user_logs)

    def clear_activities(self) -> AppState:
        return self._apply(reducer.clear_activities)

    def search_activities(self, needle: str) -> Tuple[MasterActivity, ...]:
        reducer.require_admin(self.state)
        return search_activities(self.state.activities, needle)

    # Views

    @property
    def sessions(self) -> Tuple[ChatSession, ...]:
        return self.state.sessions

    @property
    def knowledge(self) -> Tuple[KnowledgeEntry, ...]:
        return self.state.knowledge

    @property
    def current_session(self) -> Optional[ChatSession]:
        return self.state.current_session
