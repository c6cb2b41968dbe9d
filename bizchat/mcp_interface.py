"""
MCP Interface Layer using fastmcp for the chat assistant.
"""
from typing import Any, Dict, List

from fastmcp import FastMCP

from bizchat.errors import BizChatError
from bizchat.models.core import ChatSession, MasterActivity, Message, ModelTier
from bizchat.services.chat_app import ChatApplication
from bizchat.services.renderer import render_html
from bizchat.utils.config import config
from bizchat.utils.health_check import get_health_status
from bizchat.utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('BizChat')
chat_app = ChatApplication()


def message_view(message: Message) -> Dict[str, Any]:
    return {
        'id': message.id,
        'role': message.role.value,
        'content': message.content,
        'html': render_html(message.content),
        'timestamp': message.timestamp,
        'attachments': [a.name for a in message.attachments],
        'links': [link.to_dict() for link in message.grounding_links],
    }


def session_summary(session: ChatSession) -> Dict[str, Any]:
    return {
        'id': session.id,
        'title': session.title,
        'created_at': session.created_at,
        'message_count': len(session.messages)
    }


def activity_view(activity: MasterActivity) -> Dict[str, Any]:
    return activity.to_dict()


def _fail(action: str, e: Exception):
    logger.error(f'{action} failed: {e}')
    raise Exception(f'{action} failed: {e}')


@mcp.tool()
def login(name: str, employee_id: str) -> Dict[str, str]:
    """Log in with a display name and employee ID (each at least 2 characters)."""
    try:
        state = chat_app.login(name, employee_id)
        return {'name': state.user.name, 'employee_id': state.user.employee_id}
    except BizChatError as e:
        _fail('Login', e)


@mcp.tool()
def logout() -> bool:
    """Log out and clear all locally stored data."""
    chat_app.logout()
    return True


@mcp.tool()
def send_message(text: str) -> Dict[str, Any]:
    """Send a message to the current session (a new session is created if none is selected).

    Args:
        text: Message text; staged attachments are sent with it

    Returns:
        The assistant reply with rendered HTML and citation links
    """
    try:
        response = chat_app.send_message(text)
        return {
            'session_id': chat_app.state.current_session_id,
            'text': response.text,
            'html': render_html(response.text),
            'links': [link.to_dict() for link in response.grounding_links],
            'outcome': response.outcome.value
        }
    except BizChatError as e:
        _fail('Send message', e)


@mcp.tool()
def stage_attachment(path: str) -> List[str]:
    """Stage a local file to be sent with the next message. Returns the staged file names."""
    try:
        state = chat_app.stage_file(path)
        return [a.name for a in state.staged_attachments]
    except BizChatError as e:
        _fail('Stage attachment', e)


@mcp.tool()
def unstage_attachment(index: int) -> List[str]:
    """Remove a staged file by its position. Returns the remaining staged file names."""
    try:
        state = chat_app.unstage_attachment(index)
        return [a.name for a in state.staged_attachments]
    except IndexError as e:
        _fail('Unstage attachment', e)


@mcp.tool()
def list_sessions() -> List[Dict[str, Any]]:
    """List chat sessions, newest first."""
    return [session_summary(s) for s in chat_app.sessions]


@mcp.tool()
def get_session(session_id: str) -> Dict[str, Any]:
    """Get one session with its messages."""
    session = chat_app.state.find_session(session_id)
    if session is None:
        raise Exception(f'Session not found: {session_id}')
    return {**session_summary(session), 'messages': [message_view(m) for m in session.messages]}


@mcp.tool()
def select_session(session_id: str) -> Dict[str, Any]:
    """Make a session current."""
    try:
        chat_app.select_session(session_id)
        return session_summary(chat_app.current_session)
    except BizChatError as e:
        _fail('Select session', e)


@mcp.tool()
def new_chat() -> bool:
    """Clear the current selection so the next message starts a new session."""
    chat_app.new_chat()
    return True


@mcp.tool()
def delete_session(session_id: str) -> bool:
    """Delete a session."""
    try:
        chat_app.delete_session(session_id)
        return True
    except BizChatError as e:
        _fail('Delete session', e)


@mcp.tool()
def set_model(model: str) -> str:
    """Select the model tier: 'flash' or 'pro'."""
    try:
        return chat_app.set_model(ModelTier(model)).selected_model.value
    except ValueError as e:
        _fail('Set model', e)


@mcp.tool()
def toggle_search() -> bool:
    """Toggle web-search augmentation. Returns the new setting."""
    return chat_app.toggle_search().use_search


@mcp.tool()
def elevate_admin(passphrase: str) -> bool:
    """Enter admin mode."""
    try:
        return chat_app.elevate_admin(passphrase).is_admin
    except BizChatError as e:
        _fail('Admin elevation', e)


@mcp.tool()
def drop_admin() -> bool:
    """Leave admin mode. Returns the new admin flag."""
    return chat_app.drop_admin().is_admin


@mcp.tool()
def list_knowledge() -> List[Dict[str, Any]]:
    """List knowledge base entries in the order they are sent to the model."""
    return [dict(entry.to_dict(), user_entry=entry.is_user_entry) for entry in chat_app.knowledge]


@mcp.tool()
def save_knowledge(text: str) -> str:
    """Add a knowledge entry (admin). Returns the new entry ID."""
    try:
        return chat_app.save_knowledge(text).knowledge[0].id
    except BizChatError as e:
        _fail('Save knowledge', e)


@mcp.tool()
def delete_knowledge(entry_id: str) -> bool:
    """Delete a user-added knowledge entry (admin)."""
    try:
        chat_app.delete_knowledge(entry_id)
        return True
    except BizChatError as e:
        _fail('Delete knowledge', e)


@mcp.tool()
def search_activities(query: str = '') -> List[Dict[str, Any]]:
    """Search the master activity log by user name, employee ID or query text (admin)."""
    try:
        return [activity_view(a) for a in chat_app.search_activities(query)]
    except BizChatError as e:
        _fail('Activity search', e)


@mcp.tool()
def clear_activities() -> bool:
    """Clear the master activity log (admin)."""
    try:
        chat_app.clear_activities()
        return True
    except BizChatError as e:
        _fail('Clear activities', e)


@mcp.tool()
def clear_user_logs() -> bool:
    """Clear the login log (admin)."""
    try:
        chat_app.clear_user_logs()
        return True
    except BizChatError as e:
        _fail('Clear user logs', e)


@mcp.tool()
def health() -> Dict[str, Any]:
    """Report component health."""
    return get_health_status(chat_app.store)


if __name__ == '__main__':
    transport = config.mcp.transport
    host = config.mcp.host
    port = config.mcp.port
    mcp.run(transport=transport, host=host, port=port)
