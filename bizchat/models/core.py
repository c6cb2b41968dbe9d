"""
Core data models for chat sessions, knowledge entries and activity logs.

Records are immutable. Each serializes with ``to_dict`` and is rebuilt with
``from_dict``, which raises ``KeyError``/``ValueError``/``TypeError`` on
malformed input.
"""

import base64
import binascii
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Tuple

from ..errors import BizChatError

USER_ENTRY_PREFIX = 'user_'


class AttachmentError(BizChatError):
    """Raised for attachments whose payload is not valid base64 or cannot be read."""
    pass


class Role(str, Enum):
    USER = 'user'
    ASSISTANT = 'assistant'
    SYSTEM = 'system'


class ModelTier(str, Enum):
    """Model selector. Resolved to a concrete Gemini model id by the response client."""
    FLASH = 'flash'
    PRO = 'pro'


@dataclass(frozen=True)
class Attachment:
    """A file attached to a user message, carried as base64 text."""
    name: str
    mime_type: str
    data: str

    def __post_init__(self):
        try:
            base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AttachmentError(f'Attachment {self.name!r} is not valid base64: {e}')

    def decoded(self) -> bytes:
        return base64.b64decode(self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'mime_type': self.mime_type, 'data': self.data}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Attachment':
        return cls(name=str(data['name']), mime_type=str(data['mime_type']), data=str(data['data']))


@dataclass(frozen=True)
class GroundingLink:
    """Source returned by the provider when search augmentation is enabled."""
    uri: str
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {'uri': self.uri, 'title': self.title}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GroundingLink':
        return cls(uri=str(data['uri']), title=str(data.get('title') or data['uri']))


@dataclass(frozen=True)
class Message:
    """One turn of a conversation. Role is fixed at creation."""
    id: str
    role: Role
    content: str
    timestamp: int  # epoch milliseconds
    attachments: Tuple[Attachment, ...] = ()
    grounding_links: Tuple[GroundingLink, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'role': self.role.value,
            'content': self.content,
            'timestamp': self.timestamp,
            'attachments': [a.to_dict() for a in self.attachments],
            'grounding_links': [g.to_dict() for g in self.grounding_links],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        return cls(id=str(data['id']),
                   role=Role(data['role']),
                   content=str(data['content']),
                   timestamp=int(data['timestamp']),
                   attachments=tuple(Attachment.from_dict(a) for a in data.get('attachments') or []),
                   grounding_links=tuple(GroundingLink.from_dict(g) for g in data.get('grounding_links') or []))


@dataclass(frozen=True)
class ChatSession:
    """An ordered conversation thread. Messages are append-only."""
    id: str
    title: str
    created_at: int
    messages: Tuple[Message, ...] = field(default=())

    def with_message(self, message: Message) -> 'ChatSession':
        return replace(self, messages=self.messages + (message, ))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'created_at': self.created_at,
            'messages': [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChatSession':
        return cls(id=str(data['id']),
                   title=str(data['title']),
                   created_at=int(data['created_at']),
                   messages=tuple(Message.from_dict(m) for m in data.get('messages') or []))


@dataclass(frozen=True)
class KnowledgeEntry:
    """A snippet injected into every request's system instruction."""
    id: str
    content: str
    timestamp: int

    @property
    def is_user_entry(self) -> bool:
        return self.id.startswith(USER_ENTRY_PREFIX)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'content': self.content, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KnowledgeEntry':
        return cls(id=str(data['id']), content=str(data['content']), timestamp=int(data['timestamp']))


@dataclass(frozen=True)
class UserLog:
    """A successful login."""
    id: str
    name: str
    employee_id: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'employee_id': self.employee_id, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserLog':
        return cls(id=str(data['id']),
                   name=str(data['name']),
                   employee_id=str(data['employee_id']),
                   timestamp=int(data['timestamp']))


@dataclass(frozen=True)
class MasterActivity:
    """A completed query/response pair, kept independently of session history."""
    id: str
    user_name: str
    employee_id: str
    user_query: str
    ai_response: str
    timestamp: int
    used_search: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_name': self.user_name,
            'employee_id': self.employee_id,
            'user_query': self.user_query,
            'ai_response': self.ai_response,
            'timestamp': self.timestamp,
            'used_search': self.used_search,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MasterActivity':
        return cls(id=str(data['id']),
                   user_name=str(data['user_name']),
                   employee_id=str(data['employee_id']),
                   user_query=str(data['user_query']),
                   ai_response=str(data['ai_response']),
                   timestamp=int(data['timestamp']),
                   used_search=bool(data.get('used_search', False)))
