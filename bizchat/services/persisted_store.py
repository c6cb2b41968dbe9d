"""
Local persisted store.

Four independently keyed JSON documents (sessions, user knowledge entries,
login logs, activity logs) plus the auth record. Each key is read on its own:
a missing or corrupt document falls back to its default without affecting the
others. Writes replace whole documents.
"""

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from ..errors import BizChatError
from ..models.core import AttachmentError, ChatSession, KnowledgeEntry, MasterActivity, UserLog
from ..models.state import AppState, UserIdentity
from ..utils.config import StorageConfig
from ..utils.json_utils import loads_or_none
from ..utils.logging_config import get_logger
from .knowledge_base import merge_with_seed, user_entries

logger = get_logger(__name__)

T = TypeVar('T')

SESSIONS_KEY = 'sessions'
KNOWLEDGE_KEY = 'knowledge'
USER_LOGS_KEY = 'user_logs'
ACTIVITIES_KEY = 'master_activity_logs'
AUTH_KEY = 'auth'

ALL_KEYS = (SESSIONS_KEY, KNOWLEDGE_KEY, USER_LOGS_KEY, ACTIVITIES_KEY, AUTH_KEY)


class StoreError(BizChatError):
    """Raised when the backend cannot write a document."""
    pass


class MemoryBackend:
    """Key-value backend held in a dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FileBackend:
    """Key-value backend storing one ``<key>.json`` file per key in a directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f'{key}.json'

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f'Could not read {path}: {e}')
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file and rename so readers never see a partial document
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f'.{key}.', suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreError(f'Failed to write {path}: {e}')

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(f'Failed to delete {key}: {e}')


@dataclass(frozen=True)
class StoredSnapshot:
    """Everything read from the store at startup."""
    user: Optional[UserIdentity]
    sessions: Tuple[ChatSession, ...]
    knowledge: Tuple[KnowledgeEntry, ...]
    user_logs: Tuple[UserLog, ...]
    activities: Tuple[MasterActivity, ...]

    def to_state(self) -> AppState:
        return AppState(user=self.user,
                        sessions=self.sessions,
                        knowledge=self.knowledge,
                        user_logs=self.user_logs,
                        activities=self.activities)


class PersistedStore:
    """Reads and writes application collections through a key-value backend."""

    def __init__(self, backend=None, config: Optional[StorageConfig] = None):
        """
        Initialize the store.

        Args:
            backend: Object with get/set/delete; defaults to a FileBackend on the configured directory
            config: StorageConfig, uses the global configuration if None
        """
        if backend is None:
            if config is None:
                from ..utils.config import config as app_config
                config = app_config.storage
            backend = FileBackend(config.directory)
        self.backend = backend

        logger.info(f'Initialized PersistedStore with {type(backend).__name__}')

    def _load_list(self, key: str, from_dict: Callable[[Dict[str, Any]], T]) -> Tuple[T, ...]:
        raw = self.backend.get(key)
        if raw is None:
            return ()

        data = loads_or_none(raw)
        if not isinstance(data, list):
            logger.warning(f'Ignoring malformed document for key {key!r}')
            return ()

        try:
            return tuple(from_dict(item) for item in data)
        except (KeyError, ValueError, TypeError, AttributeError, AttachmentError) as e:
            logger.warning(f'Ignoring corrupt document for key {key!r}: {e}')
            return ()

    def _dump(self, key: str, items: List[Dict[str, Any]]) -> None:
        self.backend.set(key, json.dumps(items, ensure_ascii=False))

    def load_sessions(self) -> Tuple[ChatSession, ...]:
        return self._load_list(SESSIONS_KEY, ChatSession.from_dict)

    def load_knowledge(self) -> Tuple[KnowledgeEntry, ...]:
        """Seed entries merged with persisted user entries."""
        return merge_with_seed(self._load_list(KNOWLEDGE_KEY, KnowledgeEntry.from_dict))

    def load_user_logs(self) -> Tuple[UserLog, ...]:
        return self._load_list(USER_LOGS_KEY, UserLog.from_dict)

    def load_activities(self) -> Tuple[MasterActivity, ...]:
        return self._load_list(ACTIVITIES_KEY, MasterActivity.from_dict)

    def load_auth(self) -> Optional[UserIdentity]:
        data = loads_or_none(self.backend.get(AUTH_KEY))
        if not isinstance(data, dict):
            return None
        name = data.get('name')
        employee_id = data.get('employee_id')
        if data.get('authenticated') is True and isinstance(name, str) and isinstance(employee_id, str) \
                and name and employee_id:
            return UserIdentity(name=name, employee_id=employee_id)
        return None

    def load(self) -> StoredSnapshot:
        snapshot = StoredSnapshot(user=self.load_auth(),
                                  sessions=self.load_sessions(),
                                  knowledge=self.load_knowledge(),
                                  user_logs=self.load_user_logs(),
                                  activities=self.load_activities())
        logger.debug(f'Loaded {len(snapshot.sessions)} sessions, {len(snapshot.knowledge)} knowledge entries, '
                     f'{len(snapshot.user_logs)} user logs, {len(snapshot.activities)} activities')
        return snapshot

    def save_auth(self, user: UserIdentity) -> None:
        self.backend.set(AUTH_KEY,
                         json.dumps({
                             'authenticated': True,
                             'name': user.name,
                             'employee_id': user.employee_id
                         }, ensure_ascii=False))

    def flush(self, state: AppState) -> None:
        """Overwrite all four collections from the state. Only user knowledge entries are written."""
        self._dump(SESSIONS_KEY, [s.to_dict() for s in state.sessions])
        self._dump(KNOWLEDGE_KEY, [k.to_dict() for k in user_entries(state.knowledge)])
        self._dump(USER_LOGS_KEY, [log.to_dict() for log in state.user_logs])
        self._dump(ACTIVITIES_KEY, [a.to_dict() for a in state.activities])

    def clear(self) -> None:
        for key in ALL_KEYS:
            self.backend.delete(key)
        logger.info('Cleared persisted store')
