"""
Login log and master activity log for administrative review.

Both logs are newest first and bounded; adding past the bound evicts the
oldest entries.
"""

from typing import Iterable, Optional, Tuple, TypeVar

from ..models.core import MasterActivity, UserLog
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import new_id, now_millis

logger = get_logger(__name__)

T = TypeVar('T')


def prepend_bounded(items: Tuple[T, ...], item: T, limit: int) -> Tuple[T, ...]:
    return ((item, ) + items)[:limit]


def record_login(logs: Tuple[UserLog, ...],
                 name: str,
                 employee_id: str,
                 timestamp: Optional[int] = None,
                 limit: Optional[int] = None) -> Tuple[UserLog, ...]:
    timestamp = timestamp if timestamp is not None else now_millis()
    limit = limit or config.limits.user_log_limit
    entry = UserLog(id=new_id(timestamp=timestamp), name=name, employee_id=employee_id, timestamp=timestamp)
    return prepend_bounded(logs, entry, limit)


def record_activity(activities: Tuple[MasterActivity, ...],
                    user_name: str,
                    employee_id: str,
                    query: str,
                    response: str,
                    used_search: bool,
                    timestamp: Optional[int] = None,
                    limit: Optional[int] = None) -> Tuple[MasterActivity, ...]:
    timestamp = timestamp if timestamp is not None else now_millis()
    limit = limit or config.limits.activity_log_limit
    entry = MasterActivity(id=new_id(timestamp=timestamp),
                           user_name=user_name,
                           employee_id=employee_id,
                           user_query=query,
                           ai_response=response,
                           timestamp=timestamp,
                           used_search=used_search)
    logger.debug(f'Recorded activity {entry.id} for {employee_id}')
    return prepend_bounded(activities, entry, limit)


def search_activities(activities: Iterable[MasterActivity], needle: str) -> Tuple[MasterActivity, ...]:
    """Case-sensitive substring match on user name, employee id or query."""
    return tuple(a for a in activities
                 if needle in a.user_name or needle in a.employee_id or needle in a.user_query)
