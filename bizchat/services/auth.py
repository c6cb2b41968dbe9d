"""
Login gate and admin elevation.
"""

import hmac
from typing import Optional

from ..errors import BizChatError
from ..models.state import UserIdentity
from ..utils.config import config
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

MIN_FIELD_LENGTH = 2


class LoginError(BizChatError):
    """Raised when the name or employee id is too short."""
    pass


class AdminElevationError(BizChatError):
    """Raised when admin elevation is disabled or the passphrase is wrong."""
    pass


def validate_login(name: str, employee_id: str) -> UserIdentity:
    """Trim and check both fields.

    Raises:
        LoginError: If either field is shorter than two characters after trimming
    """
    name = (name or '').strip()
    employee_id = (employee_id or '').strip()
    if len(name) < MIN_FIELD_LENGTH or len(employee_id) < MIN_FIELD_LENGTH:
        raise LoginError('Name and employee ID must each be at least 2 characters')
    return UserIdentity(name=name, employee_id=employee_id)


def check_admin_passphrase(passphrase: str, expected: Optional[str] = None) -> None:
    """Verify the admin passphrase against configuration.

    Raises:
        AdminElevationError: If no passphrase is configured or it does not match
    """
    expected = expected if expected is not None else config.admin.passphrase
    if not expected:
        raise AdminElevationError('Admin elevation is disabled')
    if not hmac.compare_digest((passphrase or '').encode('utf-8'), expected.encode('utf-8')):
        logger.warning('Rejected admin elevation attempt')
        raise AdminElevationError('Incorrect admin passphrase')
