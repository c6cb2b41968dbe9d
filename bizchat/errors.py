"""
Exceptions shared across the models and services.
"""


class BizChatError(Exception):
    """Base class for application errors."""
    pass


class NotAuthenticatedError(BizChatError):
    """Raised when an action requires a logged-in user."""
    pass


class PermissionDeniedError(BizChatError):
    """Raised when an admin-only action is attempted outside admin mode."""
    pass
