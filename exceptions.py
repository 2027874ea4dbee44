"""
Application exceptions. Routers translate these into HTTP errors.
"""


class AppBaseError(Exception):
    """Base class for all application errors."""
    pass


class WorkspaceError(AppBaseError):
    """Invalid operation on a workspace (unknown chart, no sheet selected, ...)."""
    pass


class UserStoreError(AppBaseError):
    """Reading or writing a user's JSON documents failed."""
    pass


class AuthError(AppBaseError):
    """Registration or login was rejected."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ExportError(AppBaseError):
    """Locked charts could not be exported."""
    pass
