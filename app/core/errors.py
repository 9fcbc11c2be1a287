"""
Permission error taxonomy.

The enforcing checks in app.core.permissions raise these; the boolean checks never do.
Every error carries the HTTP status it maps to and a message meant for direct display.
"""

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class PermissionDenied(Exception):
    status_code = 403
    default_message = "Insufficient permissions"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationRequired(PermissionDenied):
    status_code = 401
    default_message = "Authentication required"


class NotMember(PermissionDenied):
    default_message = "You are not a member of this group"


class InsufficientRole(PermissionDenied):
    pass


class LookupFailed(PermissionDenied):
    """The membership/ownership lookup itself failed (transport error, not absence)."""
    status_code = 503
    default_message = "Could not verify permissions, please try again"
