from typing import Dict, List

from fastapi import HTTPException


class ValidationFailedException(HTTPException):
    def __init__(self, errors: Dict[str, List[str]], detail: str = "Validation failed"):
        super().__init__(status_code=422, detail=detail)
        self.errors = errors


class InvalidCredentialsException(HTTPException):
    def __init__(self, detail: str = "Invalid credentials , Please Try Again"):
        super().__init__(status_code=401, detail=detail)


class InvalidTokenException(HTTPException):
    def __init__(self, detail: str = "Invalid token"):
        super().__init__(status_code=401, detail=detail)


class NotFoundException(HTTPException):
    def __init__(self, resource: str = "User"):
        super().__init__(status_code=404, detail=f"{resource} not found")


class NoUsersFoundException(HTTPException):
    def __init__(self, detail: str = "No users found"):
        super().__init__(status_code=404, detail=detail)


class ResetLinkFailedException(HTTPException):
    def __init__(self, detail: str = "Unable to send reset link."):
        super().__init__(status_code=500, detail=detail)


class PasswordResetFailedException(HTTPException):
    def __init__(self, detail: str = "Failed to reset password."):
        super().__init__(status_code=500, detail=detail)


class EmailTakenError(Exception):
    """Raised by the store when the email unique constraint rejects a write."""


class NotificationError(Exception):
    """Raised by a notifier when the message could not be handed off."""
