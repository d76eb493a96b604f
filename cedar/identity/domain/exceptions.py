"""HTTP-level authentication errors raised by the identity dependencies."""

from fastapi import HTTPException, status

WWW_AUTHENTICATE = {"WWW-Authenticate": "Bearer"}


class TokenInvalidException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session token.",
            headers=WWW_AUTHENTICATE,
        )


class SignInRequiredException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in to continue.",
            headers=WWW_AUTHENTICATE,
        )


class AdminRequiredException(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required.")
