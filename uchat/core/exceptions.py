# uchat/core/exceptions.py

from fastapi import HTTPException, status

# Base Exception
class BaseAPIException(HTTPException):
    """Base class for all custom API exceptions."""
    def __init__(self, status_code: int, detail: str, headers: dict = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


# Authentication & Authorization Exceptions
class InvalidCredentialsException(BaseAPIException):
    """Exception raised when credentials are invalid."""
    def __init__(self, detail="Invalid username or password"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class UserAlreadyExistsException(BaseAPIException):
    """Exception raised when a user already exists."""
    def __init__(self, detail="Username or email already exists"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class UnauthorizedAccessException(BaseAPIException):
    """Exception raised when the caller is authenticated but lacks access."""
    def __init__(self, detail="Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class TokenExpiredException(BaseAPIException):
    """Exception raised when a token has expired."""
    def __init__(self, detail="Token has expired"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class InvalidTokenException(BaseAPIException):
    """Exception raised when a token is missing, malformed or names an unknown user."""
    def __init__(self, detail="Invalid token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


# User & Profile Exceptions
class UserNotFoundException(BaseAPIException):
    """Exception raised when a user is not found."""
    def __init__(self, detail="User not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


# Room & Access Exceptions
class RoomNotFoundException(BaseAPIException):
    """Exception raised when a room is not found or is no longer active."""
    def __init__(self, detail="Room not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class RoomFullException(BaseAPIException):
    """Exception raised when a room has reached its maximum capacity."""
    def __init__(self, detail="Room is full"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class RoomAlreadyExistsException(BaseAPIException):
    """Exception raised when the creator already owns an active room with the same name."""
    def __init__(self, detail="You already have a room with this name"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InvalidRoomPasswordException(BaseAPIException):
    """Exception raised when a room password is missing or wrong."""
    def __init__(self, detail="Invalid room password"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class AlreadyMemberException(BaseAPIException):
    """Exception raised when the target user already holds a membership."""
    def __init__(self, detail="User is already a member of this room"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# Invitation Exceptions
class InvitationNotFoundException(BaseAPIException):
    """Exception raised when an invite code matches no invitation."""
    def __init__(self, detail="Invalid or expired invitation"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class DuplicateInvitationException(BaseAPIException):
    """Exception raised when the invitee already has a pending invitation."""
    def __init__(self, detail="User already has a pending invitation"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InvitationExpiredException(BaseAPIException):
    """Exception raised when a pending invitation is past its expiry."""
    def __init__(self, detail="Invitation has expired"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InvitationAlreadyResolvedException(BaseAPIException):
    """Exception raised when an invitation is no longer pending."""
    def __init__(self, detail="Invitation has already been resolved"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# Message & Realtime Exceptions
class MessageNotFoundException(BaseAPIException):
    """Exception raised when a message is not found."""
    def __init__(self, detail="Message not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class MessageAlreadyEditedException(BaseAPIException):
    """Exception raised when a message that was already edited is edited again."""
    def __init__(self, detail="Message has already been edited"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class NotInRoomException(BaseAPIException):
    """Exception raised when a room-scoped event arrives before a successful join."""
    def __init__(self, detail="User not connected to any room"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# Validation & Input Exceptions
class InvalidInputException(BaseAPIException):
    """Exception raised when input data is invalid."""
    def __init__(self, detail="Invalid input data"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
