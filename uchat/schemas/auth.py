from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    display_name: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    avatar: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN, description="Hex color shown next to the user's messages")

class LoginRequest(BaseModel):
    username: str
    password: str

class TokenResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user_id: UUID
    username: str
    display_name: str
